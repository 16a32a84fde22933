from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.schemas import SuccessResponse
from shared.config.database import get_db
from shared.security.dependencies import CurrentUser, get_current_user

from .schemas import NotificationResponse, UnreadCountResponse
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest 20 notices. Runs the deadline sweep for the caller first."""
    return await NotificationService.list_for_user(db, user.id)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(count=await NotificationService.unread_count(db, user.id))


@router.post("/read", response_model=SuccessResponse)
async def mark_all_read(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService.mark_all_read(db, user.id)
    return SuccessResponse()
