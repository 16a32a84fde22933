from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.schemas import SuccessResponse
from shared.config.database import get_db
from shared.security.dependencies import CurrentUser, require
from shared.security.policy import Action

from .schemas import CommentCreate, CommentResponse
from .service import CommentService

router = APIRouter(prefix="/orders", tags=["Comments"])


@router.post("/{order_id}/comments", response_model=SuccessResponse)
async def add_comment(
    order_id: int,
    payload: CommentCreate,
    user: CurrentUser = Depends(require(Action.COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    await CommentService.add_comment(db, order_id, user, payload.text)
    return SuccessResponse()


@router.get("/{order_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    order_id: int,
    _: CurrentUser = Depends(require(Action.COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await CommentService.list_comments(db, order_id)
