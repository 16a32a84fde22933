from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import CurrentUser, get_current_user, require
from shared.security.policy import Action

from .schemas import (
    EarningsResponse,
    OrderCreatedResponse,
    OrderDetail,
    OrderResponse,
    StatusChangeRequest,
    SuccessResponse,
)
from .service import OrderService, parse_due_date

router = APIRouter(prefix="/orders", tags=["Orders"])
earnings_router = APIRouter(tags=["Earnings"])


@router.post("", response_model=OrderCreatedResponse)
async def create_order(
    request: Request,
    title: str = Form(...),
    description: Optional[str] = Form(None),
    page_count: Optional[int] = Form(None),
    due_date: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(require(Action.CREATE_ORDER)),
    db: AsyncSession = Depends(get_db),
):
    file_path = None
    if file is not None and file.filename:
        file_path = request.app.state.attachments.save(await file.read(), file.filename)

    order = await OrderService.create_order(
        db,
        student_id=user.id,
        title=title,
        description=description,
        page_count=page_count,
        price_per_page=request.app.state.settings.price_per_page,
        due_date=parse_due_date(due_date),
        file_path=file_path,
    )
    return OrderCreatedResponse(id=order.id, page_count=order.page_count, price=order.price)


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.list_orders(db, user)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: int,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_order(db, order_id)


@router.post("/{order_id}/status", response_model=SuccessResponse)
async def update_status(
    request: Request,
    order_id: int,
    payload: StatusChangeRequest,
    user: CurrentUser = Depends(require(Action.TRANSITION_STATUS)),
    db: AsyncSession = Depends(get_db),
):
    await OrderService.transition_status(
        db, order_id, payload.status, payload.message, user,
        enforce=request.app.state.settings.enforce_status_transitions,
    )
    return SuccessResponse()


@earnings_router.get("/earnings", response_model=EarningsResponse)
async def get_earnings(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return EarningsResponse(total=await OrderService.earnings(db, user))
