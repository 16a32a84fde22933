"""
Admin-only endpoints. Every route is gated by ``require(<action>)``, which
checks the caller's current role on each request.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.schemas import UserDetail, UserUpdate
from services.order_service.schemas import AdminOrderUpdate, AssignRequest, SuccessResponse
from services.order_service.service import OrderService
from shared.config.database import get_db
from shared.security.dependencies import CurrentUser, require
from shared.security.policy import Action

from .schemas import AnalyticsResponse, StatsResponse
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=StatsResponse)
async def stats(
    _: CurrentUser = Depends(require(Action.VIEW_STATS)),
    db: AsyncSession = Depends(get_db),
):
    return await AdminService.stats(db)


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(
    _: CurrentUser = Depends(require(Action.VIEW_ANALYTICS)),
    db: AsyncSession = Depends(get_db),
):
    return await AdminService.analytics(db)


@router.get("/users", response_model=List[UserDetail])
async def list_users(
    _: CurrentUser = Depends(require(Action.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    return await AdminService.list_users(db)


@router.put("/users/{user_id}", response_model=SuccessResponse)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    _: CurrentUser = Depends(require(Action.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    await AdminService.update_user(db, user_id, payload)
    return SuccessResponse()


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: int,
    _: CurrentUser = Depends(require(Action.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    await AdminService.delete_user(db, user_id)
    return SuccessResponse()


@router.put("/orders/{order_id}", response_model=SuccessResponse)
async def update_order(
    order_id: int,
    payload: AdminOrderUpdate,
    _: CurrentUser = Depends(require(Action.EDIT_ORDER)),
    db: AsyncSession = Depends(get_db),
):
    await OrderService.admin_update_order(db, order_id, payload)
    return SuccessResponse()


@router.delete("/orders/{order_id}", response_model=SuccessResponse)
async def delete_order(
    order_id: int,
    _: CurrentUser = Depends(require(Action.DELETE_ORDER)),
    db: AsyncSession = Depends(get_db),
):
    await OrderService.delete_order(db, order_id)
    return SuccessResponse()


@router.post("/assign", response_model=SuccessResponse)
async def assign(
    payload: AssignRequest,
    _: CurrentUser = Depends(require(Action.ASSIGN_ORDER)),
    db: AsyncSession = Depends(get_db),
):
    await OrderService.assign(db, payload.order_id, payload.writer_id, payload.delivery_id)
    return SuccessResponse()
