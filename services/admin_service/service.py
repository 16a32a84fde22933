import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from services.auth_service.repository import UserRepository
from services.auth_service.schemas import UserUpdate
from services.comment_service.service import UNKNOWN_AUTHOR
from services.order_service.repository import OrderRepository
from services.order_service.state_machine import OrderStatus
from shared.errors import Conflict, NotFound
from shared.security.policy import Role

from .schemas import AnalyticsResponse, RecentOrder, StatsResponse

logger = structlog.get_logger(__name__)

RECENT_ORDERS = 5


class AdminService:

    @staticmethod
    async def _recent_orders(db: AsyncSession) -> list[RecentOrder]:
        rows = await OrderRepository.list_with_student_names(db, limit=RECENT_ORDERS)
        return [
            RecentOrder(title=o.title, price=o.price,
                        student_name=name if name is not None else UNKNOWN_AUTHOR)
            for o, name in rows
        ]

    @staticmethod
    async def stats(db: AsyncSession) -> StatsResponse:
        return StatsResponse(
            revenue=await OrderRepository.delivered_revenue(db),
            pending=await OrderRepository.count(db, status=OrderStatus.PENDING.value),
            writers=await UserRepository.count(db, Role.WRITER.value),
            totalOrders=await OrderRepository.count(db),
            recentOrders=await AdminService._recent_orders(db),
        )

    @staticmethod
    async def analytics(db: AsyncSession) -> AnalyticsResponse:
        return AnalyticsResponse(
            totalRevenue=await OrderRepository.delivered_revenue(db),
            activeOrders=await OrderRepository.count(db, exclude_status=OrderStatus.DELIVERED.value),
            completedOrders=await OrderRepository.count(db, status=OrderStatus.DELIVERED.value),
            totalUsers=await UserRepository.count(db),
            recentOrders=await AdminService._recent_orders(db),
        )

    @staticmethod
    async def list_users(db: AsyncSession):
        return await UserRepository.list_all(db)

    @staticmethod
    async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> User:
        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFound("User not found")
        existing = await UserRepository.get_by_email(db, data.email)
        if existing and existing.id != user_id:
            raise Conflict("Email already registered")
        user.name = data.name
        user.email = data.email
        user.role = data.role.value
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise Conflict("Email already registered")
        logger.info("user_updated", user_id=user_id, role=user.role)
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, user_id: int) -> None:
        if not await UserRepository.get_by_id(db, user_id):
            raise NotFound("User not found")
        await UserRepository.delete(db, user_id)
        logger.info("user_deleted", user_id=user_id)
