from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from services.comment_service.models import Comment

from .models import Order, StatusUpdate
from .state_machine import OrderStatus


class OrderRepository:
    """Order queries. Writers flush but never commit; the calling service owns the transaction."""

    @staticmethod
    async def add(db: AsyncSession, order: Order) -> Order:
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def get(db: AsyncSession, order_id: int) -> Optional[Order]:
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def list_with_student_names(db: AsyncSession, limit: Optional[int] = None):
        stmt = (
            select(Order, User.name)
            .outerjoin(User, User.id == Order.student_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return result.all()

    @staticmethod
    async def list_for_student(db: AsyncSession, student_id: int) -> Sequence[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.student_id == student_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def list_for_writer(db: AsyncSession, writer_id: int) -> Sequence[Order]:
        # Own assignments plus unclaimed inventory
        result = await db.execute(
            select(Order)
            .where(or_(Order.writer_id == writer_id, Order.status == OrderStatus.PENDING.value))
            .order_by(Order.id)
        )
        return result.scalars().all()

    @staticmethod
    async def list_for_delivery(db: AsyncSession, delivery_id: int) -> Sequence[Order]:
        result = await db.execute(
            select(Order)
            .where(or_(
                Order.delivery_id == delivery_id,
                Order.status == OrderStatus.READY_FOR_DELIVERY.value,
            ))
            .order_by(Order.id)
        )
        return result.scalars().all()

    @staticmethod
    async def compare_and_set_status(db: AsyncSession, order_id: int,
                                     expected: str, new: str, **values) -> bool:
        """Moves the order to ``new`` only if it is still ``expected``; extra columns ride along."""
        result = await db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new, **values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    @staticmethod
    async def delete(db: AsyncSession, order_id: int) -> None:
        # No FK cascade: children go first.
        await db.execute(delete(StatusUpdate).where(StatusUpdate.order_id == order_id))
        await db.execute(delete(Comment).where(Comment.order_id == order_id))
        await db.execute(delete(Order).where(Order.id == order_id))

    @staticmethod
    async def due_soon_for_user(db: AsyncSession, user_id: int,
                                now: datetime, until: datetime) -> Sequence[Order]:
        result = await db.execute(
            select(Order)
            .where(
                or_(Order.student_id == user_id, Order.writer_id == user_id),
                Order.status != OrderStatus.DELIVERED.value,
                Order.due_date.is_not(None),
                Order.due_date > now,
                Order.due_date < until,
            )
            .order_by(Order.id)
        )
        return result.scalars().all()

    @staticmethod
    async def due_soon(db: AsyncSession, now: datetime, until: datetime) -> Sequence[Order]:
        result = await db.execute(
            select(Order)
            .where(
                Order.status != OrderStatus.DELIVERED.value,
                Order.due_date.is_not(None),
                Order.due_date > now,
                Order.due_date < until,
            )
            .order_by(Order.id)
        )
        return result.scalars().all()

    @staticmethod
    async def delivered_revenue(db: AsyncSession, writer_id: Optional[int] = None) -> float:
        stmt = select(func.coalesce(func.sum(Order.price), 0)).where(
            Order.status == OrderStatus.DELIVERED.value
        )
        if writer_id is not None:
            stmt = stmt.where(Order.writer_id == writer_id)
        return float((await db.execute(stmt)).scalar_one())

    @staticmethod
    async def count(db: AsyncSession, status: Optional[str] = None,
                    exclude_status: Optional[str] = None,
                    delivery_id: Optional[int] = None) -> int:
        stmt = select(func.count(Order.id))
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if exclude_status is not None:
            stmt = stmt.where(Order.status != exclude_status)
        if delivery_id is not None:
            stmt = stmt.where(Order.delivery_id == delivery_id)
        return (await db.execute(stmt)).scalar_one()


class TimelineRepository:

    @staticmethod
    async def append(db: AsyncSession, order_id: int, status: str, message: str) -> StatusUpdate:
        entry = StatusUpdate(order_id=order_id, status=status, message=message)
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def list(db: AsyncSession, order_id: int) -> Sequence[StatusUpdate]:
        result = await db.execute(
            select(StatusUpdate)
            .where(StatusUpdate.order_id == order_id)
            .order_by(StatusUpdate.updated_at.desc(), StatusUpdate.id.desc())
        )
        return result.scalars().all()
