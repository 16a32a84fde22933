from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Notification

RECENT_LIMIT = 20


class NotificationRepository:

    @staticmethod
    async def add(db: AsyncSession, user_id: int, message: str) -> Notification:
        notification = Notification(user_id=user_id, message=message)
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def add_once(db: AsyncSession, user_id: int, message: str,
                       dedup_key: str) -> Optional[Notification]:
        """Inserts unless (user_id, dedup_key) already exists; returns None on a duplicate."""
        insert = pg_insert if db.bind.dialect.name == "postgresql" else sqlite_insert
        stmt = (
            insert(Notification)
            .values(user_id=user_id, message=message, dedup_key=dedup_key,
                    is_read=False, created_at=datetime.utcnow())
            .on_conflict_do_nothing(index_elements=["user_id", "dedup_key"])
            .returning(Notification)
        )
        result = await db.scalars(stmt)
        return result.first()

    @staticmethod
    async def recent_for_user(db: AsyncSession, user_id: int,
                              limit: int = RECENT_LIMIT) -> Sequence[Notification]:
        result = await db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return result.scalars().all()

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()
