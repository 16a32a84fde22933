import asyncio
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.order_service.repository import OrderRepository
from shared.events import DeadlineApproaching

from .models import Notification
from .notifier import Notifier
from .repository import NotificationRepository

logger = structlog.get_logger(__name__)

DEADLINE_WINDOW = timedelta(hours=24)


class NotificationService:

    @staticmethod
    async def notify(db: AsyncSession, user_id: int, message: str) -> Notification:
        notification = await NotificationRepository.add(db, user_id, message)
        await db.commit()
        return notification

    @staticmethod
    async def sweep_deadlines(db: AsyncSession, user_id: int,
                              now: Optional[datetime] = None) -> list[Notification]:
        """Adds one notice per order of this user due within 24 hours; never repeats a message."""
        now = now or datetime.utcnow()
        orders = await OrderRepository.due_soon_for_user(db, user_id, now, now + DEADLINE_WINDOW)
        events = [
            DeadlineApproaching(user_id=user_id, order_id=o.id, title=o.title, due_date=o.due_date)
            for o in orders
        ]
        return await Notifier.dispatch(db, events)

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: int,
                            now: Optional[datetime] = None) -> Sequence[Notification]:
        created = await NotificationService.sweep_deadlines(db, user_id, now)
        if created:
            logger.info("deadline_notices_created", user_id=user_id, count=len(created))
        await db.commit()
        return await NotificationRepository.recent_for_user(db, user_id)

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int) -> int:
        updated = await NotificationRepository.mark_all_read(db, user_id)
        await db.commit()
        return updated

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: int) -> int:
        return await NotificationRepository.unread_count(db, user_id)


class DeadlineSweeper:
    """Periodic deadline sweep over every user with an order due soon.

    Runs are single-flight: a tick that finds the previous run still going is skipped.
    """

    def __init__(self, sessionmaker: async_sessionmaker, interval_seconds: float):
        self.sessionmaker = sessionmaker
        self.interval_seconds = interval_seconds
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    async def run_once(self, now: Optional[datetime] = None) -> int:
        if self._lock.locked():
            logger.info("deadline_sweep_skipped")
            return 0
        async with self._lock:
            now = now or datetime.utcnow()
            async with self.sessionmaker() as db:
                orders = await OrderRepository.due_soon(db, now, now + DEADLINE_WINDOW)
                events = [
                    DeadlineApproaching(user_id=uid, order_id=o.id, title=o.title, due_date=o.due_date)
                    for o in orders
                    for uid in dict.fromkeys((o.student_id, o.writer_id))
                    if uid is not None
                ]
                created = await Notifier.dispatch(db, events)
                await db.commit()
            logger.info("deadline_sweep_finished", created=len(created))
            return len(created)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except Exception:
                logger.exception("deadline_sweep_failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
