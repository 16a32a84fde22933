"""
Turns domain events into notification rows.

Mutating services hand their events to ``Notifier.dispatch`` inside their own
transaction, so an order never commits without the notices it caused.
"""
from typing import Iterable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.repository import UserRepository
from shared.events import (
    CommentAdded,
    DeadlineApproaching,
    OrderAssigned,
    OrderCreated,
    StatusChanged,
)
from shared.observability import scribe_notifications_total
from shared.security.policy import Role

from .models import Notification
from .repository import NotificationRepository

logger = structlog.get_logger(__name__)

COMMENT_PREVIEW_LENGTH = 50


def deadline_message(event: DeadlineApproaching) -> str:
    due = event.due_date.strftime("%Y-%m-%d %H:%M:%S")
    return f"Deadline approaching for order #{event.order_id}: {event.title} (Due: {due})"


def comment_message(event: CommentAdded) -> str:
    preview = event.text[:COMMENT_PREVIEW_LENGTH]
    return f'New message on order #{event.order_id} "{event.title}": {preview}...'


class Notifier:

    @staticmethod
    async def _admin_ids(db: AsyncSession) -> list[int]:
        return await UserRepository.ids_by_role(db, Role.ADMIN.value)

    @staticmethod
    async def recipients(db: AsyncSession, event) -> list[tuple[int, str]]:
        """The (user_id, message) pairs an event fans out to."""
        if isinstance(event, OrderCreated):
            message = f"New order #{event.order_id} received: {event.title}"
            return [(admin_id, message) for admin_id in await Notifier._admin_ids(db)]

        if isinstance(event, OrderAssigned):
            return [
                (event.student_id,
                 f'Your order #{event.order_id} "{event.title}" has been assigned to a writer.'),
                (event.writer_id,
                 f"You have been assigned a new writing task: #{event.order_id}"),
                (event.delivery_id, f"New delivery assigned: #{event.order_id}"),
            ]

        if isinstance(event, StatusChanged):
            return [(event.student_id, f"Update on order #{event.order_id}: {event.message}")]

        if isinstance(event, CommentAdded):
            parties = [uid for uid in (event.student_id, event.writer_id)
                       if uid and uid != event.author_id]
            if not event.author_is_admin:
                parties.extend(await Notifier._admin_ids(db))
            message = comment_message(event)
            return [(uid, message) for uid in dict.fromkeys(parties) if uid != event.author_id]

        if isinstance(event, DeadlineApproaching):
            return [(event.user_id, deadline_message(event))]

        raise TypeError(f"Unknown event {type(event).__name__}")

    @staticmethod
    async def dispatch(db: AsyncSession, events: Iterable) -> list[Notification]:
        created = []
        for event in events:
            kind = type(event).__name__
            for user_id, message in await Notifier.recipients(db, event):
                if isinstance(event, DeadlineApproaching):
                    # unique on (user_id, message): concurrent sweeps insert at most once
                    notification = await NotificationRepository.add_once(db, user_id, message, message)
                    if notification is None:
                        continue
                else:
                    notification = await NotificationRepository.add(db, user_id, message)
                created.append(notification)
                scribe_notifications_total.labels(event=kind).inc()
            logger.debug("event_dispatched", kind=kind)
        return created
