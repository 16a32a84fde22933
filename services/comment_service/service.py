import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification_service.notifier import Notifier
from services.order_service.repository import OrderRepository
from shared.errors import NotFound, ValidationError
from shared.events import CommentAdded
from shared.observability import scribe_comments_total
from shared.security.dependencies import CurrentUser

from .repository import CommentRepository
from .schemas import CommentResponse

logger = structlog.get_logger(__name__)

UNKNOWN_AUTHOR = "Unknown user"


class CommentService:

    @staticmethod
    async def add_comment(db: AsyncSession, order_id: int, author: CurrentUser, text: str) -> None:
        if not text or not text.strip():
            raise ValidationError("Comment text is required")
        order = await OrderRepository.get(db, order_id)
        if not order:
            raise NotFound("Order not found")

        await CommentRepository.add(db, order_id, author.id, text)
        await Notifier.dispatch(db, [CommentAdded(
            order_id=order.id,
            title=order.title,
            author_id=author.id,
            author_is_admin=author.is_admin,
            student_id=order.student_id,
            writer_id=order.writer_id,
            text=text,
        )])
        await db.commit()

        scribe_comments_total.inc()
        logger.info("comment_added", order_id=order_id, author_id=author.id)

    @staticmethod
    async def list_comments(db: AsyncSession, order_id: int) -> list[CommentResponse]:
        rows = await CommentRepository.list_with_authors(db, order_id)
        return [
            CommentResponse(
                id=comment.id,
                order_id=comment.order_id,
                user_id=comment.user_id,
                text=comment.text,
                created_at=comment.created_at,
                user_name=name if name is not None else UNKNOWN_AUTHOR,
                user_role=role,
            )
            for comment, name, role in rows
        ]
