from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User

from .models import Comment


class CommentRepository:

    @staticmethod
    async def add(db: AsyncSession, order_id: int, user_id: int, text: str) -> Comment:
        comment = Comment(order_id=order_id, user_id=user_id, text=text)
        db.add(comment)
        await db.flush()
        return comment

    @staticmethod
    async def list_with_authors(db: AsyncSession, order_id: int):
        """(Comment, author name, author role) rows, oldest first; author columns are None for deleted users."""
        result = await db.execute(
            select(Comment, User.name, User.role)
            .outerjoin(User, User.id == Comment.user_id)
            .where(Comment.order_id == order_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return result.all()
