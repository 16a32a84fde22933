from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User


class UserRepository:

    @staticmethod
    async def create(db: AsyncSession, user: User) -> User:
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    @staticmethod
    async def list_all(db: AsyncSession) -> Sequence[User]:
        result = await db.execute(select(User).order_by(User.id))
        return result.scalars().all()

    @staticmethod
    async def list_by_role(db: AsyncSession, role: str) -> Sequence[User]:
        result = await db.execute(select(User).where(User.role == role).order_by(User.id))
        return result.scalars().all()

    @staticmethod
    async def ids_by_role(db: AsyncSession, role: str) -> list[int]:
        result = await db.execute(select(User.id).where(User.role == role).order_by(User.id))
        return list(result.scalars().all())

    @staticmethod
    async def count(db: AsyncSession, role: Optional[str] = None) -> int:
        stmt = select(func.count(User.id))
        if role is not None:
            stmt = stmt.where(User.role == role)
        return (await db.execute(stmt)).scalar_one()

    @staticmethod
    async def delete(db: AsyncSession, user_id: int) -> None:
        # No cascade: orders, comments and notifications keep the dangling id.
        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()
