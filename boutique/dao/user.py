from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .base import BaseDAO
from boutique.models import User


class UserDAO(BaseDAO):
    model = User

    @classmethod
    async def find_one_by_email(cls, email: str, db: AsyncSession):
        if not email:
            return None
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()


__all__ = [
    "UserDAO",
]
