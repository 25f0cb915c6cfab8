from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from .base import BaseDAO
from boutique.models import RefreshToken, User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshTokenDAO(BaseDAO):
    model = RefreshToken

    @classmethod
    async def find_valid_token(cls, token: str, db: AsyncSession) -> Optional[RefreshToken]:
        result = await db.execute(
            select(RefreshToken)
            .where(
                RefreshToken.token == token,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > _utcnow(),
            )
            .options(selectinload(RefreshToken.user))
        )
        return result.scalar_one_or_none()

    @classmethod
    async def find_by_user(cls, user: User, db: AsyncSession) -> List[RefreshToken]:
        result = await db.execute(
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user.id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > _utcnow(),
            )
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
        )
        return list(result.scalars().all())

    @classmethod
    async def revoke_all_user_tokens(cls, user: User, db: AsyncSession) -> int:
        result = await db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user.id,
                RefreshToken.is_revoked.is_(False),
            )
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @classmethod
    async def revoke_token(cls, token: str, db: AsyncSession, user_id: Optional[int] = None) -> bool:
        query = update(RefreshToken).where(RefreshToken.token == token)
        if user_id is not None:
            query = query.where(RefreshToken.user_id == user_id)
        result = await db.execute(
            query
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @classmethod
    async def delete_expired_tokens(cls, db: AsyncSession) -> int:
        result = await db.execute(
            delete(RefreshToken)
            .where(
                or_(
                    RefreshToken.expires_at < _utcnow(),
                    RefreshToken.is_revoked.is_(True),
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @classmethod
    async def count_active_tokens_by_user(cls, user: User, db: AsyncSession) -> int:
        result = await db.execute(
            select(func.count(RefreshToken.id)).where(
                RefreshToken.user_id == user.id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > _utcnow(),
            )
        )
        return int(result.scalar_one())

    @classmethod
    async def find_by_ip_address(cls, ip_address: str, db: AsyncSession, limit: int = 10) -> List[RefreshToken]:
        since = _utcnow() - timedelta(days=1)
        result = await db.execute(
            select(RefreshToken)
            .where(
                RefreshToken.ip_address == ip_address,
                RefreshToken.created_at > since,
            )
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @classmethod
    async def get_statistics(cls, db: AsyncSession) -> Dict[str, Any]:
        now = _utcnow()

        async def _count(*criteria) -> int:
            result = await db.execute(select(func.count(RefreshToken.id)).where(*criteria))
            return int(result.scalar_one())

        total = await _count()
        active = await _count(RefreshToken.is_revoked.is_(False), RefreshToken.expires_at > now)
        expired = await _count(RefreshToken.expires_at < now)
        revoked = await _count(RefreshToken.is_revoked.is_(True))

        return {
            "total": total,
            "active": active,
            "expired": expired,
            "revoked": revoked,
            "usage_rate": round(active / total * 100, 2) if total > 0 else 0,
        }


__all__ = [
    "RefreshTokenDAO",
]
