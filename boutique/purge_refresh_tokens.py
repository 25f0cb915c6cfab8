"""Delete expired or revoked refresh tokens: ``python -m boutique.purge_refresh_tokens``."""
import asyncio

from boutique.dao import RefreshTokenDAO
from boutique.db.base import async_session_maker, engine


async def purge() -> int:
    async with async_session_maker() as session:
        async with session.begin():
            deleted = await RefreshTokenDAO.delete_expired_tokens(session)
    await engine.dispose()
    return deleted


if __name__ == "__main__":
    count = asyncio.run(purge())
    print(f"{count} refresh token(s) supprimé(s).")
