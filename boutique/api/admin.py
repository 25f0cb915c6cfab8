import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boutique.config.settings import get_settings
from boutique.dao import RefreshTokenDAO, UserDAO
from boutique.db.base import get_async_db_session
from boutique.dependencies.auth import get_current_user_admin
from boutique.models import User
from boutique.schemas.token import (
    SRefreshTokenResponse,
    SRefreshTokenStatistics,
    SUserRefreshTokens,
)

app_settings = get_settings()

logger = logging.getLogger(__name__)

if app_settings.DEBUG:
    logger.setLevel(logging.INFO)
else:
    logger.setLevel(logging.ERROR)

handler = logging.StreamHandler()
formatter = logging.Formatter("%(levelname)s:     %(message)s")
handler.setFormatter(formatter)
logger.addHandler(handler)

router = APIRouter(prefix="/admin/refresh-tokens", tags=["Admin"])


@router.get("/statistiques", response_model=SRefreshTokenStatistics)
async def refresh_token_statistics(
    admin: User = Depends(get_current_user_admin),
    db: AsyncSession = Depends(get_async_db_session),
):
    stats = await RefreshTokenDAO.get_statistics(db)
    return {"success": True, **stats}


@router.post("/purge")
async def purge_refresh_tokens(
    admin: User = Depends(get_current_user_admin),
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        deleted = await RefreshTokenDAO.delete_expired_tokens(db)
        await db.commit()
        logger.info(f"Purged {deleted} expired or revoked refresh tokens.")
        return {"success": True, "message": "Nettoyage effectué", "deleted": deleted}
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in purge_refresh_tokens: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/users/{user_id}", response_model=SUserRefreshTokens)
async def user_refresh_tokens(
    user_id: int,
    admin: User = Depends(get_current_user_admin),
    db: AsyncSession = Depends(get_async_db_session),
):
    user = await UserDAO.find_one_or_none_by_id(user_id, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Utilisateur non trouvé"
        )
    tokens = await RefreshTokenDAO.find_by_user(user, db)
    return {
        "success": True,
        "active_count": await RefreshTokenDAO.count_active_tokens_by_user(user, db),
        "data": [SRefreshTokenResponse.model_validate(t) for t in tokens],
    }


@router.post("/users/{user_id}/revoke")
async def revoke_user_refresh_tokens(
    user_id: int,
    admin: User = Depends(get_current_user_admin),
    db: AsyncSession = Depends(get_async_db_session),
):
    try:
        user = await UserDAO.find_one_or_none_by_id(user_id, db)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Utilisateur non trouvé"
            )
        revoked = await RefreshTokenDAO.revoke_all_user_tokens(user, db)
        await db.commit()
        logger.info(f"Admin {admin.id} revoked {revoked} refresh tokens of user {user_id}.")
        return {"success": True, "revoked": revoked}
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in revoke_user_refresh_tokens: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=500, detail="Une erreur de base de données est survenue."
        )


@router.get("/ip/{ip_address}")
async def refresh_tokens_by_ip(
    ip_address: str,
    limit: int = Query(10, ge=1, le=100),
    admin: User = Depends(get_current_user_admin),
    db: AsyncSession = Depends(get_async_db_session),
):
    tokens = await RefreshTokenDAO.find_by_ip_address(ip_address, db, limit=limit)
    return {
        "success": True,
        "count": len(tokens),
        "data": [SRefreshTokenResponse.model_validate(t) for t in tokens],
    }
