from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from boutique.config.settings import Settings, get_settings
from boutique.dao import UserDAO
from boutique.db.base import get_async_db_session
from boutique.models import ADMIN_ROLE, User
from boutique.utils.auth import decode_access_token


def get_token(request: Request) -> str:
    auth = request.headers.get("Authorization")
    scheme, param = get_authorization_scheme_param(auth)

    if scheme.lower() != "bearer" or not param:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token manquant"
        )
    return param


def get_token_payload(
    token: str = Depends(get_token), settings: Settings = Depends(get_settings)
) -> dict:
    try:
        payload = decode_access_token(token, settings)
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expiré"
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token invalide"
        )

    expire = payload.get("exp")
    if not expire or datetime.fromtimestamp(int(expire), tz=timezone.utc) < datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expiré"
        )
    return payload


async def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_async_db_session),
) -> User:
    user_id = payload.get("sub") or payload.get("user_id")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalide",
        )

    user = await UserDAO.find_one_or_none_by_id(user_id, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utilisateur non trouvé",
        )

    return user


async def get_current_user_admin(user: User = Depends(get_current_user)) -> User:
    if not user.has_role(ADMIN_ROLE):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Accès réservé aux administrateurs",
        )
    return user
