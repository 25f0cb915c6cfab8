import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from boutique.config.settings import Settings
from boutique.dao import UserDAO
from boutique.models import RefreshToken, User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REFRESH_TOKEN_PATTERN = re.compile(r"^[a-f0-9]{128}$")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_pwd: str, hashed_pwd: str) -> bool:
    try:
        return pwd_context.verify(plain_pwd, hashed_pwd)
    except ValueError:
        # oversized or malformed secret (passlib PasswordSizeError)
        return False


def create_access_token(user: User, settings: Settings) -> Tuple[str, datetime]:
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {
        "sub": str(user.id),
        "user_id": user.id,
        "email": user.email,
        "roles": user.get_roles(),
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
    }
    auth_data = settings.get_auth_data()
    encode_jwt = jwt.encode(
        to_encode, auth_data["secret_key"], algorithm=auth_data["algorithm"]
    )
    return encode_jwt, expire


def decode_access_token(token: str, settings: Settings) -> dict:
    """Verify signature and expiry; raises ``jose.JWTError`` on failure."""
    auth_data = settings.get_auth_data()
    return jwt.decode(
        token, auth_data["secret_key"], algorithms=[auth_data["algorithm"]]
    )


def create_refresh_token() -> str:
    return secrets.token_hex(64)


def is_refresh_token_well_formed(token: Optional[str]) -> bool:
    return bool(token) and REFRESH_TOKEN_PATTERN.match(token) is not None


async def save_refresh_token(
    user_id: int,
    token: str,
    db: AsyncSession,
    settings: Settings,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> RefreshToken:
    now = datetime.now(timezone.utc)
    db_token = RefreshToken(
        user_id=user_id,
        token=token,
        created_at=now,
        last_used_at=now,
        expires_at=now + timedelta(days=settings.refresh_token_expire_days),
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
        is_revoked=False,
    )
    db.add(db_token)
    await db.flush()
    return db_token


async def authenticate_user(email: str, password: str, db: AsyncSession) -> Optional[User]:
    user = await UserDAO.find_one_by_email(email, db)
    if user is None:
        # keep the response time of unknown emails close to a real check
        pwd_context.dummy_verify()
        return None
    if not verify_password(password, user.password):
        return None
    return user


__all__ = [
    "pwd_context",
    "get_password_hash",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "create_refresh_token",
    "is_refresh_token_well_formed",
    "save_refresh_token",
    "authenticate_user",
]
