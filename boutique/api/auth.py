import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boutique.config.settings import Settings, get_settings
from boutique.dao import RefreshTokenDAO, UserDAO
from boutique.db.base import get_async_db_session
from boutique.dependencies.auth import get_current_user
from boutique.models import DEFAULT_ROLE, PRIVILEGED_ROLES, User
from boutique.schemas.token import SLogoutRequest, SRefreshTokenRequest, STokenResponse
from boutique.schemas.user import SUserAuth, SUserEnvelope, SUserRegister, SUserResponse
from boutique.utils.auth import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    get_password_hash,
    is_refresh_token_well_formed,
    save_refresh_token,
)

app_settings = get_settings()

logger = logging.getLogger(__name__)

if app_settings.DEBUG:
    logger.setLevel(logging.INFO)
else:
    logger.setLevel(logging.ERROR)

handler = logging.StreamHandler()
formatter = logging.Formatter('%(levelname)s:     %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)

router = APIRouter(tags=["Auth"])

INVALID_CREDENTIALS = "Identifiants invalides"
INVALID_REFRESH_TOKEN = "Refresh token invalide ou expiré, veuillez vous reconnecter"


def _client_info(request: Request):
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


@router.post(
    "/register",
    response_model=SUserEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    user_data: SUserRegister, db: AsyncSession = Depends(get_async_db_session)
) -> dict:
    try:
        existing = await UserDAO.find_one_by_email(user_data.email, db)
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Un utilisateur avec cet email existe déjà",
            )

        requested = [
            r.strip() for r in user_data.roles
            if r and r.strip() and r.strip() not in PRIVILEGED_ROLES
        ]
        user = User(
            email=user_data.email,
            nom=user_data.nom,
            roles=list(dict.fromkeys([DEFAULT_ROLE, *requested])),
            password=get_password_hash(user_data.password),
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Un utilisateur avec cet email existe déjà",
            )
        logger.info(f"User registered successfully: {user.id}")

        return {
            "success": True,
            "message": "Utilisateur créé avec succès",
            "user": SUserResponse.model_validate(user),
        }

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in register_user: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Une erreur de base de données est survenue.",
        )

    except HTTPException as e:
        raise e

    except Exception as e:
        await db.rollback()
        logger.error(f"Unexpected error in register_user: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erreur lors de la création de l'utilisateur",
        )


@router.post("/login", response_model=STokenResponse)
@router.post("/login_check", response_model=STokenResponse)
async def login_user(
    request: Request,
    credentials: SUserAuth,
    db: AsyncSession = Depends(get_async_db_session),
    settings: Settings = Depends(get_settings),
):
    try:
        if not credentials.identifier or not credentials.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email et mot de passe requis",
            )

        user = await authenticate_user(
            email=credentials.identifier,
            password=credentials.password,
            db=db,
        )
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=INVALID_CREDENTIALS,
            )

        access_token, expires_at = create_access_token(user, settings)
        refresh_token = create_refresh_token()
        ip_address, user_agent = _client_info(request)
        await save_refresh_token(
            user.id, refresh_token, db, settings,
            ip_address=ip_address, user_agent=user_agent,
        )
        await db.commit()
        logger.info(f"User logged in successfully: {user.id}")

        return {
            "success": True,
            "message": "Connexion réussie",
            "token": access_token,
            "refresh_token": refresh_token,
            "expires_at": expires_at,
            "user": SUserResponse.model_validate(user),
        }

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in login_user: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Une erreur de base de données est survenue.",
        )

    except HTTPException as e:
        await db.rollback()
        raise e

    except Exception as e:
        await db.rollback()
        logger.error(f"Unexpected error in login_user: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erreur lors de la connexion",
        )


@router.post("/refresh-token", response_model=STokenResponse)
async def refresh_token(
    request: Request,
    payload: Optional[SRefreshTokenRequest] = None,
    db: AsyncSession = Depends(get_async_db_session),
    settings: Settings = Depends(get_settings),
):
    try:
        token = payload.refresh_token if payload else None
        if not token:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Refresh token manquant",
            )
        if not is_refresh_token_well_formed(token):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Format de refresh token invalide",
            )

        record = await RefreshTokenDAO.find_valid_token(token, db)
        if record is None or record.user is None or not record.is_valid():
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=INVALID_REFRESH_TOKEN,
            )

        user = record.user
        record.last_used_at = datetime.now(timezone.utc)
        new_access_token, expires_at = create_access_token(user, settings)

        new_refresh_token = token
        if settings.refresh_token_rotation:
            record.is_revoked = True
            new_refresh_token = create_refresh_token()
            ip_address, user_agent = _client_info(request)
            await save_refresh_token(
                user.id, new_refresh_token, db, settings,
                ip_address=ip_address, user_agent=user_agent,
            )

        await db.commit()
        logger.info(f"Token refreshed successfully for user: {user.id}")

        return {
            "success": True,
            "message": "Token renouvelé",
            "token": new_access_token,
            "refresh_token": new_refresh_token,
            "expires_at": expires_at,
        }

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in refresh_token: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Une erreur de base de données est survenue.",
        )

    except HTTPException as e:
        await db.rollback()
        raise e

    except Exception as e:
        await db.rollback()
        logger.error(f"Unexpected error in refresh_token: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erreur lors du renouvellement du token",
        )


@router.get("/me", response_model=SUserEnvelope)
async def get_me(user_data: User = Depends(get_current_user)):
    return {"success": True, "user": SUserResponse.model_validate(user_data)}


@router.post("/logout")
async def logout_user(
    payload: Optional[SLogoutRequest] = None,
    db: AsyncSession = Depends(get_async_db_session),
    user: User = Depends(get_current_user),
):
    try:
        revoked = False
        if payload and payload.refresh_token:
            revoked = await RefreshTokenDAO.revoke_token(
                payload.refresh_token, db, user_id=user.id
            )
            await db.commit()
        logger.info(f"User logged out successfully for user: {user.id}")

        return {
            "success": True,
            "message": "Déconnexion réussie",
            "instructions": (
                "Supprimez le token côté client. "
                "Il expirera automatiquement à sa date d'expiration."
            ),
            "refresh_token_revoked": revoked,
        }

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in logout_user: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Une erreur de base de données est survenue.",
        )


@router.post("/logout-all")
async def logout_all_sessions(
    db: AsyncSession = Depends(get_async_db_session),
    user: User = Depends(get_current_user),
):
    try:
        count = await RefreshTokenDAO.revoke_all_user_tokens(user, db)
        await db.commit()
        logger.info(f"Revoked {count} refresh tokens for user: {user.id}")
        return {
            "success": True,
            "message": "Toutes les sessions ont été révoquées",
            "revoked": count,
        }

    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in logout_all_sessions: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Une erreur de base de données est survenue.",
        )


@router.get("/test-auth")
async def test_auth(request: Request, settings: Settings = Depends(get_settings)):
    auth = request.headers.get("Authorization")
    if not auth:
        return {
            "success": False,
            "message": "Aucune authentification fournie",
            "status": "NO_AUTH",
        }

    scheme, token = get_authorization_scheme_param(auth)
    if scheme.lower() != "bearer" or not token:
        return {
            "success": False,
            "message": "Format Bearer token requis",
            "status": "INVALID_FORMAT",
        }

    try:
        payload = decode_access_token(token, settings)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token invalide"
        )

    return {
        "success": True,
        "message": "Token valide",
        "status": "VALID",
        "user_data": {
            "user_id": payload.get("user_id"),
            "email": payload.get("email"),
            "roles": payload.get("roles"),
            "expires_at": datetime.fromtimestamp(int(payload.get("exp", 0)), tz=timezone.utc),
        },
    }
