from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings
from .errors import AuthenticationRequired, InvalidToken
import logging

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def create_access_token(settings: Settings, admin_id: int, username: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    # 'sub' must be a string
    to_encode = {"sub": str(admin_id), "username": username, "exp": expire}

    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    logger.info(f"Created token for admin {username}")
    return encoded_jwt


def decode_access_token(settings: Settings, token: str) -> dict:
    """Return ``{"id", "username"}`` or raise ``InvalidToken``."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise InvalidToken("Invalid or expired token", "INVALID_TOKEN")

    admin_id_str = payload.get("sub")
    username = payload.get("username")
    if admin_id_str is None or username is None:
        logger.warning("Token missing required fields")
        raise InvalidToken("Invalid or expired token", "INVALID_TOKEN")

    try:
        admin_id = int(admin_id_str)
    except ValueError:
        logger.warning(f"Cannot convert admin id '{admin_id_str}' to int")
        raise InvalidToken("Invalid or expired token", "INVALID_TOKEN")

    return {"id": admin_id, "username": username}


def set_auth_cookie(response, settings: Settings, token: str) -> None:
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        max_age=settings.jwt_expire_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


def clear_auth_cookie(response, settings: Settings) -> None:
    response.delete_cookie(
        settings.auth_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


def require_admin(request: Request, settings: Settings = Depends(get_app_settings)) -> dict:
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise AuthenticationRequired("Authentication required", "AUTH_REQUIRED")

    admin = decode_access_token(settings, token)
    logger.debug(f"Admin access granted for: {admin['username']}")
    return admin
