from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.auth import (
    clear_auth_cookie,
    create_access_token,
    decode_access_token,
    get_app_settings,
    set_auth_cookie,
    verify_password,
)
from ..core.config import Settings
from ..core.database import Database, get_db
from ..core.errors import AppError, ValidationFailed
from ..core.rate_limit import auth_rate_limit, limiter
from ..repositories import admins
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class AdminInfo(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    success: bool
    admin: AdminInfo


@router.post("/login", response_model=LoginResponse)
@limiter.limit(auth_rate_limit)
async def login(request: Request, response: Response, credentials: LoginRequest,
                db: Database = Depends(get_db), settings: Settings = Depends(get_app_settings)):
    """
    Authenticate the administrator and set the session cookie
    """
    username = (credentials.username or "").strip()
    if not username or not credentials.password:
        raise ValidationFailed("Username and password required", "CREDENTIALS_REQUIRED")

    try:
        logger.info(f"Login attempt for username: {username}")

        admin = await admins.get_by_username(db, username)
        if not admin or not verify_password(credentials.password, admin["password_hash"]):
            logger.warning(f"Failed login attempt for username: {username}")
            return JSONResponse(status_code=401, content={"error": "Invalid credentials"})

        token = create_access_token(settings, admin["id"], admin["username"])
        set_auth_cookie(response, settings, token)

        logger.info(f"Admin login successful: {admin['username']}")
        return LoginResponse(success=True, admin=AdminInfo(id=admin["id"], username=admin["username"]))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Login error for {username}: {e}")
        raise


@router.post("/logout")
async def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    clear_auth_cookie(response, settings)
    return {"success": True}


@router.get("/verify")
async def verify(request: Request, settings: Settings = Depends(get_app_settings)):
    """Report whether the session cookie holds a valid token"""
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        return JSONResponse(status_code=401, content={"authenticated": False})

    try:
        admin = decode_access_token(settings, token)
    except AppError:
        response = JSONResponse(status_code=401, content={"authenticated": False})
        clear_auth_cookie(response, settings)
        return response

    return {"authenticated": True, "admin": admin}
