from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import Settings, settings
import logging

logger = logging.getLogger(__name__)

API_LIMIT_MESSAGE = "عدد كبير من الطلبات. يرجى المحاولة لاحقاً"
AUTH_LIMIT_MESSAGE = "عدد كبير من محاولات تسجيل الدخول. يرجى المحاولة بعد 15 دقيقة"

# Limit strings of the running app, read on every request
current_limits = {
    "api": settings.api_rate_limit,
    "auth": settings.auth_rate_limit,
}


def api_rate_limit() -> str:
    return current_limits["api"]


def auth_rate_limit() -> str:
    return current_limits["auth"]


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[api_rate_limit],
    enabled=settings.rate_limit_enabled,
)


def configure_limiter(app_settings: Settings) -> Limiter:
    """Apply an app's settings to the process-wide limiter and start counting afresh."""
    limiter.enabled = app_settings.rate_limit_enabled
    current_limits["api"] = app_settings.api_rate_limit
    current_limits["auth"] = app_settings.auth_rate_limit
    limiter.reset()

    if app_settings.rate_limit_enabled:
        logger.info(f"Rate limits: api={app_settings.api_rate_limit}, auth={app_settings.auth_rate_limit}")
    else:
        logger.info("Rate limiting disabled")
    return limiter


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded on {request.url.path} from {get_remote_address(request)}")
    message = AUTH_LIMIT_MESSAGE if request.url.path.startswith("/api/auth") else API_LIMIT_MESSAGE
    return JSONResponse(status_code=429, content={"error": message, "code": "RATE_LIMITED"})
