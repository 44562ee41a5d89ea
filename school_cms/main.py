import logging
import sys
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import auth, classes, lessons, search, settings as settings_api, units
from .core.auth import clear_auth_cookie
from .core.config import Settings, get_settings, validate_settings
from .core.database import Database, create_database
from .core.errors import SERVER_ERROR_MESSAGE, AppError, InvalidToken, NotFound
from .core.init_db import init_database
from .core.rate_limit import configure_limiter, rate_limit_exceeded_handler
from .core.storage import CloudinaryImageStorage

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting School CMS API...")
    db: Database = app.state.db
    try:
        await db.connect()
        await init_database(db, app.state.settings)
        logger.info("Application startup completed successfully")
        yield
    except Exception as e:
        logger.error(f"Error during application startup: {e}")
        raise
    finally:
        logger.info("Shutting down School CMS API...")
        try:
            await db.close()
            logger.info("Application shutdown completed")
        except Exception as e:
            logger.error(f"Error during application shutdown: {e}")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code or 'ERROR'} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.code} {exc.message}")

        response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
        if isinstance(exc, InvalidToken):
            clear_auth_cookie(response, request.app.state.settings)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP {exc.status_code} error on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request data", "code": "VALIDATION_ERROR"}
        )

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
        if request.app.state.settings.is_production:
            content = {"error": SERVER_ERROR_MESSAGE}
        else:
            content = {
                "error": str(exc) or SERVER_ERROR_MESSAGE,
                "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            }
        return JSONResponse(status_code=500, content=content)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None,
               storage: Optional[CloudinaryImageStorage] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    validate_settings(settings)

    app = FastAPI(
        title="School CMS API",
        description="Arabic-language school content management API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None
    )

    app.state.settings = settings
    app.state.db = database or create_database(settings)
    app.state.storage = storage or CloudinaryImageStorage(settings)
    app.state.limiter = configure_limiter(settings)

    # Middleware added last runs first
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    if settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.frontend_url],
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests"""
        logger.info(f"Incoming request: {request.method} {request.url.path}")

        try:
            response = await call_next(request)
            logger.info(f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}")
            return response
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path} - Error: {str(e)}")
            raise

    register_exception_handlers(app)

    # Include API routers
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(classes.router, prefix="/api/classes", tags=["Classes"])
    app.include_router(units.router, prefix="/api/units", tags=["Units"])
    app.include_router(lessons.router, prefix="/api/lessons", tags=["Lessons"])
    app.include_router(settings_api.router, prefix="/api/settings", tags=["Settings"])
    app.include_router(search.router, prefix="/api/search", tags=["Search"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    @app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
    async def api_not_found(path: str):
        raise NotFound("Resource not found")

    return app


app = create_app()
