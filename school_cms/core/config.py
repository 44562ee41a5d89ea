from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_SECRET = "your-super-secret-jwt-key-change-in-production"
MIN_PRODUCTION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: Optional[str] = None
    sqlite_path: str = "database.db"
    database_ssl: str = "require"

    # Security
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 7 * 24 * 60
    auth_cookie_name: str = "authToken"

    # First-run admin
    admin_username: str = "admin"
    admin_password: str = "ChangeThisPassword123!"

    # Image storage
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "educational-content-system/lesson-images"
    max_upload_bytes: int = 10 * 1024 * 1024

    # HTTP edge
    frontend_url: str = "http://localhost:3000"
    rate_limit_enabled: bool = True
    api_rate_limit: str = "1000/15 minutes"
    auth_rate_limit: str = "100/15 minutes"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def use_postgres(self) -> bool:
        """Networked server only when both a URL and the production flag are set."""
        return bool(self.database_url) and self.is_production

    @property
    def cloudinary_configured(self) -> bool:
        return all([self.cloudinary_cloud_name, self.cloudinary_api_key, self.cloudinary_api_secret])


def validate_settings(settings: Settings) -> None:
    """Refuse to start without a usable token secret."""
    if not settings.jwt_secret or settings.jwt_secret == PLACEHOLDER_SECRET:
        raise RuntimeError("JWT_SECRET is not set or is using the placeholder value")
    if settings.is_production and len(settings.jwt_secret) < MIN_PRODUCTION_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
