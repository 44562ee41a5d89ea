import os

# Must be set before school_cms is imported: settings, limiter and app are module-level
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-tests"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("DATABASE_URL", None)

import pytest
from httpx import ASGITransport, AsyncClient

from school_cms.core.config import Settings
from school_cms.core.database import SQLiteDatabase
from school_cms.core.init_db import init_database
from school_cms.main import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "test-password-123"


class FakeImageStorage:
    """Records uploads instead of sending them to Cloudinary."""

    def __init__(self):
        self.uploads = []

    async def upload(self, data: bytes, filename: str) -> str:
        self.uploads.append((filename, data))
        return f"https://images.example.com/{filename}"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="development",
        sqlite_path=str(tmp_path / "test.db"),
        jwt_secret=os.environ["JWT_SECRET"],
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        max_upload_bytes=1024,
        rate_limit_enabled=False,
    )


@pytest.fixture
async def db(settings):
    database = SQLiteDatabase(settings)
    await database.connect()
    await init_database(database, settings)
    yield database
    await database.close()


@pytest.fixture
def storage():
    return FakeImageStorage()


@pytest.fixture
async def app(settings, storage):
    application = create_app(settings=settings, storage=storage)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
async def admin_client(client):
    response = await client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client
