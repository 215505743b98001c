"""
Blog API Backend - Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── test_settings: Settings pointing at a throwaway SQLite file and log file
    ├── database: Real Database handle on that SQLite file, tables created
    ├── repository: PostRepository over `database`
    ├── mock_repository: AsyncMock standing in for PostRepository
    ├── test_app: Application with its lifespan entered (pool + transaction log up)
    └── test_client: HTTPX AsyncClient routed to `test_app`
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from blog_api.config import Settings
from blog_api.database import Database
from blog_api.services.post_repository import PostRepository


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated to this test's temporary directory."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'blog.db'}",
        db_pool_size=5,
        db_pool_timeout=5,
        db_auto_create=True,
        transaction_log_path=str(tmp_path / "log.txt"),
        log_level="WARNING",
        cors_origins="*",
    )


@pytest_asyncio.fixture
async def database(test_settings):
    """A real Database handle on a fresh SQLite file with the posts table."""
    db = Database.from_settings(test_settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def repository(database):
    return PostRepository(database)


@pytest.fixture
def mock_repository():
    """
    A PostRepository double whose operations are all AsyncMocks.

    Usage:
        mock_repository.create.return_value = WriteResult(inserted_id=1, affected_rows=1)
    """
    return AsyncMock(spec=PostRepository)


@pytest.fixture
def sample_image_uri():
    """A minimal PNG header as a data URI."""
    return "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


@pytest_asyncio.fixture
async def test_app(test_settings):
    """
    Application instance with its lifespan running.

    ASGITransport does not send lifespan events, so the lifespan context is
    entered here directly.
    """
    from blog_api.main import create_app

    app = create_app(test_settings)
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Async HTTP client talking to `test_app` in-process.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/posts")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
