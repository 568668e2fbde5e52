"""
Recordbook Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── database_url: SQLite file URL inside tmp_path (fresh database per test)
    ├── store_engine: AsyncEngine bound to that URL, disposed after the test
    ├── record_store: RecordStore around store_engine
    ├── test_client: HTTPX AsyncClient talking to an app bound to store_engine
    ├── unbound_client: HTTPX AsyncClient talking to an app with no database
    ├── legacy_table: records table created without the grade column
    └── sample_record: a valid POST /api/records body
"""

import os
import tempfile

# Settings are read at import time; point them at throwaway locations first
_TEST_ROOT = tempfile.mkdtemp(prefix="recordbook_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/default.db"
os.environ["STATIC_ROOT"] = os.path.join(_TEST_ROOT, "missing-public")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from recordbook.config import Settings  # noqa: E402
from recordbook.main import create_app  # noqa: E402
from recordbook.services.record_store import RecordStore  # noqa: E402


@pytest.fixture
def database_url(tmp_path):
    """A SQLite database file unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'records.db'}"


@pytest_asyncio.fixture
async def store_engine(database_url):
    """Async engine for the test database; disposed after the test."""
    engine = create_async_engine(database_url)
    yield engine
    await engine.dispose()


@pytest.fixture
def record_store(store_engine):
    return RecordStore(store_engine)


@pytest_asyncio.fixture
async def test_client(store_engine):
    """
    HTTPX AsyncClient routed directly into an app bound to the test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    app = create_app(store=store_engine)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def unbound_client():
    """Client for an app whose records store has no database binding."""
    app = create_app(app_settings=Settings(database_url=""))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def legacy_table(store_engine):
    """
    A records table as the first release created it: no grade column,
    holding one row.
    """
    async with store_engine.begin() as conn:
        await conn.execute(text(
            "CREATE TABLE records ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " date TEXT NOT NULL,"
            " department TEXT NOT NULL,"
            " content TEXT NOT NULL,"
            " created_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
        ))
        await conn.execute(text(
            "INSERT INTO records (date, department, content) "
            "VALUES ('2024-01-15', '学生会', '旧记录')"
        ))
    return store_engine


@pytest.fixture
def sample_record():
    return {
        "date": "2024-01-15",
        "grade": "高一",
        "department": "学生会",
        "content": "检查教室卫生",
    }
