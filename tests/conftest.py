"""
Pytest Configuration and Fixtures

Shared fixtures for the offline test suite: settings, an in-memory
SQLite database with the full schema, and small record builders.
Live-stack tests (marked ``live``) bring their own fixtures.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults — MUST be before any lectern imports.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that startup validation passes.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "lectern",
    "POSTGRES_PASSWORD": "lectern_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "lectern",
    "OPENAI_API_KEY": "mock",
    "REQUIRED_API_KEY": "test-api-key",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from lectern.core.config import Settings  # noqa: E402
from lectern.core.database import Database  # noqa: E402

SQLITE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with small chunks and a per-test training directory."""
    return Settings(
        POSTGRES_PASSWORD="lectern_password",
        OPENAI_API_KEY="mock",
        REQUIRED_API_KEY="test-api-key",
        CHUNK_SIZE=120,
        CHUNK_OVERLAP=3,
        MAX_FILE_SIZE=64 * 1024,
        TRAINING_DOCS_DIR=str(tmp_path / "training-docs"),
    )


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """
    In-memory SQLite database with every table created.

    StaticPool keeps a single connection, so all sessions opened from
    this Database see the same data for the duration of one test.
    """
    db = Database(SQLITE_URL, connect_retries=1, connect_delay=0)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as s:
        yield s

