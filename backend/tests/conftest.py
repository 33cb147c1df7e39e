"""
PotTogether Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before any `pottogether` import so the
       settings object never points at a real PostgreSQL or storage root.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── fixed_now: Pinned "now" (Thursday 2026-10-15 12:00 UTC)
    ├── database: Real SQLite file database with every table created
    ├── seeded_database: database + users 1..12 and a small ingredient catalog
    ├── temp_storage / object_store: ObjectStore rooted in tmp_path
    ├── sample_image_bytes: Minimal JPEG bytes for upload tests
    ├── auth_headers: Builds an Authorization header for a user id
    └── test_client: HTTPX AsyncClient bound to an app using the above
"""

import os
import tempfile
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before any app import)
# ══════════════════════════════════════════════════════════════════════════

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./pottogether_test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-for-production"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="pottogether_test_")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["TIMEZONE"] = "UTC"
os.environ["LEVEL_STEP_SECONDS"] = "3600"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from pottogether.database import Database  # noqa: E402
from pottogether.identity import create_access_token  # noqa: E402
from pottogether.models import Ingredient, User  # noqa: E402
from pottogether.services.object_store import ObjectStore, get_object_store  # noqa: E402

FIXED_NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Unit-Test Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession.

    Usage:
        mock_db_session.execute.side_effect = SQLAlchemyError("boom")
        with pytest.raises(DatabaseError):
            await room_service.join_room(mock_db_session, 1, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.scalars = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now):
    """A clock callable that always returns fixed_now."""
    return lambda: fixed_now


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database(tmp_path):
    """
    A fresh SQLite file database per test.

    A file (not :memory:) so that concurrent sessions see the same data.
    """
    db = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'pottogether.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def seeded_database(database):
    """
    Users 1..12 and four ingredients:
        1 tomato  (starter)      2 onion (starter)
        3 garlic  (level2)       4 basil (level3)
    """
    async with database.session_scope() as db:
        db.add_all([
            User(id=uid, username=f"cook{uid}", avatar=uid % 4, password_hash="x")
            for uid in range(1, 13)
        ])
        db.add_all([
            Ingredient(id=1, name="tomato", image="http://test/files/tomato.png", time_interval=1800, requirement=""),
            Ingredient(id=2, name="onion", image="http://test/files/onion.png", time_interval=900, requirement=""),
            Ingredient(id=3, name="garlic", image="http://test/files/garlic.png", time_interval=1200, requirement="level2"),
            Ingredient(id=4, name="basil", image="http://test/files/basil.png", time_interval=600, requirement="level3"),
        ])
    return database


# ══════════════════════════════════════════════════════════════════════════
# Storage Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def object_store(temp_storage):
    return ObjectStore(storage_root=temp_storage, public_base_url="http://test")


@pytest.fixture
def sample_image_bytes():
    """Smallest valid JPEG: SOI + JFIF header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def auth_headers():
    def build(user_id: int) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return build


@pytest_asyncio.fixture
async def test_client(seeded_database, object_store):
    """
    HTTPX AsyncClient talking to an app bound to the seeded SQLite database.

    ASGITransport does not run the lifespan, so the database is disposed by
    its own fixture.
    """
    from pottogether.main import create_app
    from pottogether.routes import files, health, ingredients, records

    app = create_app(database=seeded_database)
    # Override the dependency the routes actually hold, which differs from
    # the module-level import if object_store was reloaded by a test.
    for provider in {get_object_store, files.get_object_store, health.get_object_store,
                     ingredients.get_object_store, records.get_object_store}:
        app.dependency_overrides[provider] = lambda: object_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
