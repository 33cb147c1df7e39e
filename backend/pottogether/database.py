"""
PotTogether Backend: Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory and FastAPI dependency.
How:   A `Database` object owns one engine and one session factory. The
       application builds it in `create_app()` and stores it on
       `app.state.database`; every request (and every script or test) opens
       its own session from it. Nothing in the services layer holds a
       process-wide connection.
When:  Engine is created with the app; sessions are created per operation.

Connection Pooling Strategy (PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (tests, local tinkering) skip the pool arguments.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pottogether.config import settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, Alembic and the test
    fixtures that create tables directly.
    """
    pass


def _engine_kwargs(url: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if url.startswith("sqlite"):
        # 30s busy timeout so concurrent writers queue instead of failing
        kwargs["connect_args"] = {"timeout": 30}
        return kwargs
    kwargs.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return kwargs


class Database:
    """
    Owner of the engine and the session factory.

    One instance per application (or per test). Passed explicitly to
    whatever needs sessions.
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[AsyncEngine] = None):
        self.url = url or settings.database_url
        self.engine = engine or create_async_engine(self.url, **_engine_kwargs(self.url))
        # expire_on_commit=False: response building reads attributes after commit
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """
        One transaction: commit when the block exits cleanly, roll back on
        any exception (domain errors included), always close.

        Example:
            async with database.session_scope() as db:
                await room_service.join_room(db, user_id=8, room_id=1)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Creates every table directly (tests and local development only)."""
        import pottogether.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Closes every pooled connection; called on application shutdown."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one transactional session per request.

    How it works:
        1. Opens a session from the Database stored on app.state
        2. Yields it to the route handler
        3. Commits if the handler returned normally
        4. Rolls back on any exception, then re-raises it for the
           exception handlers

    Example usage in a route:
        @router.post("/rooms/{room_id}/join")
        async def join(room_id: int, db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session_scope() as session:
        yield session
