"""
Alembic Migration Environment
===============================

What:  Applies the revisions in versions/ to the PotTogether database.
How:   The URL is settings.database_url unless the caller already set
       `sqlalchemy.url` on the Alembic config (the migration tests point it
       at a temporary SQLite file). Online runs go through an async engine
       with NullPool and hand a sync connection to Alembic via run_sync().
Who:   `alembic upgrade head` from backend/, and tests/test_migrations.py.
"""

import asyncio
import logging
from logging.config import fileConfig

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from alembic import context

from pottogether.config import settings
from pottogether.database import Base

# Registers user, room, pot, room_user, ingredient and record on Base.metadata
import pottogether.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    # Keep the application's loggers alive when migrations run in-process
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or settings.database_url


def skip_empty_autogenerate(context, revision, directives) -> None:
    """`alembic revision --autogenerate` writes nothing when the models match."""
    if getattr(config.cmd_opts, "autogenerate", False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No schema changes detected; no revision written.")


def configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        process_revision_directives=skip_empty_autogenerate,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emits SQL to stdout without connecting (alembic upgrade --sql)."""
    configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    # SQLite cannot ALTER constraints in place
    configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    engine = create_async_engine(database_url(), poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
