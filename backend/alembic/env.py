"""
Alembic environment for Swift Assistant.

Runs migrations through the async engine, reading DATABASE_URL from the
application settings. Supabase-managed schemas are left out of
autogenerate so ``auth.users`` is never diffed against ``public.users``.
"""

import asyncio
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

# Add the backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swift_assistant.config.settings import settings  # noqa: E402
from swift_assistant.infrastructure.db import models  # noqa: E402,F401
from swift_assistant.infrastructure.db.database import normalize_database_url  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata

SUPABASE_SCHEMAS = {"auth", "storage", "realtime", "extensions", "graphql", "graphql_public", "vault"}


def include_object(object, name, type_, reflected, compare_to):
    """Skip tables that live in Supabase-managed schemas."""
    if type_ == "table" and getattr(object, "schema", None) in SUPABASE_SCHEMAS:
        return False
    return True


def migration_url() -> str:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL must be set to run migrations")
    return normalize_database_url(settings.database_url)


def configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    configure(
        url=migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection) -> None:
    configure(connection=connection, compare_server_default=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(migration_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
