"""
Alembic Migration Environment

This file configures the Alembic migration environment.

What happens here:
------------------
1. Load application settings (database URL, etc.)
2. Import all models so Alembic can detect them
3. Configure connection to database
4. Run migrations (upgrade/downgrade)

Key Functions:
--------------
- run_migrations_offline(): Generate SQL without connecting to DB
- run_migrations_online(): Connect to DB and apply migrations

Both PostgreSQL (asyncpg) and SQLite (aiosqlite) URLs work; SQLite needs
batch mode for ALTER TABLE, which is why render_as_batch is on.
"""

import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

# Make the mediahub package importable when running from backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from mediahub.core.config import settings
from mediahub.db.base import Base

# Register every table on Base.metadata
import mediahub.models  # noqa: F401

# ================================
# Alembic Config Object
# ================================

config = context.config

# DATABASE_URL from settings replaces the placeholder in alembic.ini
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# ================================
# Metadata Target
# ================================
# `alembic revision --autogenerate` diffs the database against this.
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Emits the SQL instead of executing it, for review or manual
    application.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations with the given connection."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Create an async engine and run migrations through run_sync."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,  # Don't use connection pooling for migrations
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Connect to the database and apply migrations."""
    asyncio.run(run_async_migrations())


# ================================
# Main Execution
# ================================

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
