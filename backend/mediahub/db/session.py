"""
Database Session Management

This module handles the database connection lifecycle and session management.

Key Concepts:
--------------
1. Engine: The core of SQLAlchemy's database communication
2. Session: A unit of work (one transaction per logical operation)
3. Connection Pooling: Reusing database connections for performance
4. Async Operations: Non-blocking database queries

Architecture Flow:
------------------
Process Start → Create Engine → Connection Pool Ready
↓
Operation → session_scope() → Execute → Commit (or Rollback on error) → Close
↓
Process Shutdown → Dispose Engine → Close All Connections

Learning Resources:
- SQLAlchemy Engine: https://docs.sqlalchemy.org/en/20/core/engines.html
- Async Sessions: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from mediahub.core.config import settings
from mediahub.core.exceptions import ConflictError, MediaHubError, ValidationError
from mediahub.core.logging import get_logger

logger = get_logger(__name__)


# ================================
# Database Engine Configuration
# ================================

def get_engine_config(url: str) -> dict[str, Any]:
    """
    Configure the database engine based on backend and environment.

    Pool Types:
    -----------
    1. AsyncAdaptedQueuePool (PostgreSQL, development/production):
       - Maintains pool_size connections open
       - Can create max_overflow extra connections if needed
    2. NullPool (SQLite, testing/staging):
       - A fresh connection per checkout, closed on release
       - Every session really is a separate client of the database file,
         so uniqueness and write contention behave like production

    SQLite writers wait up to DB_BUSY_TIMEOUT seconds on a locked file
    instead of failing immediately.
    """
    config: dict[str, Any] = {
        "echo": settings.DB_ECHO,
    }

    if url.startswith("sqlite"):
        config.update({
            "poolclass": NullPool,
            "connect_args": {"timeout": settings.DB_BUSY_TIMEOUT},
        })
        logger.info(
            "configuring_database_engine",
            backend="sqlite",
            pool_type="NullPool",
        )
        return config

    config.update({
        # Test connection health before using
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
        "connect_args": {
            "server_settings": {
                "application_name": settings.APP_NAME,
            }
        },
    })

    if settings.is_development or settings.is_production:
        logger.info(
            "configuring_database_engine",
            backend="postgresql",
            environment=settings.APP_ENV,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
        config.update({
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
        })
        if settings.is_production:
            config["pool_recycle"] = 7200
    else:
        logger.info(
            "configuring_database_engine",
            backend="postgresql",
            environment=settings.APP_ENV,
            pool_type="NullPool",
        )
        config.update({"poolclass": NullPool})
        for key in ("pool_recycle", "pool_timeout"):
            config.pop(key)

    return config


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(url: Optional[str] = None) -> AsyncEngine:
    """
    Create an async database engine.

    Args:
        url: Connection string, defaults to DATABASE_URL. Tests pass a
            per-test SQLite file here.
    """
    url = url or settings.DATABASE_URL
    engine_config = get_engine_config(url)

    engine = create_async_engine(url, **engine_config)

    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    logger.info(
        "database_engine_created",
        driver=engine.dialect.driver,
        pool_size=engine_config.get("pool_size", "NullPool"),
    )

    return engine


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build a session factory for an engine.

    autoflush=False: changes go to the database on explicit flush/commit.
    expire_on_commit=False: objects stay readable after commit without a
    refresh round-trip.
    """
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


# ================================
# Global Engine Instance
# ================================
# One engine per process; it owns the pool and is safe to share.
engine: AsyncEngine = create_engine()

AsyncSessionLocal = create_session_factory(engine)


# ================================
# Session Lifecycle Functions
# ================================

@asynccontextmanager
async def session_scope(
    factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Run one unit of work.

    Commits when the block exits normally. Any exception rolls the whole
    transaction back and propagates, so a failed validation, conflict or
    codec fault never leaves a partial record behind.

    Usage:
        async with session_scope() as session:
            notification = await NotificationService(session).create(data)
    """
    factory = factory or AsyncSessionLocal
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(
                "database_session_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            await session.rollback()
            raise


@asynccontextmanager
async def side_session_scope(
    bind: AsyncEngine,
    lock_timeout: Optional[float] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a short unit of work on its own connection.

    Whatever the caller has staged in its own session is neither committed
    nor rolled back by this. ``lock_timeout`` (seconds) caps how long a
    write here waits on locks held by other transactions, including the
    caller's own open one.

    Usage:
        async with side_session_scope(session.bind, lock_timeout=2.0) as side:
            await side.execute(update(...))
    """
    async with session_scope(create_session_factory(bind)) as session:
        if lock_timeout is not None:
            timeout_ms = int(lock_timeout * 1000)
            if bind.dialect.name == "sqlite":
                await session.execute(text(f"PRAGMA busy_timeout = {timeout_ms}"))
            elif bind.dialect.name == "postgresql":
                await session.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
        yield session


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """
    Initialize the database.

    Verifies the connection and, in development, creates missing tables.
    Production schemas are managed by Alembic migrations.
    """
    bind = bind or engine
    logger.info("initializing_database")

    try:
        async with bind.begin() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("database_connection_successful")

        if settings.is_development:
            # Import models so every table is registered on the metadata
            from mediahub.db.base import Base
            import mediahub.models  # noqa: F401

            async with bind.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info("database_tables_created")

    except Exception as e:
        logger.error(
            "database_initialization_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise


async def close_db(bind: Optional[AsyncEngine] = None) -> None:
    """Close the database connection pool."""
    bind = bind or engine
    logger.info("closing_database_connections")

    try:
        await bind.dispose()
        logger.info("database_connections_closed")

    except Exception as e:
        logger.error(
            "database_closure_failed",
            error=str(e),
            error_type=type(e).__name__,
        )


async def check_db_health(bind: Optional[AsyncEngine] = None) -> bool:
    """Return True if the database answers a trivial query."""
    bind = bind or engine
    try:
        async with bind.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    except Exception as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False


# ================================
# Constraint Violations
# ================================

def translate_integrity_error(error: IntegrityError, entity: str, **context: Any) -> MediaHubError:
    """
    Map a store constraint violation onto the domain error taxonomy.

    UNIQUE and PRIMARY KEY violations become ConflictError; FOREIGN KEY,
    NOT NULL and CHECK violations become ValidationError.
    """
    reason = str(error.orig).lower()
    details = {"entity": entity, **{key: str(value) for key, value in context.items()}}
    if "unique" in reason or "duplicate" in reason or "primary key" in reason:
        return ConflictError(f"{entity} already exists", details)
    return ValidationError(f"{entity} violates a database constraint", {**details, "reason": str(error.orig)})


async def flush_or_raise(session: AsyncSession, entity: str, **context: Any) -> None:
    """
    Flush pending changes, translating constraint violations.

    The session must be rolled back after a failure; ``session_scope`` does
    that when the error propagates out of it.
    """
    try:
        await session.flush()
    except IntegrityError as e:
        error = translate_integrity_error(e, entity, **context)
        logger.warning(
            "database_constraint_violation",
            entity=entity,
            error_type=type(error).__name__,
            reason=str(e.orig),
        )
        raise error from e
