"""Database utilities and session management."""

from mediahub.db.base import (
    Base,
    BaseModel,
    UTCDateTime,
    coerce_enum,
    ensure_utc,
    enum_column,
    utc_now,
    String20,
    String50,
    String100,
    String128,
    String255,
    String500,
)
from mediahub.db.session import (
    AsyncSessionLocal,
    check_db_health,
    close_db,
    create_engine,
    create_session_factory,
    engine,
    flush_or_raise,
    init_db,
    session_scope,
    side_session_scope,
    translate_integrity_error,
)

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "UTCDateTime",
    "enum_column",
    "coerce_enum",
    # Time helpers
    "utc_now",
    "ensure_utc",
    # String types
    "String20",
    "String50",
    "String100",
    "String128",
    "String255",
    "String500",
    # Session management
    "engine",
    "AsyncSessionLocal",
    "create_engine",
    "create_session_factory",
    "session_scope",
    "side_session_scope",
    "init_db",
    "close_db",
    "check_db_health",
    "flush_or_raise",
    "translate_integrity_error",
]
