"""
Database Base Classes and Common Utilities

This module provides the foundation for all database models in the application.

Key Concepts:
--------------
1. DeclarativeBase: SQLAlchemy's base class that enables ORM functionality
2. CommonTableAttributes: identity + timestamps shared by every record
3. orm_registry: Central registry that tracks all models and their metadata
4. UTCDateTime: timestamps are always timezone-aware UTC, on every backend

Learning Resources:
- SQLAlchemy Declarative Base: https://docs.sqlalchemy.org/en/20/orm/declarative_config.html
- Custom Types: https://docs.sqlalchemy.org/en/20/core/custom_types.html
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Enum, MetaData, String, Uuid
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry
from sqlalchemy.types import TypeDecorator

from mediahub.core.exceptions import ValidationError


# ================================
# Naming Convention for Constraints
# ================================
# Consistent constraint names keep Alembic autogenerate stable.
#
# Format examples:
# - ix_users_email: Index on 'users' table, 'email' column
# - fk_devices_user_id_users: Foreign key from 'devices.user_id' to 'users'
# - ck_media_interactions_single_target: Check constraint
convention = {
    "ix": "ix_%(column_0_label)s",  # Index
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # Unique constraint
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # Check constraint
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # Foreign key
    "pk": "pk_%(table_name)s",  # Primary key
}

metadata = MetaData(naming_convention=convention)

orm_registry = registry(metadata=metadata)


# ================================
# Time Helpers
# ================================

def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    SQLite hands DateTime values back without tzinfo; naive values are
    therefore read as UTC, aware values are converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    DateTime column that always round-trips aware UTC values.

    PostgreSQL stores TIMESTAMP WITH TIME ZONE natively; SQLite drops the
    offset, so values are normalized to UTC on the way in and re-tagged as
    UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return ensure_utc(value)

    def process_result_value(self, value, dialect):
        return ensure_utc(value)


# ================================
# Base DeclarativeBase Class
# ================================
class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    AsyncAttrs adds ``obj.awaitable_attrs.<name>``: a relationship that was
    never loaded can be awaited instead of triggering implicit IO, which an
    AsyncSession does not allow.

    Usage:
        class Playlist(BaseModel):
            __tablename__ = "playlists"
            title: Mapped[str] = mapped_column(String255)
    """

    registry = orm_registry

    metadata = metadata

    __tablename__: str


# ================================
# Common Table Attributes Mixin
# ================================
class CommonTableAttributes:
    """
    Mixin that provides identity and timestamps to all models.

    Common Fields Added:
    --------------------
    - id: UUID4 primary key, generated on the client when the object is
      first flushed. Collision resistant, never reassigned.
    - created_at: When the record was created (set once, never changes)
    - updated_at: When the record was last modified (advanced on every UPDATE)

    A write that forces an ``id`` already present in the table is rejected by
    the primary key; services translate that into ``ConflictError``.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="UUID4 primary key"
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        nullable=False,
        comment="Timestamp when record was created (UTC)"
    )

    # onupdate runs for every UPDATE the ORM emits for this row, including
    # bulk UPDATE statements built with sqlalchemy.update().
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        comment="Timestamp when record was last updated (UTC)"
    )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

    def dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Useful for logging and tests. Opaque secrets are left to the caller
        to drop.
        """
        return {
            column.name: getattr(self, column.key, None)
            for column in self.__table__.columns
        }


# ================================
# Convenient Base Model
# ================================
class BaseModel(Base, CommonTableAttributes):
    """
    Ready-to-use base class for all application models.

    Combines:
    - Base: SQLAlchemy ORM functionality
    - CommonTableAttributes: id, created_at, updated_at fields
    """

    __abstract__ = True


# ================================
# String Length Constraints
# ================================
String20 = String(20)  # Example: resolution, status codes
String50 = String(50)  # Example: format tags, interaction types
String100 = String(100)  # Example: genre, codec
String128 = String(128)  # Example: pin digest
String255 = String(255)  # Example: email, URLs, titles
String500 = String(500)  # Example: storage paths


# ================================
# Enum Columns
# ================================

def enum_column(enum_cls: type[enum.Enum], length: int = 20) -> Enum:
    """
    Portable column type for a ``str`` enum.

    Stores the enum *values* ("IN-REVIEW", "pending") rather than member
    names, as VARCHAR plus a CHECK constraint, so the same schema works on
    PostgreSQL and SQLite.

    Usage:
        status: Mapped[StudioStatus] = mapped_column(enum_column(StudioStatus))
    """
    return Enum(
        enum_cls,
        name=enum_cls.__name__.lower(),
        native_enum=False,
        create_constraint=True,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


def coerce_enum(enum_cls: type[enum.Enum], value: Any, field: str) -> Any:
    """
    Convert a raw value to ``enum_cls`` or raise ValidationError.

    Used by the ``@validates`` hooks guarding enum columns. ``None`` passes
    through; nullability is the column's business.
    """
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid value for {field}",
            {"field": field, "value": value, "allowed": [m.value for m in enum_cls]},
        ) from e
