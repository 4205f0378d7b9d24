"""
User Models

This module contains the account side of the actor graph.

Models Included:
----------------
1. User - Account identity (email/phone, opaque credentials)
2. Device - A client installation bound to at most one user (push target)
3. AccountType (Enum) - WATCHER or STUDIO
4. SignupChannel (Enum) - Where the account signed up

Database Tables:
----------------
- users: Account data, unique email and unique (nullable) phone number
- devices: Devices, many-to-1 with users (nullable binding)

Ownership:
----------
A user owns its devices, studios and interaction records: deleting the user
deletes them. Notifications addressed to the user are NOT owned; the
deletion path in ``AccountService.delete_user`` nulls their ``user_id``.

Learning Resources:
-------------------
- SQLAlchemy Relationships: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html
- Cascades: https://docs.sqlalchemy.org/en/20/orm/cascades.html
"""

import enum
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from mediahub.core.exceptions import ValidationError
from mediahub.db.base import (
    BaseModel,
    String50,
    String128,
    String255,
    UTCDateTime,
    coerce_enum,
    enum_column,
    utc_now,
)

# Type checking imports - only for type hints, avoids circular imports
if TYPE_CHECKING:
    from mediahub.models.interaction import MediaInteraction
    from mediahub.models.notification import Notification
    from mediahub.models.studio import Studio


# ================================
# Enums for Choice Fields
# ================================

class AccountType(str, enum.Enum):
    """
    Kind of account.

    WATCHER accounts consume media; STUDIO accounts publish through studios.
    """
    WATCHER = "WATCHER"
    STUDIO = "STUDIO"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class SignupChannel(str, enum.Enum):
    """Where the account signed up."""
    WEB = "WEB"
    MOBILE = "MOBILE"
    WAITLIST = "WAITLIST"
    CAMPAIGN = "CAMPAIGN"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


# ================================
# User Model
# ================================

class User(BaseModel):
    """
    User account model.

    Table: users
    ------------
    Inherits from BaseModel: id (UUID), created_at, updated_at.

    Identity:
    ---------
    - email: required, unique across all users
    - phone_number: optional, unique when present (NULLs never collide)
    - secondary_email / secondary_phone_number: optional, not unique

    Credentials:
    ------------
    ``pin`` and ``password_hash`` are opaque secrets produced by the
    authentication layer. They are stored verbatim and never logged.

    Relationships:
    --------------
    - devices (1-to-many, owned)
    - studios (1-to-many, owned)
    - interactions (1-to-many, owned, append-only)
    - notifications (1-to-many, weak: nulled on delete)
    """

    __tablename__ = "users"

    account_type: Mapped[Optional[AccountType]] = mapped_column(
        enum_column(AccountType),
        nullable=True,
        default=None,
        comment="WATCHER or STUDIO"
    )

    channel: Mapped[Optional[SignupChannel]] = mapped_column(
        enum_column(SignupChannel),
        nullable=True,
        default=None,
        comment="Signup source (WEB, MOBILE, WAITLIST, CAMPAIGN)"
    )

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="Primary email address. Must be unique."
    )

    secondary_email: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True,
        default=None,
    )

    phone_number: Mapped[Optional[str]] = mapped_column(
        String50,
        unique=True,
        nullable=True,
        default=None,
        comment="Primary phone number. Unique when present."
    )

    secondary_phone_number: Mapped[Optional[str]] = mapped_column(
        String50,
        nullable=True,
        default=None,
    )

    validated_phone_number: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    validated_email: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    pin: Mapped[str] = mapped_column(
        String128,
        nullable=False,
        comment="Opaque PIN secret"
    )

    password_hash: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="Opaque password hash"
    )

    date_of_birth: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        default=None,
    )

    # ================================
    # Relationships
    # ================================

    devices: Mapped[list["Device"]] = relationship(
        "Device",
        back_populates="user",
        cascade="all",
        lazy="selectin",
    )
    # cascade="all" without delete-orphan: a device removed from the
    # collection becomes unbound (user_id NULL), it is not deleted.

    studios: Mapped[list["Studio"]] = relationship(
        "Studio",
        back_populates="user",
        cascade="all",
        lazy="selectin",
    )

    interactions: Mapped[list["MediaInteraction"]] = relationship(
        "MediaInteraction",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    notifications: Mapped[list["Notification"]] = relationship(
        "Notification",
        back_populates="user",
    )
    # No delete cascade: the owner's deletion path nulls notification.user_id

    @validates("account_type")
    def validate_account_type(self, key, value):
        return coerce_enum(AccountType, value, key)

    @validates("channel")
    def validate_channel(self, key, value):
        return coerce_enum(SignupChannel, value, key)

    @validates("email")
    def validate_email(self, key, value):
        if not value or not str(value).strip():
            raise ValidationError("email is required", {"field": key})
        return str(value).strip().lower()

    @validates("phone_number")
    def validate_phone_number(self, key, value):
        # Empty strings would all collide on the unique index
        if value is not None and not str(value).strip():
            return None
        return value

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}')"


# ================================
# Device Model
# ================================

class Device(BaseModel):
    """
    A client installation that can receive push notifications.

    Table: devices
    --------------
    Lifecycle:
    ----------
    1. register: row created, ``active`` False, optionally bound to a user
    2. login: ``active`` True, ``last_logged_in_time`` stamped
    3. logout: ``active`` False, ``last_logged_out_time`` stamped

    Devices are never hard-deleted here except through their owner's
    cascade. ``fcm_token`` comes from the push token issuer and is stored
    verbatim.
    """

    __tablename__ = "devices"

    name: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True,
        default=None,
        comment="Human-readable device name"
    )

    fcm_token: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True,
        default=None,
        comment="Push token, stored as issued"
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    last_logged_in_time: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utc_now,
    )

    last_logged_out_time: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        default=None,
    )

    user: Mapped[Optional["User"]] = relationship(
        "User",
        back_populates="devices",
    )

    def login(self, at: Optional[datetime] = None) -> None:
        """Mark the device as logged in."""
        self.active = True
        self.last_logged_in_time = at or utc_now()

    def logout(self, at: Optional[datetime] = None) -> None:
        """Mark the device as logged out."""
        self.active = False
        self.last_logged_out_time = at or utc_now()

    def __repr__(self) -> str:
        return f"Device(id={self.id}, user_id={self.user_id}, active={self.active})"
