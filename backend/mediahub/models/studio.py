"""
Studio Model

A studio is a publishing identity owned by (at most) one user. It owns
playlists, and through them media, and can be the recipient of
notifications.

Database Tables:
----------------
- studios: many-to-1 with users (nullable owner)
"""

import enum
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from mediahub.core.exceptions import ValidationError
from mediahub.db.base import BaseModel, String255, coerce_enum, enum_column

if TYPE_CHECKING:
    from mediahub.models.media import Playlist
    from mediahub.models.notification import Notification
    from mediahub.models.user import User


class StudioStatus(str, enum.Enum):
    """
    Review status of a studio.

    New studios start IN-REVIEW until moderation approves or rejects them.
    """
    IN_REVIEW = "IN-REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class Studio(BaseModel):
    """
    Studio model.

    Table: studios
    --------------
    - status: review status, defaults to IN-REVIEW
    - name, description: required
    - picture_url: optional

    Relationships:
    --------------
    - user (many-to-1, nullable owner)
    - playlists (1-to-many, owned: deleted with the studio)
    - notifications (1-to-many, weak: nulled on delete)
    """

    __tablename__ = "studios"

    status: Mapped[StudioStatus] = mapped_column(
        enum_column(StudioStatus),
        nullable=False,
        default=StudioStatus.IN_REVIEW,
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(String255, nullable=False)

    description: Mapped[str] = mapped_column(String255, nullable=False)

    picture_url: Mapped[Optional[str]] = mapped_column(
        String255,
        nullable=True,
        default=None,
    )

    user: Mapped[Optional["User"]] = relationship(
        "User",
        back_populates="studios",
    )

    playlists: Mapped[list["Playlist"]] = relationship(
        "Playlist",
        back_populates="studio",
        cascade="all",
        lazy="selectin",
    )

    notifications: Mapped[list["Notification"]] = relationship(
        "Notification",
        back_populates="studio",
    )

    @validates("status")
    def validate_status(self, key, value):
        return coerce_enum(StudioStatus, value, key)

    @validates("name", "description")
    def validate_required_text(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError(f"{key} is required", {"field": key})
        return value

    def __repr__(self) -> str:
        return f"Studio(id={self.id}, name='{self.name}', status={self.status})"
