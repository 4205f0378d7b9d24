"""
Interaction Ledger Model

Append-only record of a user acting on exactly one media item or playlist
(watched it, saw it, paid for it).

Rules:
------
- every record belongs to exactly one user
- exactly one of music_id / photo_id / video_id / playlist_id is set,
  checked by the ledger before insert and by a table CHECK constraint
- records are immutable: any UPDATE of a persisted record is rejected by a
  ``before_update`` mapper hook. Corrections are new records.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, event
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from mediahub.core.exceptions import InvalidStateError
from mediahub.db.base import BaseModel, UTCDateTime, coerce_enum, enum_column

if TYPE_CHECKING:
    from mediahub.models.media import Music, Photo, Playlist, Video
    from mediahub.models.user import User


class InteractionType(str, enum.Enum):
    """What the user did."""
    WATCHED = "WATCHED"
    SEEN = "SEEN"
    PAID = "PAID"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


# Column names of the mutually exclusive target references
TARGET_COLUMNS = ("music_id", "photo_id", "video_id", "playlist_id")


def _single_target_sql() -> str:
    terms = " + ".join(
        f"(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)" for column in TARGET_COLUMNS
    )
    return f"{terms} = 1"


class MediaInteraction(BaseModel):
    """
    One user action against one target.

    Table: media_interactions
    -------------------------
    - interaction_type: WATCHED, SEEN or PAID
    - timestamp: when the action happened (caller supplied)
    - user_id: required
    - music_id / photo_id / video_id / playlist_id: exactly one set
    """

    __tablename__ = "media_interactions"

    interaction_type: Mapped[InteractionType] = mapped_column(
        enum_column(InteractionType),
        nullable=False,
    )

    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    music_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("music.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    photo_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("photos.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    video_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    playlist_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    user: Mapped["User"] = relationship("User", back_populates="interactions")

    music: Mapped[Optional["Music"]] = relationship("Music")

    photo: Mapped[Optional["Photo"]] = relationship("Photo")

    video: Mapped[Optional["Video"]] = relationship("Video")

    playlist: Mapped[Optional["Playlist"]] = relationship("Playlist")

    __table_args__ = (
        CheckConstraint(_single_target_sql(), name="single_target"),
        # A user's history, newest first
        Index("ix_media_interactions_user_timestamp", "user_id", "timestamp"),
    )

    @validates("interaction_type")
    def validate_interaction_type(self, key, value):
        return coerce_enum(InteractionType, value, key)

    @property
    def target_id(self) -> Optional[uuid.UUID]:
        for column in TARGET_COLUMNS:
            value = getattr(self, column)
            if value is not None:
                return value
        return None

    @property
    def target_kind(self) -> Optional[str]:
        """Target kind: music, photo, video or playlist."""
        for column in TARGET_COLUMNS:
            if getattr(self, column) is not None:
                return column[: -len("_id")]
        return None

    def __repr__(self) -> str:
        return (
            f"MediaInteraction(id={self.id}, user_id={self.user_id}, "
            f"type={self.interaction_type}, {self.target_kind}={self.target_id})"
        )


@event.listens_for(MediaInteraction, "before_update")
def _reject_interaction_update(mapper, connection, target: MediaInteraction) -> None:
    raise InvalidStateError(
        "Interaction records are immutable",
        {"interaction_id": str(target.id)},
    )
