"""
Interaction Ledger

Append-only history of what users did with media and playlists.

The ledger exposes ``record`` and read helpers only. There is no update and
no delete: a persisted MediaInteraction is rejected by the model's
``before_update`` hook, and rows disappear only through the cascade of the
user or target they reference.
"""

import uuid
from datetime import datetime
from typing import Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.core.exceptions import ValidationError
from mediahub.core.logging import get_logger
from mediahub.db.base import BaseModel, coerce_enum
from mediahub.db.session import flush_or_raise
from mediahub.models.interaction import InteractionType, MediaInteraction
from mediahub.models.media import Music, Photo, Playlist, Video
from mediahub.models.user import User
from mediahub.services.lookup import require_reference

logger = get_logger(__name__)

# Target kind -> model
TARGET_MODELS: dict[str, type[BaseModel]] = {
    "music": Music,
    "photo": Photo,
    "video": Video,
    "playlist": Playlist,
}

# A target is either a loaded model instance or a {kind: id} mapping, e.g.
# {"music": track_id}. Keys may also be spelled as columns ("music_id").
InteractionTarget = Union[Music, Photo, Video, Playlist, Mapping[str, Optional[uuid.UUID]]]


def resolve_target(target: InteractionTarget) -> tuple[str, uuid.UUID]:
    """
    Reduce a target to exactly one (kind, id) pair.

    Raises:
        ValidationError: zero or several targets, or an unknown kind
    """
    for kind, model in TARGET_MODELS.items():
        if isinstance(target, model):
            return kind, target.id

    if not isinstance(target, Mapping):
        raise ValidationError(
            "Interaction target must be a media item, a playlist or a {kind: id} mapping",
            {"type": type(target).__name__},
        )

    given: dict[str, uuid.UUID] = {}
    for key, value in target.items():
        kind = key[: -len("_id")] if key.endswith("_id") else key
        if kind not in TARGET_MODELS:
            raise ValidationError(
                f"Unknown interaction target kind: {key}",
                {"allowed": list(TARGET_MODELS)},
            )
        if value is None:
            continue
        try:
            given[kind] = value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        except ValueError as e:
            raise ValidationError(
                f"Invalid {kind} id",
                {"field": f"{kind}_id", "value": str(value)},
            ) from e

    if len(given) != 1:
        raise ValidationError(
            "Interaction must reference exactly one of music, photo, video or playlist",
            {"targets": sorted(given)},
        )
    return next(iter(given.items()))


class InteractionLedger:
    """
    Records and reads user interactions.

    Usage:
    ------
    ledger = InteractionLedger(db)

    await ledger.record(user.id, {"video": video.id}, "WATCHED", now)
    history = await ledger.history_for_user(user.id)
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the ledger.

        Args:
            db: Database session
        """
        self.db = db

    async def record(
        self,
        user_id: uuid.UUID,
        target: InteractionTarget,
        interaction_type: Union[InteractionType, str],
        timestamp: datetime,
    ) -> MediaInteraction:
        """
        Append one interaction record.

        Identical calls append identical (but distinct) records.

        Raises:
            ValidationError: not exactly one target, unknown interaction
                type, missing timestamp, or user/target does not exist
        """
        kind, target_id = resolve_target(target)
        interaction_type = coerce_enum(InteractionType, interaction_type, "interaction_type")
        if timestamp is None:
            raise ValidationError("timestamp is required", {"field": "timestamp"})

        await require_reference(self.db, User, user_id, "user_id")
        await require_reference(self.db, TARGET_MODELS[kind], target_id, f"{kind}_id")

        interaction = MediaInteraction(
            user_id=user_id,
            interaction_type=interaction_type,
            timestamp=timestamp,
            **{f"{kind}_id": target_id},
        )
        self.db.add(interaction)
        await flush_or_raise(self.db, "MediaInteraction")

        logger.info(
            "interaction_recorded",
            interaction_id=str(interaction.id),
            user_id=str(user_id),
            interaction_type=str(interaction_type),
            target_kind=kind,
            target_id=str(target_id),
        )
        return interaction

    async def history_for_user(
        self,
        user_id: uuid.UUID,
        limit: Optional[int] = None,
    ) -> list[MediaInteraction]:
        """A user's interactions, newest first."""
        query = (
            select(MediaInteraction)
            .where(MediaInteraction.user_id == user_id)
            .order_by(MediaInteraction.timestamp.desc(), MediaInteraction.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def history_for_target(
        self,
        target: InteractionTarget,
        limit: Optional[int] = None,
    ) -> list[MediaInteraction]:
        """Interactions against one media item or playlist, newest first."""
        kind, target_id = resolve_target(target)
        column = getattr(MediaInteraction, f"{kind}_id")
        query = (
            select(MediaInteraction)
            .where(column == target_id)
            .order_by(MediaInteraction.timestamp.desc(), MediaInteraction.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())
