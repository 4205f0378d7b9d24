"""
Media Service

Creates and maintains media assets and playlists.

Operations:
-----------
- create_asset / get_asset: any kind, dispatched on the ``kind`` tag
- archive_asset / delete_asset / replace_content: lifecycle and versioning
- increment_view_count / increment_download_count: atomic counters
- check_access: DRM / region / mode evaluation with denial logging
- create_playlist / add_to_playlist / remove_from_playlist /
  list_playlist_items / delete_playlist

Counters:
---------
Counters are never read-modified-written in Python. Each increment is a
single ``UPDATE ... SET view_count = view_count + 1 ... RETURNING
view_count``, so N concurrent increments from N sessions always add N.
"""

import uuid
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from mediahub.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from mediahub.core.logging import get_logger
from mediahub.db.base import utc_now
from mediahub.db.session import flush_or_raise
from mediahub.models.media import (
    PLAYLIST_COLLECTIONS,
    AccessMode,
    MediaAsset,
    MediaKind,
    Playlist,
    access_denial_reason,
    media_model,
)
from mediahub.models.studio import Studio
from mediahub.schemas.base import parse_input
from mediahub.schemas.media import (
    MEDIA_CREATE_SCHEMAS,
    ContentReplace,
    MediaAssetCreate,
    PlaylistCreate,
)
from mediahub.services.lookup import get_or_raise, require_reference

logger = get_logger(__name__)


class MediaService:
    """
    Service for media assets and playlists.

    Usage:
    ------
    service = MediaService(db)

    playlist = await service.create_playlist({"title": "Live", "studio_id": studio.id})
    track = await service.create_asset("music", {..., "playlist_id": playlist.id})

    views = await service.increment_view_count("music", track.id)
    allowed = await service.check_access("music", track.id, region="DE")
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the media service.

        Args:
            db: Database session
        """
        self.db = db

    # ================================
    # Assets
    # ================================

    async def create_asset(
        self,
        kind: Union[MediaKind, str],
        data: Union[MediaAssetCreate, Mapping[str, Any]],
    ) -> MediaAsset:
        """
        Create an asset of the given kind.

        Raises:
            ValidationError: malformed input or unknown playlist_id
            ConflictError: id already taken
        """
        model = media_model(kind)
        payload = parse_input(MEDIA_CREATE_SCHEMAS[model.kind], data)

        asset = model(**payload.model_dump(exclude_none=True, exclude={"playlist_id"}))
        if payload.playlist_id is not None:
            asset.playlist = await require_reference(
                self.db, Playlist, payload.playlist_id, "playlist_id"
            )
        self.db.add(asset)
        await flush_or_raise(self.db, model.__name__, id=payload.id)

        logger.info(
            "media_asset_created",
            kind=str(model.kind),
            asset_id=str(asset.id),
            playlist_id=str(asset.playlist_id) if asset.playlist_id else None,
        )
        return asset

    async def get_asset(self, kind: Union[MediaKind, str], asset_id: uuid.UUID) -> MediaAsset:
        """Get an asset by kind and id or raise NotFoundError."""
        return await get_or_raise(self.db, media_model(kind), asset_id)

    async def archive_asset(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        at: Optional[datetime] = None,
    ) -> MediaAsset:
        """Archive an asset. Raises InvalidStateError if it is deleted."""
        asset = await self.get_asset(kind, asset_id)
        asset.archive(at)
        await flush_or_raise(self.db, type(asset).__name__, id=asset_id)

        logger.info("media_asset_archived", kind=str(asset.kind), asset_id=str(asset.id))
        return asset

    async def delete_asset(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        at: Optional[datetime] = None,
    ) -> MediaAsset:
        """Soft-delete an asset. The row stays, in the terminal DELETED state."""
        asset = await self.get_asset(kind, asset_id)
        asset.soft_delete(at)
        await flush_or_raise(self.db, type(asset).__name__, id=asset_id)

        logger.info("media_asset_deleted", kind=str(asset.kind), asset_id=str(asset.id))
        return asset

    async def replace_content(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        data: Union[ContentReplace, Mapping[str, Any]],
    ) -> MediaAsset:
        """
        Point an asset at new content, bumping its version by one.

        Raises:
            ValidationError: malformed input
            InvalidStateError: the asset is deleted
        """
        payload = parse_input(ContentReplace, data)
        asset = await self.get_asset(kind, asset_id)
        previous = asset.version
        asset.replace_content(**payload.model_dump(exclude_none=True))
        await flush_or_raise(self.db, type(asset).__name__, id=asset_id)

        logger.info(
            "media_content_replaced",
            kind=str(asset.kind),
            asset_id=str(asset.id),
            previous_version=previous,
            version=asset.version,
        )
        return asset

    # ================================
    # Counters
    # ================================

    async def _increment(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        column: str,
        at: Optional[datetime],
    ) -> int:
        model = media_model(kind)
        table = model.__table__
        at = at or utc_now()

        result = await self.db.execute(
            update(table)
            .where(table.c.id == asset_id)
            .values({
                column: table.c[column] + 1,
                "last_accessed_at": at,
                "updated_at": at,
            })
            .returning(table.c[column])
        )
        value = result.scalar_one_or_none()
        if value is None:
            raise NotFoundError(
                f"{model.__name__} not found",
                {"entity": model.__name__, "id": str(asset_id)},
            )

        # Keep an already loaded instance in step without a reload
        cached = self.db.sync_session.identity_map.get(self.db.identity_key(model, asset_id))
        if cached is not None:
            set_committed_value(cached, column, value)
            set_committed_value(cached, "last_accessed_at", at)
            set_committed_value(cached, "updated_at", at)

        logger.debug(
            "media_counter_incremented",
            kind=str(model.kind),
            asset_id=str(asset_id),
            column=column,
            value=value,
        )
        return value

    async def increment_view_count(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        at: Optional[datetime] = None,
    ) -> int:
        """Atomically add one view; returns the new count."""
        return await self._increment(kind, asset_id, "view_count", at)

    async def increment_download_count(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        at: Optional[datetime] = None,
    ) -> int:
        """Atomically add one download; returns the new count."""
        return await self._increment(kind, asset_id, "download_count", at)

    # ================================
    # Access
    # ================================

    async def check_access(
        self,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
        region: Optional[str] = None,
        mode: Union[AccessMode, str] = AccessMode.STREAM,
        now: Optional[datetime] = None,
    ) -> bool:
        """Evaluate access to a stored asset, logging the reason for a denial."""
        asset = await self.get_asset(kind, asset_id)
        reason = access_denial_reason(asset, region=region, mode=mode, now=now)
        if reason is not None:
            logger.info(
                "media_access_denied",
                kind=str(asset.kind),
                asset_id=str(asset.id),
                region=region,
                mode=str(mode),
                reason=reason,
            )
            return False
        return True

    # ================================
    # Playlists
    # ================================

    async def create_playlist(self, data: Union[PlaylistCreate, Mapping[str, Any]]) -> Playlist:
        """
        Create a playlist, optionally owned by a studio.

        Raises:
            ValidationError: malformed input or unknown studio_id
            ConflictError: id already taken
        """
        payload = parse_input(PlaylistCreate, data)
        playlist = Playlist(**payload.model_dump(exclude_none=True, exclude={"studio_id"}))
        if payload.studio_id is not None:
            playlist.studio = await require_reference(self.db, Studio, payload.studio_id, "studio_id")
        self.db.add(playlist)
        await flush_or_raise(self.db, "Playlist", id=payload.id)

        logger.info(
            "playlist_created",
            playlist_id=str(playlist.id),
            studio_id=str(playlist.studio_id) if playlist.studio_id else None,
        )
        return playlist

    async def get_playlist(self, playlist_id: uuid.UUID) -> Playlist:
        """Get a playlist by id or raise NotFoundError."""
        return await get_or_raise(self.db, Playlist, playlist_id)

    async def _load_items(self, playlist: Playlist) -> list[MediaAsset]:
        for name in PLAYLIST_COLLECTIONS:
            await getattr(playlist.awaitable_attrs, name)
        return playlist.items()

    async def add_to_playlist(
        self,
        playlist_id: uuid.UUID,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
    ) -> MediaAsset:
        """
        Put an asset in a playlist, moving it out of any previous one.

        Raises:
            NotFoundError: unknown playlist or asset
            InvalidStateError: the asset is deleted
        """
        playlist = await self.get_playlist(playlist_id)
        asset = await self.get_asset(kind, asset_id)
        if asset.is_deleted:
            raise InvalidStateError(
                "Cannot add a deleted asset to a playlist",
                {"asset_id": str(asset.id), "playlist_id": str(playlist.id)},
            )

        collection = await getattr(playlist.awaitable_attrs, asset.__playlist_collection__)
        if asset not in collection:
            collection.append(asset)
        await flush_or_raise(self.db, "Playlist", id=playlist_id)

        logger.info(
            "playlist_item_added",
            playlist_id=str(playlist.id),
            kind=str(asset.kind),
            asset_id=str(asset.id),
        )
        return asset

    async def remove_from_playlist(
        self,
        playlist_id: uuid.UUID,
        kind: Union[MediaKind, str],
        asset_id: uuid.UUID,
    ) -> MediaAsset:
        """
        Take an asset out of a playlist. The asset itself is kept.

        Raises:
            ValidationError: the asset is not in this playlist
        """
        playlist = await self.get_playlist(playlist_id)
        asset = await self.get_asset(kind, asset_id)
        if asset.playlist_id != playlist.id:
            raise ValidationError(
                "Asset is not in this playlist",
                {"asset_id": str(asset.id), "playlist_id": str(playlist.id)},
            )

        collection = await getattr(playlist.awaitable_attrs, asset.__playlist_collection__)
        collection.remove(asset)
        await flush_or_raise(self.db, "Playlist", id=playlist_id)

        logger.info(
            "playlist_item_removed",
            playlist_id=str(playlist.id),
            kind=str(asset.kind),
            asset_id=str(asset.id),
        )
        return asset

    async def list_playlist_items(self, playlist_id: uuid.UUID) -> list[MediaAsset]:
        """All assets of a playlist, oldest first."""
        playlist = await self.get_playlist(playlist_id)
        return await self._load_items(playlist)

    async def delete_playlist(self, playlist_id: uuid.UUID) -> None:
        """Delete a playlist and the assets it owns."""
        playlist = await self.get_playlist(playlist_id)
        item_count = len(await self._load_items(playlist))
        await self.db.delete(playlist)
        await flush_or_raise(self.db, "Playlist", id=playlist_id)

        logger.info("playlist_deleted", playlist_id=str(playlist_id), items_deleted=item_count)
