"""
Media Models

This module contains the media asset model and the playlist aggregate.

Models Included:
----------------
1. MediaAssetMixin - Column set shared by every asset kind (lifecycle,
   versioning, storage, analytics, rights)
2. Music, Photo, Video - Concrete assets, one table each, tagged with ``kind``
3. Playlist - Titled collection of assets, optionally owned by a studio
4. MediaKind, MediaStatus, AccessMode (Enums)

Composition, not Hierarchy:
---------------------------
There is no abstract "media" table and no polymorphic loading. Each
concrete class composes the shared column set from ``MediaAssetMixin``
(one level deep) and declares its own kind-specific columns plus an
explicit ``kind`` tag. Code that needs "any asset" works with
``MediaAsset`` (the union of the three) and dispatches on ``kind``.

Asset Lifecycle:
----------------
    active ──archive()──▶ archived
       │                     │
       └──soft_delete()──────┴──▶ deleted (terminal)

Access Evaluation:
------------------
``evaluate_access()`` is the single, side-effect free authority on whether
an asset may be streamed or downloaded by a requester in a given region.

Learning Resources:
-------------------
- Mixins: https://docs.sqlalchemy.org/en/20/orm/declarative_mixins.html
- JSON type: https://docs.sqlalchemy.org/en/20/core/type_basics.html#sqlalchemy.types.JSON
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, Optional, Union

from sqlalchemy import JSON, BigInteger, Boolean, CheckConstraint, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship, validates

from mediahub.core.exceptions import InvalidStateError, ValidationError
from mediahub.db.base import (
    BaseModel,
    String20,
    String50,
    String100,
    String255,
    String500,
    UTCDateTime,
    coerce_enum,
    ensure_utc,
    enum_column,
    utc_now,
)

if TYPE_CHECKING:
    from mediahub.models.studio import Studio


# ================================
# Enums
# ================================

class MediaKind(str, enum.Enum):
    """Discriminator for the three asset kinds."""
    MUSIC = "music"
    PHOTO = "photo"
    VIDEO = "video"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class MediaStatus(str, enum.Enum):
    """
    Asset lifecycle status.

    Status Flow:
    ------------
    ACTIVE → ARCHIVED → DELETED
    ACTIVE → DELETED

    DELETED is terminal.
    """
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class AccessMode(str, enum.Enum):
    """What a requester wants to do with an asset."""
    STREAM = "stream"
    DOWNLOAD = "download"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


def _normalize_tags(values: Optional[Iterable[str]], upper: bool = False) -> Optional[list[str]]:
    """Store a set of tags as a sorted, de-duplicated JSON list."""
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]
    tags = set()
    for value in values:
        tag = str(value).strip()
        if tag:
            tags.add(tag.upper() if upper else tag.lower())
    return sorted(tags)


# ================================
# Shared Asset Columns
# ================================

class MediaAssetMixin:
    """
    Columns and behaviour shared by Music, Photo and Video.

    Groups:
    -------
    - Descriptive: url, title, description
    - Lifecycle: status, archived_at, deleted_at
    - Versioning: version (starts at 1, +1 per content replacement)
    - Storage: file_size, format, mime_type, storage_path, checksum,
      storage_provider, hosting_location, available_formats
    - Analytics: view_count, download_count, last_accessed_at
    - Rights (DRM): drm_protected, drm_type, license_expiry_date,
      region_restrictions, download_allowed, streaming_allowed

    The storage provider reads storage_path / storage_provider /
    hosting_location / checksum to fetch and verify bytes; nothing flows
    back from it into these columns.
    """

    kind: ClassVar[MediaKind]

    # Name of the collection on Playlist that holds this kind
    __playlist_collection__: ClassVar[str]

    # ================================
    # Descriptive
    # ================================

    url: Mapped[str] = mapped_column(String255, nullable=False)

    title: Mapped[str] = mapped_column(String255, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    # ================================
    # Lifecycle & Versioning
    # ================================

    @declared_attr
    def status(cls) -> Mapped[MediaStatus]:
        # One Enum (and CHECK constraint) per table
        return mapped_column(
            enum_column(MediaStatus),
            nullable=False,
            default=MediaStatus.ACTIVE,
            index=True,
        )

    archived_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # ================================
    # Storage
    # ================================

    available_formats: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True, default=None)

    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Bytes")

    format: Mapped[str] = mapped_column(String50, nullable=False)

    mime_type: Mapped[str] = mapped_column(String100, nullable=False)

    storage_path: Mapped[str] = mapped_column(String500, nullable=False)

    checksum: Mapped[Optional[str]] = mapped_column(String255, nullable=True, default=None)

    storage_provider: Mapped[str] = mapped_column(String50, nullable=False)

    hosting_location: Mapped[str] = mapped_column(String100, nullable=False)

    # ================================
    # Analytics
    # ================================
    # Only ever incremented with a single UPDATE ... SET x = x + 1
    # (see MediaService.increment_view_count).

    view_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    download_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    # ================================
    # Rights Management
    # ================================

    drm_protected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    drm_type: Mapped[Optional[str]] = mapped_column(String50, nullable=True, default=None)

    license_expiry_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    region_restrictions: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True, default=None)

    download_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    streaming_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # ================================
    # Playlist Membership
    # ================================

    @declared_attr
    def playlist_id(cls) -> Mapped[Optional[uuid.UUID]]:
        return mapped_column(
            ForeignKey("playlists.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        )

    @declared_attr
    def playlist(cls) -> Mapped[Optional["Playlist"]]:
        return relationship("Playlist", back_populates=cls.__playlist_collection__)

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (
            CheckConstraint("file_size >= 0", name="file_size_non_negative"),
            CheckConstraint("view_count >= 0", name="view_count_non_negative"),
            CheckConstraint("download_count >= 0", name="download_count_non_negative"),
            CheckConstraint("version >= 1", name="version_positive"),
        )

    # ================================
    # Validation
    # ================================

    @validates("url", "title", "format", "mime_type", "storage_path", "storage_provider", "hosting_location")
    def validate_required_text(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError(f"{key} is required", {"field": key})
        return value

    @validates("status")
    def validate_status(self, key, value):
        value = coerce_enum(MediaStatus, value, key)
        current = self.__dict__.get(key)
        was_deleted = current is not None and MediaStatus(current) == MediaStatus.DELETED
        if was_deleted and value != MediaStatus.DELETED:
            raise InvalidStateError(
                f"Cannot move a deleted asset to {value.value}",
                {"asset_id": str(self.id), "status": MediaStatus.DELETED.value, "target": value.value},
            )
        return value

    @validates("file_size")
    def validate_non_negative(self, key, value):
        if value is not None and int(value) < 0:
            raise ValidationError(f"{key} must be non-negative", {"field": key, "value": value})
        return value

    @validates("version", "view_count", "download_count")
    def validate_monotonic(self, key, value):
        if value is None:
            return value
        floor = 1 if key == "version" else 0
        if int(value) < floor:
            raise ValidationError(f"{key} must be at least {floor}", {"field": key, "value": value})
        # Counters only move forward; the service syncs them without passing through here
        current = self.__dict__.get(key)
        if current is not None and int(value) < int(current):
            raise InvalidStateError(
                f"{key} cannot decrease",
                {"asset_id": str(self.id), "field": key, "current": current, "value": value},
            )
        return value

    @validates("available_formats")
    def validate_available_formats(self, key, value):
        return _normalize_tags(value)

    @validates("region_restrictions")
    def validate_region_restrictions(self, key, value):
        return _normalize_tags(value, upper=True)

    # ================================
    # Lifecycle
    # ================================

    @property
    def lifecycle_status(self) -> MediaStatus:
        """Status, with the column default applied to unflushed objects."""
        return self.status or MediaStatus.ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.lifecycle_status == MediaStatus.DELETED

    def _require_not_deleted(self, operation: str) -> None:
        if self.is_deleted:
            raise InvalidStateError(
                f"Cannot {operation} a deleted {self.kind.value} asset",
                {"asset_id": str(self.id), "status": MediaStatus.DELETED.value},
            )

    def archive(self, at: Optional[datetime] = None) -> None:
        """
        Move the asset to ARCHIVED.

        Archiving an already archived asset keeps its original archived_at.
        """
        self._require_not_deleted("archive")
        if self.lifecycle_status == MediaStatus.ARCHIVED:
            return
        self.status = MediaStatus.ARCHIVED
        self.archived_at = at or utc_now()

    def soft_delete(self, at: Optional[datetime] = None) -> None:
        """Move the asset to DELETED (terminal)."""
        self._require_not_deleted("delete")
        self.status = MediaStatus.DELETED
        self.deleted_at = at or utc_now()

    def replace_content(
        self,
        *,
        url: Optional[str] = None,
        storage_path: Optional[str] = None,
        file_size: Optional[int] = None,
        checksum: Optional[str] = None,
        format: Optional[str] = None,
        mime_type: Optional[str] = None,
        storage_provider: Optional[str] = None,
        hosting_location: Optional[str] = None,
        available_formats: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Point the asset at new underlying content and bump ``version``.

        Only the current version is kept. Returns the new version number.
        """
        self._require_not_deleted("replace content of")

        changes: dict[str, Any] = {
            "url": url,
            "storage_path": storage_path,
            "file_size": file_size,
            "checksum": checksum,
            "format": format,
            "mime_type": mime_type,
            "storage_provider": storage_provider,
            "hosting_location": hosting_location,
            "available_formats": available_formats,
        }
        for field, value in changes.items():
            if value is not None:
                setattr(self, field, value)

        self.version = (self.version or 1) + 1
        return self.version


# ================================
# Concrete Asset Kinds
# ================================

class Music(MediaAssetMixin, BaseModel):
    """
    A music track.

    Table: music
    ------------
    Adds: artist (required), album, genre, duration (seconds, required),
    released_at.
    """

    __tablename__ = "music"

    kind: ClassVar[MediaKind] = MediaKind.MUSIC
    __playlist_collection__: ClassVar[str] = "music"

    artist: Mapped[str] = mapped_column(String255, nullable=False)

    album: Mapped[Optional[str]] = mapped_column(String255, nullable=True, default=None)

    genre: Mapped[Optional[str]] = mapped_column(String100, nullable=True, default=None)

    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Seconds")

    released_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    @validates("artist")
    def validate_artist(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError("artist is required", {"field": key})
        return value

    def __repr__(self) -> str:
        return f"Music(id={self.id}, title='{self.title}', artist='{self.artist}')"


class Photo(MediaAssetMixin, BaseModel):
    """
    A photo.

    Table: photos
    -------------
    Adds: height, width (pixels, required), captured_at.
    """

    __tablename__ = "photos"

    kind: ClassVar[MediaKind] = MediaKind.PHOTO
    __playlist_collection__: ClassVar[str] = "photos"

    height: Mapped[int] = mapped_column(Integer, nullable=False, comment="Pixels")

    width: Mapped[int] = mapped_column(Integer, nullable=False, comment="Pixels")

    captured_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    def __repr__(self) -> str:
        return f"Photo(id={self.id}, title='{self.title}', {self.width}x{self.height})"


class Video(MediaAssetMixin, BaseModel):
    """
    A video.

    Table: videos
    -------------
    Adds: duration (seconds), resolution ("1920x1080", "4K"), codec,
    frame_rate, uploaded_at.
    """

    __tablename__ = "videos"

    kind: ClassVar[MediaKind] = MediaKind.VIDEO
    __playlist_collection__: ClassVar[str] = "videos"

    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Seconds")

    resolution: Mapped[str] = mapped_column(String20, nullable=False)

    codec: Mapped[Optional[str]] = mapped_column(String50, nullable=True, default=None)

    frame_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True, default=None)

    uploaded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"Video(id={self.id}, title='{self.title}', resolution='{self.resolution}')"


MediaAsset = Union[Music, Photo, Video]

MEDIA_MODELS: dict[MediaKind, type[MediaAsset]] = {
    MediaKind.MUSIC: Music,
    MediaKind.PHOTO: Photo,
    MediaKind.VIDEO: Video,
}

# Playlist attribute holding each kind
PLAYLIST_COLLECTIONS = tuple(model.__playlist_collection__ for model in MEDIA_MODELS.values())


def media_model(kind: Union[MediaKind, str]) -> type[MediaAsset]:
    """Resolve a kind tag (or its string value) to its model class."""
    return MEDIA_MODELS[coerce_enum(MediaKind, kind, "kind")]


# ================================
# Playlist Aggregate
# ================================

class Playlist(BaseModel):
    """
    A titled collection of media assets.

    Table: playlists
    ----------------
    - title: required
    - description: optional
    - studio_id: owning studio (nullable)

    Each asset belongs to at most one playlist; deleting the playlist
    deletes its assets.
    """

    __tablename__ = "playlists"

    title: Mapped[str] = mapped_column(String255, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(String255, nullable=True, default=None)

    studio_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("studios.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    studio: Mapped[Optional["Studio"]] = relationship(
        "Studio",
        back_populates="playlists",
    )

    music: Mapped[list[Music]] = relationship(
        "Music",
        back_populates="playlist",
        cascade="all",
        lazy="selectin",
        order_by="Music.created_at",
    )

    photos: Mapped[list[Photo]] = relationship(
        "Photo",
        back_populates="playlist",
        cascade="all",
        lazy="selectin",
        order_by="Photo.created_at",
    )

    videos: Mapped[list[Video]] = relationship(
        "Video",
        back_populates="playlist",
        cascade="all",
        lazy="selectin",
        order_by="Video.created_at",
    )

    @validates("title")
    def validate_title(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError("title is required", {"field": key})
        return value

    def items(self) -> list[MediaAsset]:
        """All assets in the playlist, oldest first."""
        assets: list[MediaAsset] = [*self.music, *self.photos, *self.videos]
        return sorted(assets, key=lambda asset: ensure_utc(asset.created_at) or utc_now())

    def __repr__(self) -> str:
        return f"Playlist(id={self.id}, title='{self.title}')"


# ================================
# Access Evaluation
# ================================

def _flag(value: Optional[bool], default: bool) -> bool:
    return default if value is None else bool(value)


def access_denial_reason(
    asset: MediaAsset,
    region: Optional[str] = None,
    mode: AccessMode = AccessMode.STREAM,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Explain why ``asset`` is not accessible, or return None if it is.

    Rules, in order:
    1. the asset must be ACTIVE
    2. a DRM protected asset with an expired licence is never accessible,
       whatever its streaming/download flags say
    3. the requester's region must not be restricted
    4. streaming requires streaming_allowed
    5. downloading requires download_allowed

    Pure: reads the asset, never mutates it.
    """
    mode = coerce_enum(AccessMode, mode, "mode")
    now = ensure_utc(now) or utc_now()

    if asset.lifecycle_status != MediaStatus.ACTIVE:
        return "not_active"

    expiry = ensure_utc(asset.license_expiry_date)
    if _flag(asset.drm_protected, False) and expiry is not None and expiry < now:
        return "license_expired"

    if region and region.strip().upper() in (asset.region_restrictions or []):
        return "region_restricted"

    if mode == AccessMode.STREAM and not _flag(asset.streaming_allowed, True):
        return "streaming_not_allowed"

    if mode == AccessMode.DOWNLOAD and not _flag(asset.download_allowed, False):
        return "download_not_allowed"

    return None


def evaluate_access(
    asset: MediaAsset,
    region: Optional[str] = None,
    mode: AccessMode = AccessMode.STREAM,
    now: Optional[datetime] = None,
) -> bool:
    """True if ``asset`` may be used in ``mode`` from ``region`` at ``now``."""
    return access_denial_reason(asset, region=region, mode=mode, now=now) is None
