"""
Media schemas: assets, content replacement and playlists.

Every asset kind shares ``MediaAssetCreate``; the kind-specific schemas only
add their own fields. ``MEDIA_CREATE_SCHEMAS`` maps a kind tag to its schema.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from mediahub.models.media import MediaKind, MediaStatus
from mediahub.schemas.base import InputSchema


# ================================
# Asset Schemas
# ================================

class MediaAssetCreate(InputSchema):
    """Fields shared by every asset kind."""

    id: Optional[uuid.UUID] = None
    playlist_id: Optional[uuid.UUID] = None

    url: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: MediaStatus = MediaStatus.ACTIVE

    # Storage
    available_formats: Optional[list[str]] = Field(None, examples=[["mp3", "flac"]])
    file_size: int = Field(..., ge=0, description="Bytes")
    format: str = Field(..., min_length=1, max_length=50)
    mime_type: str = Field(..., min_length=1, max_length=100)
    storage_path: str = Field(..., min_length=1, max_length=500)
    checksum: Optional[str] = Field(None, max_length=255)
    storage_provider: str = Field(..., min_length=1, max_length=50, examples=["s3"])
    hosting_location: str = Field(..., min_length=1, max_length=100, examples=["eu-west-1"])

    # Rights
    drm_protected: bool = False
    drm_type: Optional[str] = Field(None, max_length=50)
    license_expiry_date: Optional[datetime] = None
    region_restrictions: Optional[list[str]] = Field(None, examples=[["CN", "RU"]])
    download_allowed: bool = False
    streaming_allowed: bool = True

    @model_validator(mode="after")
    def check_lifecycle_status(self):
        """New assets are never created already deleted."""
        if self.status == MediaStatus.DELETED:
            raise ValueError("An asset cannot be created in the deleted state")
        return self


class MusicCreate(MediaAssetCreate):
    """New music track."""
    artist: str = Field(..., min_length=1, max_length=255)
    album: Optional[str] = Field(None, max_length=255)
    genre: Optional[str] = Field(None, max_length=100)
    duration: int = Field(..., ge=0, description="Seconds")
    released_at: Optional[datetime] = None


class PhotoCreate(MediaAssetCreate):
    """New photo."""
    height: int = Field(..., gt=0, description="Pixels")
    width: int = Field(..., gt=0, description="Pixels")
    captured_at: Optional[datetime] = None


class VideoCreate(MediaAssetCreate):
    """New video."""
    duration: int = Field(..., ge=0, description="Seconds")
    resolution: str = Field(..., min_length=1, max_length=20, examples=["1920x1080"])
    codec: Optional[str] = Field(None, max_length=50, examples=["h264"])
    frame_rate: Optional[float] = Field(None, gt=0)
    uploaded_at: Optional[datetime] = None


MEDIA_CREATE_SCHEMAS: dict[MediaKind, type[MediaAssetCreate]] = {
    MediaKind.MUSIC: MusicCreate,
    MediaKind.PHOTO: PhotoCreate,
    MediaKind.VIDEO: VideoCreate,
}


class ContentReplace(InputSchema):
    """New underlying content for an existing asset. Bumps its version."""
    url: Optional[str] = Field(None, min_length=1, max_length=255)
    storage_path: Optional[str] = Field(None, min_length=1, max_length=500)
    file_size: Optional[int] = Field(None, ge=0)
    checksum: Optional[str] = Field(None, max_length=255)
    format: Optional[str] = Field(None, min_length=1, max_length=50)
    mime_type: Optional[str] = Field(None, min_length=1, max_length=100)
    storage_provider: Optional[str] = Field(None, min_length=1, max_length=50)
    hosting_location: Optional[str] = Field(None, min_length=1, max_length=100)
    available_formats: Optional[list[str]] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one content field must be given")
        return self


# ================================
# Playlist Schemas
# ================================

class PlaylistCreate(InputSchema):
    """New playlist, optionally owned by a studio."""
    id: Optional[uuid.UUID] = None
    studio_id: Optional[uuid.UUID] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=255)
