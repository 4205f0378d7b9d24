"""
Pydantic schemas for input validation.

Import all schemas here for easy access.
"""

from mediahub.schemas.account import DeviceRegister, StudioCreate, UserCreate
from mediahub.schemas.base import InputSchema, parse_input
from mediahub.schemas.media import (
    MEDIA_CREATE_SCHEMAS,
    ContentReplace,
    MediaAssetCreate,
    MusicCreate,
    PhotoCreate,
    PlaylistCreate,
    VideoCreate,
)
from mediahub.schemas.notification import NotificationCreate, NotificationUpdate

__all__ = [
    # Plumbing
    "InputSchema",
    "parse_input",
    # Accounts
    "UserCreate",
    "DeviceRegister",
    "StudioCreate",
    # Media
    "MediaAssetCreate",
    "MusicCreate",
    "PhotoCreate",
    "VideoCreate",
    "MEDIA_CREATE_SCHEMAS",
    "ContentReplace",
    "PlaylistCreate",
    # Notifications
    "NotificationCreate",
    "NotificationUpdate",
]
