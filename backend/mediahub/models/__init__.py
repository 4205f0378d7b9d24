"""
Database Models

This module contains all SQLAlchemy ORM models for the application.

Model Organization:
-------------------
Each model represents a database table and defines:
- Column structure (fields and their types)
- Relationships to other models
- Constraints (unique, nullable, CHECK)
- Indexes for query performance

Import Structure:
-----------------
Import models from this module to ensure they're registered with SQLAlchemy:

    from mediahub.models import User, Studio, Playlist, Music, Notification

This ensures that:
1. Alembic can detect all models for migrations
2. Relationships work correctly
3. All models are available throughout the app
"""

from mediahub.models.interaction import InteractionType, MediaInteraction
from mediahub.models.media import (
    MEDIA_MODELS,
    AccessMode,
    MediaAsset,
    MediaKind,
    MediaStatus,
    Music,
    Photo,
    Playlist,
    Video,
    access_denial_reason,
    evaluate_access,
    media_model,
)
from mediahub.models.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
)
from mediahub.models.studio import Studio, StudioStatus
from mediahub.models.user import AccountType, Device, SignupChannel, User

# Export all models and enums
__all__ = [
    # Actor models
    "User",
    "Device",
    "Studio",
    # Media models
    "Music",
    "Photo",
    "Video",
    "Playlist",
    "MediaAsset",
    "MEDIA_MODELS",
    "media_model",
    "access_denial_reason",
    "evaluate_access",
    # Ledger / notifications
    "MediaInteraction",
    "Notification",
    # Enums
    "AccountType",
    "SignupChannel",
    "StudioStatus",
    "MediaKind",
    "MediaStatus",
    "AccessMode",
    "InteractionType",
    "NotificationChannel",
    "NotificationStatus",
]
