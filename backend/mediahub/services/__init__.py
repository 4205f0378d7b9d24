"""Business logic services."""

from mediahub.services.accounts import AccountService
from mediahub.services.interactions import InteractionLedger
from mediahub.services.media import MediaService
from mediahub.services.notifications import NotificationService

__all__ = [
    "AccountService",
    "MediaService",
    "InteractionLedger",
    "NotificationService",
]
