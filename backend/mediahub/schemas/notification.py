"""
Notification schemas.

``message`` is always the plain text; compression happens in the model.
Unlike other text fields it is not whitespace-stripped.
"""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field, StringConstraints, model_validator

from mediahub.models.notification import NotificationChannel
from mediahub.schemas.base import InputSchema

# Compressed byte for byte; never stripped
MessageText = Annotated[str, StringConstraints(strip_whitespace=False)]


class NotificationCreate(InputSchema):
    """
    New pending notification.

    At least one recipient (user or studio) is required.

    Example:
        {
            "user_id": "0b9f...",
            "channel": "email",
            "subject": "Welcome",
            "message": "Hello Alice",
            "send_at": "2026-01-01T09:00:00Z"
        }
    """
    id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    studio_id: Optional[uuid.UUID] = None
    channel: Optional[NotificationChannel] = Field(
        None,
        description="Defaults to NOTIFICATION_DEFAULT_CHANNEL"
    )
    subject: Optional[str] = Field(None, max_length=255)
    message: MessageText = Field(..., description="Plain text body, kept verbatim")
    send_at: datetime

    @model_validator(mode="after")
    def check_recipient(self):
        if self.user_id is None and self.studio_id is None:
            raise ValueError("A notification needs a user or a studio recipient")
        return self


class NotificationUpdate(InputSchema):
    """Content changes to a pending notification. Omitted fields are kept."""
    subject: Optional[str] = Field(None, max_length=255)
    message: Optional[MessageText] = None
    send_at: Optional[datetime] = None
