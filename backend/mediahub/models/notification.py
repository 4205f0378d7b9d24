"""
Notification Model

Outbound messages to a user and/or a studio, delivered by an external
gateway over email, SMS or WhatsApp.

Message Storage:
----------------
Only the compressed body is persisted (``message`` column, zlib stream).
The plain text exists transiently: it goes in through ``set_message()``
and comes out through ``get_message()``.

``set_message()`` compresses only when the logical content actually
changes. An unrelated update (new subject, new send_at, a status change)
never touches the stored buffer, so an already compressed body is never
compressed a second time.

Delivery State Machine:
-----------------------
    pending ──mark_sent()───▶ sent    (terminal, delivered_at set)
       │
       └─────mark_failed()──▶ failed  (terminal, error_log set)

pending → pending is a no-op; any transition out of sent/failed raises
InvalidStateError and leaves the record untouched.

Concurrency:
------------
``version_id`` is SQLAlchemy's optimistic concurrency counter: every UPDATE
is ``... WHERE id = :id AND version_id = :seen``. Two delivery callbacks
racing on the same pending notification cannot both win; the loser's flush
fails and NotificationService reports it as InvalidStateError.

Learning Resources:
-------------------
- Versioning: https://docs.sqlalchemy.org/en/20/orm/versioning.html
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Union

from sqlalchemy import ForeignKey, Index, Integer, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from mediahub.core.compression import compress, decompress, decompress_text, encode_message
from mediahub.core.config import settings
from mediahub.core.exceptions import DecompressionError, InvalidStateError, ValidationError
from mediahub.db.base import (
    BaseModel,
    String255,
    UTCDateTime,
    coerce_enum,
    enum_column,
    utc_now,
)

if TYPE_CHECKING:
    from mediahub.models.studio import Studio
    from mediahub.models.user import User


class NotificationChannel(str, enum.Enum):
    """Delivery channel."""
    EMAIL = "email"
    SMS = "SMS"
    WHATSAPP = "WhatsApp"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class NotificationStatus(str, enum.Enum):
    """Delivery status."""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


TERMINAL_STATUSES = frozenset({NotificationStatus.SENT, NotificationStatus.FAILED})


def _default_channel() -> NotificationChannel:
    return NotificationChannel(settings.NOTIFICATION_DEFAULT_CHANNEL)


def format_codec_fault(error: Exception) -> str:
    """Render a compression/decompression fault for error_log."""
    return f"{type(error).__name__}: {error}"


class Notification(BaseModel):
    """
    Notification model.

    Table: notifications
    --------------------
    - user_id / studio_id: weak references, SET NULL when the owner goes
    - channel: email, SMS or WhatsApp (default WhatsApp)
    - status: pending, sent or failed (default pending)
    - message: compressed body (bytes)
    - send_at: scheduled dispatch time
    - delivered_at: set on transition to sent
    - error_log: set on transition to failed or on a codec fault
    - subject: optional
    - version_id: optimistic concurrency counter
    """

    __tablename__ = "notifications"

    studio_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("studios.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    channel: Mapped[NotificationChannel] = mapped_column(
        enum_column(NotificationChannel),
        nullable=False,
        default=_default_channel,
    )

    message: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        comment="zlib-compressed message body"
    )

    status: Mapped[NotificationStatus] = mapped_column(
        enum_column(NotificationStatus),
        nullable=False,
        default=NotificationStatus.PENDING,
    )

    send_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    delivered_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, default=None)

    error_log: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    subject: Mapped[Optional[str]] = mapped_column(String255, nullable=True, default=None)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped[Optional["User"]] = relationship("User", back_populates="notifications")

    studio: Mapped[Optional["Studio"]] = relationship("Studio", back_populates="notifications")

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        # Gateway polling: pending notifications due for dispatch
        Index("ix_notifications_status_send_at", "status", "send_at"),
    )

    @validates("channel")
    def validate_channel(self, key, value):
        return coerce_enum(NotificationChannel, value, key)

    @validates("status")
    def validate_status(self, key, value):
        value = coerce_enum(NotificationStatus, value, key)
        # Read the loaded value only; an expired attribute would need IO here
        current = self.__dict__.get(key)
        if current is not None:
            current = NotificationStatus(current)
        if current in TERMINAL_STATUSES and value != current:
            raise InvalidStateError(
                f"Cannot move notification from {current.value} to {value.value}",
                {"notification_id": str(self.id), "status": current.value, "target": value.value},
            )
        return value

    # ================================
    # Message Body
    # ================================

    def set_message(self, text: Union[str, bytes]) -> bool:
        """
        Assign the logical message content.

        Compresses ``text`` and replaces the stored buffer only if the
        content differs from what is stored. A stored buffer that no longer
        decompresses is always replaced.

        Returns:
            True if the stored buffer changed

        Raises:
            CompressionError: ``text`` could not be compressed; the stored
                buffer is left as it was
        """
        raw = encode_message(text)
        if self.message is not None:
            try:
                if decompress(self.message) == raw:
                    return False
            except DecompressionError:
                pass
        self.message = compress(raw)
        return True

    def get_message(self) -> str:
        """
        Return the decompressed message text.

        Raises:
            DecompressionError: nothing stored, or the stored bytes are not a
                valid compressed UTF-8 body. Never returns "" as a stand-in.
        """
        if self.message is None:
            raise DecompressionError(
                "Notification has no stored message",
                {"notification_id": str(self.id)},
            )
        return decompress_text(self.message)

    # ================================
    # State Machine
    # ================================

    @property
    def current_status(self) -> NotificationStatus:
        """Status, with the column default applied to unflushed objects."""
        return self.status or NotificationStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.current_status == NotificationStatus.PENDING

    def _require_pending(self, target: NotificationStatus) -> None:
        if self.current_status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Cannot move notification from {self.current_status.value} to {target.value}",
                {
                    "notification_id": str(self.id),
                    "status": self.current_status.value,
                    "target": target.value,
                },
            )

    def transition_to(
        self,
        target: Union[NotificationStatus, str],
        *,
        delivered_at: Optional[datetime] = None,
        error_log: Optional[str] = None,
    ) -> bool:
        """
        Apply a status transition.

        Returns:
            True if the status changed, False for the pending → pending no-op

        Raises:
            InvalidStateError: the notification is already sent or failed
            ValidationError: failing without an error_log
        """
        target = coerce_enum(NotificationStatus, target, "status")
        self._require_pending(target)

        if target == NotificationStatus.PENDING:
            return False

        if target == NotificationStatus.SENT:
            self.status = NotificationStatus.SENT
            self.delivered_at = delivered_at or utc_now()
        else:
            if error_log is None or not error_log.strip():
                raise ValidationError(
                    "error_log is required when a notification fails",
                    {"field": "error_log", "notification_id": str(self.id)},
                )
            self.status = NotificationStatus.FAILED
            self.error_log = error_log
        return True

    def mark_sent(self, delivered_at: Optional[datetime] = None) -> None:
        """pending → sent, stamping delivered_at."""
        self.transition_to(NotificationStatus.SENT, delivered_at=delivered_at)

    def mark_failed(self, error_log: str) -> None:
        """pending → failed, recording error_log."""
        self.transition_to(NotificationStatus.FAILED, error_log=error_log)

    def __repr__(self) -> str:
        return (
            f"Notification(id={self.id}, channel={self.channel}, "
            f"status={self.status}, send_at={self.send_at})"
        )
