"""
Notification Service

Creates notifications, hands due ones to delivery gateways and applies the
gateways' delivery callbacks.

Gateway Contract:
-----------------
1. ``due(now)`` returns pending notifications whose send_at has passed
2. the gateway reads ``channel``, ``subject``, ``read_message(id)`` and,
   for push, ``delivery_targets(id)``
3. the gateway calls back ``mark_sent(id)`` or ``mark_failed(id, error)``

Concurrent Callbacks:
---------------------
State transitions are compare-and-swap updates on ``version_id``. If two
callbacks race on the same pending notification, the first to commit wins
and the other gets InvalidStateError from its flush (SQLAlchemy raises
StaleDataError when the versioned UPDATE matches no row).
"""

import uuid
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.exc import StaleDataError

from mediahub.core.config import settings
from mediahub.core.exceptions import CodecError, InvalidStateError
from mediahub.core.logging import get_logger
from mediahub.db.base import ensure_utc, utc_now
from mediahub.db.session import flush_or_raise, side_session_scope
from mediahub.models.notification import Notification, NotificationStatus, format_codec_fault
from mediahub.models.studio import Studio
from mediahub.models.user import Device, User
from mediahub.schemas.base import parse_input
from mediahub.schemas.notification import NotificationCreate, NotificationUpdate
from mediahub.services.lookup import get_or_raise, require_reference

logger = get_logger(__name__)


class NotificationService:
    """
    Service for notifications.

    Usage:
    ------
    service = NotificationService(db)

    notification = await service.create({
        "user_id": user.id,
        "channel": "email",
        "subject": "Welcome",
        "message": "Hello Alice",
        "send_at": now,
    })

    for notification in await service.due(now):
        text = await service.read_message(notification.id)
        ...
        await service.mark_sent(notification.id)
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the notification service.

        Args:
            db: Database session
        """
        self.db = db

    async def _flush_transition(self, notification_id: uuid.UUID, target: NotificationStatus) -> None:
        """
        Flush a versioned update; a lost race surfaces as InvalidStateError.

        After a failed flush the session only accepts a rollback, so nothing
        here reads from the ORM instance.
        """
        try:
            await flush_or_raise(self.db, "Notification", id=notification_id)
        except StaleDataError as e:
            logger.warning(
                "notification_concurrent_update",
                notification_id=str(notification_id),
                target=str(target),
            )
            raise InvalidStateError(
                "Notification was changed concurrently",
                {"notification_id": str(notification_id), "target": target.value},
            ) from e

    # ================================
    # Creation & Content
    # ================================

    async def create(self, data: Union[NotificationCreate, Mapping[str, Any]]) -> Notification:
        """
        Create a pending notification with a compressed message body.

        Raises:
            ValidationError: malformed input, no recipient, or a recipient
                that does not exist
            CompressionError: the message cannot be compressed; nothing is
                persisted
            ConflictError: id already taken
        """
        payload = parse_input(NotificationCreate, data)

        fields = payload.model_dump(exclude_none=True, exclude={"message", "user_id", "studio_id"})
        notification = Notification(**fields)
        if payload.user_id is not None:
            notification.user = await require_reference(self.db, User, payload.user_id, "user_id")
        if payload.studio_id is not None:
            notification.studio = await require_reference(
                self.db, Studio, payload.studio_id, "studio_id"
            )
        notification.set_message(payload.message)

        self.db.add(notification)
        await flush_or_raise(self.db, "Notification", id=payload.id)

        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            channel=str(notification.channel),
            user_id=str(notification.user_id) if notification.user_id else None,
            studio_id=str(notification.studio_id) if notification.studio_id else None,
            compressed_size=len(notification.message),
        )
        return notification

    async def get(self, notification_id: uuid.UUID) -> Notification:
        """Get a notification by id or raise NotFoundError."""
        return await get_or_raise(self.db, Notification, notification_id)

    async def update_content(
        self,
        notification_id: uuid.UUID,
        data: Union[NotificationUpdate, Mapping[str, Any]],
    ) -> Notification:
        """
        Change subject, message or send_at of a pending notification.

        Only a genuinely different message is recompressed.

        Raises:
            InvalidStateError: the notification is no longer pending, or was
                changed concurrently
            CompressionError: the new message cannot be compressed
        """
        payload = parse_input(NotificationUpdate, data)
        notification = await self.get(notification_id)
        if not notification.is_pending:
            raise InvalidStateError(
                "Only pending notifications can be edited",
                {"notification_id": str(notification.id), "status": notification.current_status.value},
            )

        message_changed = False
        if payload.message is not None:
            message_changed = notification.set_message(payload.message)
        if payload.subject is not None:
            notification.subject = payload.subject
        if payload.send_at is not None:
            notification.send_at = payload.send_at

        await self._flush_transition(notification_id, NotificationStatus.PENDING)

        logger.info(
            "notification_updated",
            notification_id=str(notification.id),
            message_changed=message_changed,
        )
        return notification

    async def read_message(self, notification_id: uuid.UUID) -> str:
        """
        Return the decompressed message text.

        A codec fault is written to ``error_log`` in a separate short
        transaction, so the record of it survives the caller's rollback
        while the caller's own session is left exactly as it was. If that
        write cannot get through (for example because the caller's open
        transaction holds the lock it needs) the fault is only logged.

        Raises:
            DecompressionError: the stored body is unreadable
        """
        notification = await self.get(notification_id)
        try:
            return notification.get_message()
        except CodecError as e:
            logger.error(
                "notification_message_unreadable",
                notification_id=str(notification_id),
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._record_codec_fault(notification, format_codec_fault(e))
            raise

    async def _record_codec_fault(self, notification: Notification, fault: str) -> None:
        try:
            async with side_session_scope(
                self.db.bind,
                lock_timeout=settings.NOTIFICATION_FAULT_LOCK_TIMEOUT,
            ) as side:
                # Diagnostics only: version_id is left alone so the caller's
                # copy does not go stale
                await side.execute(
                    update(Notification)
                    .where(Notification.id == notification.id)
                    .values(error_log=fault)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as e:
            logger.warning(
                "notification_fault_not_recorded",
                notification_id=str(notification.id),
                fault=fault,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        set_committed_value(notification, "error_log", fault)

    # ================================
    # Delivery Callbacks
    # ================================

    async def mark_sent(
        self,
        notification_id: uuid.UUID,
        delivered_at: Optional[datetime] = None,
    ) -> Notification:
        """
        pending → sent.

        Raises:
            InvalidStateError: already sent/failed, or a concurrent callback won
        """
        notification = await self.get(notification_id)
        notification.mark_sent(delivered_at)
        await self._flush_transition(notification_id, NotificationStatus.SENT)

        logger.info(
            "notification_sent",
            notification_id=str(notification.id),
            channel=str(notification.channel),
        )
        return notification

    async def mark_failed(self, notification_id: uuid.UUID, error_log: str) -> Notification:
        """
        pending → failed, keeping the gateway's error.

        Raises:
            ValidationError: error_log is missing or blank
            InvalidStateError: already sent/failed, or a concurrent callback won
        """
        notification = await self.get(notification_id)
        notification.mark_failed(error_log)
        await self._flush_transition(notification_id, NotificationStatus.FAILED)

        logger.warning(
            "notification_failed",
            notification_id=str(notification.id),
            channel=str(notification.channel),
            error_log=error_log,
        )
        return notification

    # ================================
    # Gateway Queries
    # ================================

    async def due(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> list[Notification]:
        """Pending notifications with send_at <= now, earliest first."""
        now = ensure_utc(now) or utc_now()
        limit = limit or settings.NOTIFICATION_DUE_BATCH_SIZE

        result = await self.db.execute(
            select(Notification)
            .where(
                Notification.status == NotificationStatus.PENDING,
                Notification.send_at <= now,
            )
            .order_by(Notification.send_at, Notification.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delivery_targets(self, notification_id: uuid.UUID) -> list[str]:
        """Push tokens of the recipient user's active devices."""
        notification = await self.get(notification_id)
        if notification.user_id is None:
            return []

        result = await self.db.execute(
            select(Device.fcm_token)
            .where(
                Device.user_id == notification.user_id,
                Device.active.is_(True),
                Device.fcm_token.is_not(None),
            )
            .order_by(Device.last_logged_in_time.desc())
        )
        return list(result.scalars().all())
