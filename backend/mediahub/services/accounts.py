"""
Account Service

Manages the actor graph: users, their devices and their studios.

Unit of Work:
-------------
Service methods flush but never commit. The caller owns the transaction,
normally through ``session_scope()``:

    async with session_scope() as session:
        user = await AccountService(session).create_user(payload)

Deletion and Notifications:
---------------------------
Notifications are weak references. ``delete_user`` and ``delete_studio``
null ``Notification.user_id`` / ``Notification.studio_id`` (for the owner
and, for a user, for every studio it owns) BEFORE deleting the owner, so
addressed notifications survive with their history intact.
"""

import uuid
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.core.exceptions import ConflictError
from mediahub.core.logging import get_logger
from mediahub.db.session import flush_or_raise
from mediahub.models.notification import Notification
from mediahub.models.studio import Studio, StudioStatus
from mediahub.models.user import Device, User
from mediahub.schemas.account import DeviceRegister, StudioCreate, UserCreate
from mediahub.schemas.base import parse_input
from mediahub.services.lookup import get_or_raise, require_reference

logger = get_logger(__name__)


class AccountService:
    """
    Service for users, devices and studios.

    Usage:
    ------
    service = AccountService(db)

    user = await service.create_user({"email": "a@example.com", "pin": p, "password_hash": h})
    device = await service.register_device({"user_id": user.id, "fcm_token": token})
    await service.login_device(device.id)
    studio = await service.create_studio({"user_id": user.id, "name": "North", "description": "..."})
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the account service.

        Args:
            db: Database session
        """
        self.db = db

    # ================================
    # Users
    # ================================

    async def create_user(self, data: Union[UserCreate, Mapping[str, Any]]) -> User:
        """
        Create a user.

        Raises:
            ValidationError: malformed input
            ConflictError: email, phone number or id already taken
        """
        payload = parse_input(UserCreate, data)

        if payload.id is not None and await self.db.get(User, payload.id) is not None:
            raise ConflictError("User already exists", {"entity": "User", "id": str(payload.id)})

        user = User(**payload.model_dump(exclude_none=True))
        self.db.add(user)
        await flush_or_raise(self.db, "User", email=user.email)

        logger.info(
            "user_created",
            user_id=str(user.id),
            account_type=str(user.account_type) if user.account_type else None,
        )
        return user

    async def get_user(self, user_id: uuid.UUID) -> User:
        """Get a user by id or raise NotFoundError."""
        return await get_or_raise(self.db, User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Look a user up by (case-insensitive) email."""
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """
        Delete a user with its devices, studios (and their playlists and
        media) and interaction records.

        Notifications addressed to the user or to its studios are kept with
        the reference nulled.
        """
        user = await self.get_user(user_id)
        studio_ids = [studio.id for studio in await user.awaitable_attrs.studios]

        await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user.id)
            .values(user_id=None)
        )
        if studio_ids:
            await self.db.execute(
                update(Notification)
                .where(Notification.studio_id.in_(studio_ids))
                .values(studio_id=None)
            )

        await self.db.delete(user)
        await flush_or_raise(self.db, "User", id=user_id)

        logger.info("user_deleted", user_id=str(user_id), studios_deleted=len(studio_ids))

    # ================================
    # Devices
    # ================================

    async def register_device(self, data: Union[DeviceRegister, Mapping[str, Any]]) -> Device:
        """
        Register a device, inactive until its first login.

        Raises:
            ValidationError: malformed input or unknown user_id
        """
        payload = parse_input(DeviceRegister, data)

        device = Device(**payload.model_dump(exclude_none=True, exclude={"user_id"}))
        if payload.user_id is not None:
            device.user = await require_reference(self.db, User, payload.user_id, "user_id")
        self.db.add(device)
        await flush_or_raise(self.db, "Device")

        logger.info(
            "device_registered",
            device_id=str(device.id),
            user_id=str(device.user_id) if device.user_id else None,
        )
        return device

    async def get_device(self, device_id: uuid.UUID) -> Device:
        """Get a device by id or raise NotFoundError."""
        return await get_or_raise(self.db, Device, device_id)

    async def login_device(
        self,
        device_id: uuid.UUID,
        at: Optional[datetime] = None,
        fcm_token: Optional[str] = None,
    ) -> Device:
        """Activate a device, optionally refreshing its push token."""
        device = await self.get_device(device_id)
        device.login(at)
        if fcm_token is not None:
            device.fcm_token = fcm_token
        await flush_or_raise(self.db, "Device", id=device_id)

        logger.info("device_logged_in", device_id=str(device.id))
        return device

    async def logout_device(self, device_id: uuid.UUID, at: Optional[datetime] = None) -> Device:
        """Deactivate a device."""
        device = await self.get_device(device_id)
        device.logout(at)
        await flush_or_raise(self.db, "Device", id=device_id)

        logger.info("device_logged_out", device_id=str(device.id))
        return device

    async def bind_device(self, device_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> Device:
        """Attach a device to a user, or detach it with ``user_id=None``."""
        device = await self.get_device(device_id)
        user = None
        if user_id is not None:
            user = await require_reference(self.db, User, user_id, "user_id")
        device.user = user
        await flush_or_raise(self.db, "Device", id=device_id)
        return device

    # ================================
    # Studios
    # ================================

    async def create_studio(self, data: Union[StudioCreate, Mapping[str, Any]]) -> Studio:
        """
        Create a studio (IN-REVIEW by default).

        Raises:
            ValidationError: malformed input or unknown user_id
            ConflictError: id already taken
        """
        payload = parse_input(StudioCreate, data)

        if payload.id is not None and await self.db.get(Studio, payload.id) is not None:
            raise ConflictError("Studio already exists", {"entity": "Studio", "id": str(payload.id)})
        studio = Studio(**payload.model_dump(exclude_none=True, exclude={"user_id"}))
        if payload.user_id is not None:
            studio.user = await require_reference(self.db, User, payload.user_id, "user_id")
        self.db.add(studio)
        await flush_or_raise(self.db, "Studio")

        logger.info("studio_created", studio_id=str(studio.id), status=str(studio.status))
        return studio

    async def get_studio(self, studio_id: uuid.UUID) -> Studio:
        """Get a studio by id or raise NotFoundError."""
        return await get_or_raise(self.db, Studio, studio_id)

    async def set_studio_status(
        self,
        studio_id: uuid.UUID,
        status: Union[StudioStatus, str],
    ) -> Studio:
        """Record a moderation decision."""
        studio = await self.get_studio(studio_id)
        previous = studio.status
        studio.status = status
        await flush_or_raise(self.db, "Studio", id=studio_id)

        logger.info(
            "studio_status_changed",
            studio_id=str(studio.id),
            previous=str(previous),
            status=str(studio.status),
        )
        return studio

    async def delete_studio(self, studio_id: uuid.UUID) -> None:
        """
        Delete a studio with its playlists and their media.

        Notifications addressed to the studio are kept with studio_id nulled.
        """
        studio = await self.get_studio(studio_id)

        await self.db.execute(
            update(Notification)
            .where(Notification.studio_id == studio.id)
            .values(studio_id=None)
        )

        await self.db.delete(studio)
        await flush_or_raise(self.db, "Studio", id=studio_id)

        logger.info("studio_deleted", studio_id=str(studio_id))
