"""
Account schemas: users, devices and studios.

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
- EmailStr: https://docs.pydantic.dev/latest/api/networks/#pydantic.networks.EmailStr
"""

import uuid
from datetime import date
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from mediahub.models.studio import StudioStatus
from mediahub.models.user import AccountType, SignupChannel
from mediahub.schemas.base import InputSchema


# ================================
# User Schemas
# ================================

class UserCreate(InputSchema):
    """
    New user account.

    ``pin`` and ``password_hash`` arrive already derived by the
    authentication layer and are stored as given.

    Example:
        {
            "email": "alice@example.com",
            "pin": "$argon2id$...",
            "password_hash": "$argon2id$...",
            "account_type": "WATCHER",
            "channel": "MOBILE"
        }
    """
    id: Optional[uuid.UUID] = Field(
        None,
        description="Explicit identifier; generated when omitted"
    )
    email: EmailStr = Field(..., examples=["alice@example.com"])
    secondary_email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=50, examples=["+15551234567"])
    secondary_phone_number: Optional[str] = Field(None, max_length=50)
    account_type: Optional[AccountType] = None
    channel: Optional[SignupChannel] = Field(None, description="Signup source")
    pin: str = Field(..., min_length=1, max_length=128)
    password_hash: str = Field(..., min_length=1, max_length=255)
    date_of_birth: Optional[date] = None

    @field_validator("phone_number", "secondary_phone_number")
    @classmethod
    def blank_phone_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty phone number as absent."""
        return v or None


# ================================
# Device Schemas
# ================================

class DeviceRegister(InputSchema):
    """A device announcing itself, optionally already bound to a user."""
    name: Optional[str] = Field(None, max_length=255, examples=["Pixel 8"])
    fcm_token: Optional[str] = Field(
        None,
        max_length=255,
        description="Push token, stored verbatim"
    )
    user_id: Optional[uuid.UUID] = None


# ================================
# Studio Schemas
# ================================

class StudioCreate(InputSchema):
    """New studio. Starts IN-REVIEW unless told otherwise."""
    id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=255)
    picture_url: Optional[str] = Field(None, max_length=255)
    status: StudioStatus = StudioStatus.IN_REVIEW
