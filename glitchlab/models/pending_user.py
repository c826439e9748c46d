"""Pending (unverified) registration model."""

from datetime import datetime, timedelta
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from glitchlab.config import settings
from glitchlab.models.base import MongoModel


def verification_expiry() -> datetime:
    return datetime.utcnow() + timedelta(minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES)


class PendingUser(MongoModel):
    """
    Shadow of a User awaiting email verification (``pendingUsers`` collection).

    The password is stored already hashed. A TTL index on ``createdAt`` drops
    abandoned records after 24 hours.
    """

    name: str = Field(..., min_length=1)
    surname: Optional[str] = None
    email: EmailStr
    password: str
    role: Literal["user", "instructor"] = "user"
    avatar: str = Field(default_factory=lambda: settings.DEFAULT_AVATAR)
    email_language: Literal["en", "it"] = "en"
    description: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    verification_code: str = Field(..., pattern=r"^\d{6}$")
    verification_code_expires: datetime = Field(default_factory=verification_expiry)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.strip().lower()


# Fields copied onto the User when the registration is promoted
PROMOTED_FIELDS = (
    "name",
    "surname",
    "email",
    "password",
    "role",
    "avatar",
    "emailLanguage",
    "description",
    "website",
    "linkedin",
)
