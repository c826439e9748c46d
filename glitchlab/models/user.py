"""User document model."""

from datetime import datetime
from typing import List, Literal, Optional

from bson import ObjectId
from pydantic import EmailStr, Field, field_validator

from glitchlab.config import settings
from glitchlab.models.base import MongoModel, TimestampedModel
from glitchlab.utils.constants import NOTIFICATION_GENERAL


class EmailNotifications(MongoModel):
    """Per-user email opt-ins."""

    workshops: bool = True
    changes: bool = True


class Badge(MongoModel):
    """Completion badge embedded in a user."""

    id: Optional[str] = None
    workshop_id: ObjectId
    name: str
    image: str = Field(default_factory=lambda: settings.DEFAULT_BADGE_IMAGE)
    date: datetime = Field(default_factory=datetime.utcnow)
    description: Optional[str] = None
    awarded_by: Optional[ObjectId] = None


class NotificationAction(MongoModel):
    label: str
    href: str


class Notification(MongoModel):
    """In-app message embedded in a user."""

    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    type: Literal["workshop_removal", "badge_awarded", "workshop_update", "general"] = NOTIFICATION_GENERAL
    title: str
    message: str
    workshop_id: Optional[ObjectId] = None
    workshop_name: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    action: Optional[NotificationAction] = None


class User(TimestampedModel):
    """Verified account (``users`` collection)."""

    name: str = Field(..., min_length=1)
    surname: Optional[str] = None
    email: EmailStr
    password: str
    role: Literal["user", "instructor"] = "user"
    avatar: str = Field(default_factory=lambda: settings.DEFAULT_AVATAR)
    email_language: Literal["en", "it"] = "en"
    email_notifications: EmailNotifications = Field(default_factory=EmailNotifications)
    registered_workshops: List[ObjectId] = Field(default_factory=list)
    badges: List[Badge] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)
    description: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    is_verified: bool = False

    @field_validator("name", "surname", "website", "linkedin")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.strip().lower()


# Fields never returned to clients
PRIVATE_USER_FIELDS = ("password", "verificationCode", "verificationCodeExpires")


def public_user(user: dict) -> dict:
    """Strip private fields from a user document."""
    return {k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS}


def push_notification(notification: Notification) -> dict:
    """``$push`` clause that prepends a notification and keeps the newest ones."""
    return {
        "notifications": {
            "$each": [notification.to_document()],
            "$position": 0,
            "$slice": settings.MAX_NOTIFICATIONS,
        }
    }
