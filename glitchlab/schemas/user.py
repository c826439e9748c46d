"""User account schemas."""

from typing import Literal, Optional

from pydantic import EmailStr, Field, StrictBool

from glitchlab.config import settings
from glitchlab.schemas.base import APIModel


class ProfileUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
    email_language: Optional[Literal["en", "it"]] = None
    # Instructor only
    surname: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None


class PasswordChange(APIModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=settings.MIN_PASSWORD_LENGTH)


class EmailNotificationsIn(APIModel):
    workshops: StrictBool
    changes: StrictBool


class NotificationPreferencesUpdate(APIModel):
    email_notifications: EmailNotificationsIn


class EmailLanguageUpdate(APIModel):
    email_language: Literal["en", "it"]


class MarkNotificationsRead(APIModel):
    notification_id: Optional[str] = None
    mark_all_as_read: bool = False


class InstructorCreate(APIModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=settings.MIN_PASSWORD_LENGTH)
    surname: Optional[str] = ""
    description: Optional[str] = ""
    website: Optional[str] = ""
    linkedin: Optional[str] = ""
    avatar: Optional[str] = None


class AwardBadgeRequest(APIModel):
    user_id: str = Field(..., min_length=1)
    workshop_id: str = Field(..., min_length=1)
