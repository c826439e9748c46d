"""Password reset request model."""

from datetime import datetime, timedelta

from pydantic import EmailStr, Field

from glitchlab.config import settings
from glitchlab.models.base import TimestampedModel


def reset_expiry() -> datetime:
    return datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)


class PasswordReset(TimestampedModel):
    """One outstanding reset code per email (``password_resets`` collection)."""

    email: EmailStr
    code: str
    expires: datetime = Field(default_factory=reset_expiry)
    used: bool = False
