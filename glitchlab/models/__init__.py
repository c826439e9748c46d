"""Database models."""

from glitchlab.models.user import (
    Badge,
    EmailNotifications,
    Notification,
    NotificationAction,
    User,
    public_user,
    push_notification,
)
from glitchlab.models.pending_user import PendingUser
from glitchlab.models.password_reset import PasswordReset
from glitchlab.models.workshop import LocalizedText, Workshop, WorkshopFacets
from glitchlab.models.review import Review

__all__ = [
    "User",
    "Badge",
    "EmailNotifications",
    "Notification",
    "NotificationAction",
    "public_user",
    "push_notification",
    "PendingUser",
    "PasswordReset",
    "Workshop",
    "WorkshopFacets",
    "LocalizedText",
    "Review",
]
