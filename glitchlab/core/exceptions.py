"""Domain error taxonomy.

Services raise these; the application registers a handler that renders
them as ``{"error": message}`` with the class' HTTP status code.
"""

from typing import Any, Dict, Optional


class GlitchLabError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.extra)
        return body


class Unauthenticated(GlitchLabError):
    status_code = 401
    default_message = "Not authenticated"


class InvalidToken(Unauthenticated):
    default_message = "Invalid token"


class NotAPendingToken(InvalidToken):
    """A valid JWT that is not a pending-verification token."""

    status_code = 400
    default_message = "Invalid verification token. Please register again."


class Forbidden(GlitchLabError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(GlitchLabError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(GlitchLabError):
    status_code = 400
    default_message = "Invalid request"


class Conflict(GlitchLabError):
    status_code = 400
    default_message = "Conflict"


class DuplicateEmail(Conflict):
    default_message = "User with this email already exists"


class DuplicateReview(Conflict):
    default_message = "You have already reviewed this workshop"


class AlreadyRegistered(Conflict):
    default_message = "User is already registered for this workshop"


class NotRegistered(Conflict):
    default_message = "User is not registered for this workshop"


class AlreadyCanceled(Conflict):
    default_message = "Workshop is already canceled"


class NotCanceled(Conflict):
    default_message = "Workshop is not canceled"


class AlreadyAwarded(Conflict):
    default_message = "User already has this badge"


class AlreadyReminded(Conflict):
    default_message = "Reminder has already been sent for this workshop"


class HasBadge(Conflict):
    default_message = "Cannot remove a user who has been awarded a badge"


class WorkshopFull(Conflict):
    default_message = "Workshop is full"


class WorkshopCanceled(Conflict):
    default_message = "Workshop is canceled"


class WorkshopEnded(Conflict):
    default_message = "Workshop has already ended"


class InvalidCode(Conflict):
    default_message = "Invalid verification code"


class Expired(Conflict):
    default_message = "Verification code has expired. Please register again."

    def __init__(self, message: Optional[str] = None, **extra: Any):
        extra.setdefault("expired", True)
        super().__init__(message, **extra)


class NotPastYet(GlitchLabError):
    status_code = 403
    default_message = "Reviews are only allowed for past workshops"
