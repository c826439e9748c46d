"""Security utilities: JWT, password hashing, roles."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

import bcrypt
from bson import ObjectId
from jose import JWTError, jwt

from glitchlab.config import settings
from glitchlab.core.exceptions import Forbidden, InvalidToken, NotAPendingToken

SESSION_TOKEN = "session"
PENDING_TOKEN = "pending"


class Role(str, Enum):
    """User roles."""

    USER = "user"
    INSTRUCTOR = "instructor"


@dataclass
class Principal:
    """Authenticated caller, resolved once per request."""

    id: ObjectId
    role: Role
    user: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_instructor(self) -> bool:
        return self.role is Role.INSTRUCTOR

    @classmethod
    def from_user(cls, user: Dict[str, Any]) -> "Principal":
        try:
            role = Role(user.get("role") or Role.USER.value)
        except ValueError:
            role = Role.USER
        return cls(id=user["_id"], role=role, user=user)


def require_instructor(principal: Principal, message: str = "Only instructors can perform this action") -> Principal:
    """Raise Forbidden unless the caller is an instructor."""
    if not principal.is_instructor:
        raise Forbidden(message)
    return principal


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """Check a password against a bcrypt hash."""
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _encode(claims: dict, expires_delta: timedelta) -> str:
    to_encode = claims.copy()
    to_encode["exp"] = datetime.utcnow() + expires_delta
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_session_token(user_id: Any, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT session token for a verified user."""
    return _encode(
        {"userId": str(user_id), "type": SESSION_TOKEN},
        expires_delta or timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS),
    )


def create_pending_token(pending_user_id: Any, expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived token referencing a pending registration."""
    return _encode(
        {"pendingUserId": str(pending_user_id), "isPending": True, "type": PENDING_TOKEN},
        expires_delta or timedelta(hours=settings.PENDING_TOKEN_EXPIRE_HOURS),
    )


def decode_token(token: str) -> dict:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise InvalidToken("Invalid token")


def session_user_id(payload: dict) -> ObjectId:
    """Extract the user id from a session token payload."""
    user_id = payload.get("userId")
    if not user_id or payload.get("isPending") or not ObjectId.is_valid(user_id):
        raise InvalidToken("Invalid token")
    return ObjectId(user_id)


def pending_user_id(payload: dict) -> ObjectId:
    """Extract the pending user id from a pending token payload."""
    pending_id = payload.get("pendingUserId")
    if not pending_id or not payload.get("isPending") or not ObjectId.is_valid(pending_id):
        raise NotAPendingToken()
    return ObjectId(pending_id)
