"""
API Dependencies
Authentication and service wiring shared by the endpoints.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

from glitchlab.core.exceptions import Unauthenticated
from glitchlab.core.security import Principal, decode_token, session_user_id
from glitchlab.db.mongo import USERS, get_db
from glitchlab.services.auth_service import AuthService
from glitchlab.services.badge_service import BadgeService
from glitchlab.services.email_service import EmailService, get_email_service
from glitchlab.services.review_service import ReviewService
from glitchlab.services.user_service import UserService
from glitchlab.services.workshop_service import WorkshopService

# Errors are rendered by the app's handlers, not by the scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Principal:
    """
    Resolve the bearer session token to the calling user.

    Pending-verification tokens are rejected here.
    """
    if not credentials or not credentials.credentials:
        raise Unauthenticated("No token provided")

    user_id = session_user_id(decode_token(credentials.credentials))
    user = await db[USERS].find_one({"_id": user_id})
    if user is None:
        raise Unauthenticated("User not found")
    return Principal.from_user(user)


def get_auth_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(db, mailer)


def get_workshop_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
) -> WorkshopService:
    return WorkshopService(db, mailer)


def get_review_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_user_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> UserService:
    return UserService(db)


def get_badge_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> BadgeService:
    return BadgeService(db)
