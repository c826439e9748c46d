"""
Registration, email verification, login and password reset.

A registration first lives as a PendingUser. It is promoted to a User only
when the emailed code is presented before it expires.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from glitchlab.config import settings
from glitchlab.core.exceptions import (
    Conflict,
    DuplicateEmail,
    Expired,
    InvalidCode,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)
from glitchlab.core.security import (
    Principal,
    create_pending_token,
    create_session_token,
    decode_token,
    get_password_hash,
    pending_user_id,
    verify_password,
)
from glitchlab.db.mongo import PASSWORD_RESETS, PENDING_USERS, USERS
from glitchlab.models.password_reset import PasswordReset
from glitchlab.models.pending_user import PROMOTED_FIELDS, PendingUser, verification_expiry
from glitchlab.models.user import User, public_user
from glitchlab.schemas.auth import RegisterRequest
from glitchlab.services.email_service import EmailService
from glitchlab.utils.helpers import generate_verification_code, normalize_email, resolve_language, serialize_doc

logger = structlog.get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If your email is registered, you will receive a password reset code."
PENDING_NOT_FOUND = "Registration request not found or expired. Please register again."


class AuthService:
    """Account creation and credential flows."""

    def __init__(self, db: AsyncIOMotorDatabase, mailer: EmailService):
        self.db = db
        self.mailer = mailer

    async def register(self, data: RegisterRequest) -> Dict[str, Any]:
        """
        Start a registration.

        Any earlier pending registration for the same email is discarded.
        Returns a pending token the client presents with the emailed code.
        """
        email = normalize_email(data.email)
        if await self.db[USERS].find_one({"email": email}, {"_id": 1}):
            raise DuplicateEmail()

        language = data.email_language or resolve_language(data.locale)
        pending = PendingUser(
            name=data.name.strip(),
            email=email,
            password=get_password_hash(data.password),
            role=data.role,
            avatar=data.avatar or settings.DEFAULT_AVATAR,
            email_language=language,
            surname=data.surname,
            description=data.description,
            website=data.website,
            linkedin=data.linkedin,
            verification_code=generate_verification_code(),
        )

        # Latest registration attempt wins
        await self.db[PENDING_USERS].delete_many({"email": email})
        try:
            result = await self.db[PENDING_USERS].insert_one(pending.to_document())
        except DuplicateKeyError:
            raise Conflict("A registration for this email is already in progress")

        sent = await self.mailer.send_verification_email(email, pending.verification_code, language)
        if not sent:
            logger.warning("verification_email_not_sent", email=email)

        logger.info("pending_user_created", pending_user_id=str(result.inserted_id), role=data.role)
        return {
            "message": "Verification code sent. Please check your email.",
            "token": create_pending_token(result.inserted_id),
            "email": email,
        }

    async def verify_email(self, token: str, code: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Promote a pending registration to a verified user."""
        pending_id = pending_user_id(decode_token(token))
        now = now or datetime.utcnow()

        pending = await self.db[PENDING_USERS].find_one({"_id": pending_id})
        if not pending:
            raise NotFound(PENDING_NOT_FOUND)

        if not pending.get("verificationCode") or pending["verificationCode"] != code:
            raise InvalidCode()

        if pending["verificationCodeExpires"] < now:
            await self.db[PENDING_USERS].delete_one({"_id": pending_id})
            logger.info("pending_user_expired", pending_user_id=str(pending_id))
            raise Expired()

        if await self.db[USERS].find_one({"email": pending["email"]}, {"_id": 1}):
            await self.db[PENDING_USERS].delete_one({"_id": pending_id})
            raise DuplicateEmail("This email is already registered with an account.")

        # Claim the pending record; a concurrent verification loses here
        claimed = await self.db[PENDING_USERS].find_one_and_delete(
            {"_id": pending_id, "verificationCode": code}
        )
        if not claimed:
            raise NotFound(PENDING_NOT_FOUND)

        fields = {key: claimed[key] for key in PROMOTED_FIELDS if claimed.get(key) is not None}
        user = User.model_validate({**fields, "isVerified": True})
        user_doc = user.to_document()
        try:
            result = await self.db[USERS].insert_one(user_doc)
        except DuplicateKeyError:
            raise DuplicateEmail("This email is already registered with an account.")

        user_doc["_id"] = result.inserted_id
        logger.info("user_verified", user_id=str(result.inserted_id))
        return {
            "message": "Email verified successfully",
            "isVerified": True,
            "token": create_session_token(result.inserted_id),
            "user": serialize_doc(public_user(user_doc)),
        }

    async def resend_verification(self, token: str, locale: Optional[str] = None) -> Dict[str, Any]:
        """Issue a fresh code and expiry for the same pending registration."""
        pending_id = pending_user_id(decode_token(token))

        pending = await self.db[PENDING_USERS].find_one({"_id": pending_id})
        if not pending:
            raise NotFound(PENDING_NOT_FOUND)

        code = generate_verification_code()
        await self.db[PENDING_USERS].update_one(
            {"_id": pending_id},
            {"$set": {"verificationCode": code, "verificationCodeExpires": verification_expiry()}},
        )

        language = resolve_language(locale or pending.get("emailLanguage"))
        await self.mailer.send_verification_email(pending["email"], code, language)
        return {"message": "Verification code sent successfully"}

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        user = await self.db[USERS].find_one({"email": normalize_email(email)})
        if not user or not verify_password(password, user.get("password")):
            raise Unauthenticated("Incorrect email or password")

        return {
            "token": create_session_token(user["_id"]),
            "user": serialize_doc(public_user(user)),
        }

    async def me(self, principal: Principal) -> Dict[str, Any]:
        return serialize_doc(public_user(principal.user))

    async def forgot_password(self, email: str, locale: Optional[str] = None) -> Dict[str, Any]:
        """Send a reset code. The answer never reveals whether the email exists."""
        email = normalize_email(email)
        user = await self.db[USERS].find_one({"email": email}, {"emailLanguage": 1})
        if user:
            reset = PasswordReset(email=email, code=generate_verification_code())
            doc = reset.to_document()
            created_at = doc.pop("createdAt")
            # One outstanding code per email; a new request replaces it
            await self.db[PASSWORD_RESETS].update_one(
                {"email": email},
                {"$set": doc, "$setOnInsert": {"createdAt": created_at}},
                upsert=True,
            )
            language = resolve_language(locale or user.get("emailLanguage"))
            await self.mailer.send_password_reset_email(email, reset.code, language)
        return {"success": True, "message": FORGOT_PASSWORD_MESSAGE}

    async def _valid_reset(self, email: str, code: str) -> Dict[str, Any]:
        reset = await self.db[PASSWORD_RESETS].find_one(
            {
                "email": normalize_email(email),
                "code": code,
                "used": False,
                "expires": {"$gt": datetime.utcnow()},
            }
        )
        if not reset:
            raise ValidationFailed("Invalid or expired verification code")
        return reset

    async def verify_reset_code(self, email: str, code: str) -> Dict[str, Any]:
        await self._valid_reset(email, code)
        return {"success": True, "message": "Verification code is valid"}

    async def reset_password(self, email: str, code: str, password: str) -> Dict[str, Any]:
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
            )
        reset = await self._valid_reset(email, code)

        result = await self.db[USERS].update_one(
            {"email": reset["email"]},
            {"$set": {"password": get_password_hash(password), "updatedAt": datetime.utcnow()}},
        )
        if result.matched_count == 0:
            raise NotFound("User not found")

        await self.db[PASSWORD_RESETS].update_one({"_id": reset["_id"]}, {"$set": {"used": True}})
        logger.info("password_reset", email=reset["email"])
        return {"success": True, "message": "Password has been reset successfully"}
