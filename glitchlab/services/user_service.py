"""User accounts, preferences, in-app notifications and instructors."""

from datetime import datetime
from typing import Any, Dict, List

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from glitchlab.config import settings
from glitchlab.core.exceptions import DuplicateEmail, NotFound, Unauthenticated, ValidationFailed
from glitchlab.core.security import Principal, get_password_hash, require_instructor, verify_password
from glitchlab.db.mongo import REVIEWS, USERS, WORKSHOPS
from glitchlab.models.user import User, public_user
from glitchlab.schemas.user import (
    EmailLanguageUpdate,
    InstructorCreate,
    MarkNotificationsRead,
    NotificationPreferencesUpdate,
    PasswordChange,
    ProfileUpdate,
)
from glitchlab.utils.helpers import normalize_email, parse_object_id, serialize_doc

logger = structlog.get_logger(__name__)

INSTRUCTOR_ONLY_FIELDS = ("surname", "description", "website", "linkedin")
INSTRUCTOR_PUBLIC_FIELDS = {"name": 1, "surname": 1, "description": 1, "website": 1, "linkedin": 1, "avatar": 1}


class UserService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _set(self, principal: Principal, changes: Dict[str, Any]) -> Dict[str, Any]:
        changes["updatedAt"] = datetime.utcnow()
        try:
            user = await self.db[USERS].find_one_and_update(
                {"_id": principal.id},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise DuplicateEmail("Email is already in use")
        if not user:
            raise NotFound("User not found")
        return user

    async def update_profile(self, principal: Principal, data: ProfileUpdate) -> Dict[str, Any]:
        changes = data.model_dump(by_alias=True, exclude_none=True)
        if not principal.is_instructor:
            for field in INSTRUCTOR_ONLY_FIELDS:
                changes.pop(field, None)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
            if changes["email"] != principal.user.get("email"):
                taken = await self.db[USERS].find_one(
                    {"email": changes["email"], "_id": {"$ne": principal.id}}, {"_id": 1}
                )
                if taken:
                    raise DuplicateEmail("Email is already in use")

        user = await self._set(principal, changes)
        logger.info("profile_updated", user_id=str(principal.id), fields=sorted(changes))
        return serialize_doc(public_user(user))

    async def change_password(self, principal: Principal, data: PasswordChange) -> Dict[str, Any]:
        if not verify_password(data.current_password, principal.user.get("password")):
            raise Unauthenticated("Current password is incorrect")

        await self._set(principal, {"password": get_password_hash(data.new_password)})
        logger.info("password_changed", user_id=str(principal.id))
        return {"message": "Password updated successfully"}

    async def get_notification_preferences(self, principal: Principal) -> Dict[str, Any]:
        prefs = principal.user.get("emailNotifications") or {}
        return {
            "emailNotifications": {
                "workshops": prefs.get("workshops", True),
                "changes": prefs.get("changes", True),
            }
        }

    async def update_notification_preferences(
        self, principal: Principal, data: NotificationPreferencesUpdate
    ) -> Dict[str, Any]:
        prefs = data.email_notifications.model_dump()
        await self._set(principal, {"emailNotifications": prefs})
        return {"message": "Notification preferences updated successfully", "emailNotifications": prefs}

    async def get_email_language(self, principal: Principal) -> Dict[str, Any]:
        return {"emailLanguage": principal.user.get("emailLanguage") or "en"}

    async def update_email_language(self, principal: Principal, data: EmailLanguageUpdate) -> Dict[str, Any]:
        await self._set(principal, {"emailLanguage": data.email_language})
        return {"message": "Email language updated successfully", "emailLanguage": data.email_language}

    async def delete_account(self, principal: Principal) -> Dict[str, Any]:
        """Delete the caller, their reviews and their seats in workshops."""
        reviews = await self.db[REVIEWS].delete_many({"user": principal.id})

        for workshop_id in principal.user.get("registeredWorkshops") or []:
            await self.db[WORKSHOPS].update_one(
                {"_id": workshop_id, "registeredCount": {"$gt": 0}},
                {"$inc": {"registeredCount": -1}},
            )

        result = await self.db[USERS].delete_one({"_id": principal.id})
        if result.deleted_count == 0:
            raise NotFound("User not found")

        logger.info("account_deleted", user_id=str(principal.id), reviews_deleted=reviews.deleted_count)
        return {"message": "Account deleted successfully"}

    # Notifications

    async def notifications(self, principal: Principal) -> Dict[str, Any]:
        items = principal.user.get("notifications") or []
        return {
            "notifications": serialize_doc(items),
            "unreadCount": sum(1 for n in items if not n.get("read")),
        }

    async def mark_notifications_read(self, principal: Principal, data: MarkNotificationsRead) -> Dict[str, Any]:
        """Flag notifications as read in place on the stored document."""
        projection = {"notifications": 1}
        if data.mark_all_as_read:
            # $[] needs an existing array
            user = await self.db[USERS].find_one_and_update(
                {"_id": principal.id, "notifications.0": {"$exists": True}},
                {"$set": {"notifications.$[].read": True}},
                projection=projection,
                return_document=ReturnDocument.AFTER,
            )
            if user is None:
                user = await self.db[USERS].find_one({"_id": principal.id}, projection)
                if user is None:
                    raise NotFound("User not found")
        elif data.notification_id:
            nid = parse_object_id(data.notification_id, "notification ID")
            user = await self.db[USERS].find_one_and_update(
                {"_id": principal.id, "notifications._id": nid},
                {"$set": {"notifications.$.read": True}},
                projection=projection,
                return_document=ReturnDocument.AFTER,
            )
            if user is None:
                raise NotFound("Notification not found")
        else:
            raise ValidationFailed("Either notificationId or markAllAsRead is required")

        items = user.get("notifications") or []
        return {
            "message": "Notifications updated",
            "unreadCount": sum(1 for n in items if not n.get("read")),
        }

    # Instructors

    async def register_instructor(self, principal: Principal, data: InstructorCreate) -> Dict[str, Any]:
        """Create a verified instructor account on behalf of another instructor."""
        require_instructor(principal, "Only instructors can register new instructors")

        email = normalize_email(data.email)
        if await self.db[USERS].find_one({"email": email}, {"_id": 1}):
            raise DuplicateEmail()

        user = User(
            name=data.name,
            email=email,
            password=get_password_hash(data.password),
            role="instructor",
            avatar=data.avatar or settings.DEFAULT_INSTRUCTOR_AVATAR,
            surname=data.surname,
            description=data.description,
            website=data.website,
            linkedin=data.linkedin,
            is_verified=True,
        )
        doc = user.to_document()
        try:
            result = await self.db[USERS].insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateEmail()

        doc["_id"] = result.inserted_id
        logger.info("instructor_registered", user_id=str(result.inserted_id), created_by=str(principal.id))
        return serialize_doc(public_user(doc))

    async def list_instructors(self) -> Dict[str, List[Dict[str, Any]]]:
        cursor = self.db[USERS].find({"role": "instructor"}, INSTRUCTOR_PUBLIC_FIELDS).sort("name", 1)
        return {"instructors": [serialize_doc(i) async for i in cursor]}
