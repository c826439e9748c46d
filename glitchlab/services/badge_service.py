"""Completion badges awarded by instructors."""

from typing import Any, Dict

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase

from glitchlab.core.exceptions import AlreadyAwarded, NotFound, NotRegistered
from glitchlab.core.security import Principal, require_instructor
from glitchlab.db.mongo import USERS, WORKSHOPS
from glitchlab.models.user import Badge, Notification, NotificationAction, push_notification
from glitchlab.utils.constants import NOTIFICATION_BADGE_AWARDED
from glitchlab.utils.helpers import localized, parse_object_id, resolve_language, serialize_doc, workshop_display_name

logger = structlog.get_logger(__name__)


def badge_name(workshop: Dict[str, Any], language: str) -> str:
    """Localized badge name, else the plain one, else one built from the workshop name."""
    fallback = workshop.get("badgeName") or f"{workshop_display_name(workshop, language)} Badge"
    return localized(workshop.get("badgeNameTranslations"), language, fallback)


class BadgeService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def award(self, principal: Principal, user_id: str, workshop_id: str) -> Dict[str, Any]:
        """
        Award the workshop badge to a registered user.

        The registration is kept: it is the proof of attendance and it
        stops the badge being awarded twice.
        """
        require_instructor(principal, "Only instructors can award badges")

        uid = parse_object_id(user_id, "user ID")
        wid = parse_object_id(workshop_id, "workshop ID")

        user = await self.db[USERS].find_one({"_id": uid})
        if not user:
            raise NotFound("User not found")
        workshop = await self.db[WORKSHOPS].find_one({"_id": wid})
        if not workshop:
            raise NotFound("Workshop not found")

        if wid not in (user.get("registeredWorkshops") or []):
            raise NotRegistered()
        if any(b.get("workshopId") == wid for b in user.get("badges") or []):
            raise AlreadyAwarded()

        language = resolve_language(user.get("emailLanguage"))
        workshop_name = workshop_display_name(workshop, language)
        badge = Badge(
            id=str(wid),
            workshop_id=wid,
            name=badge_name(workshop, language),
            description=f"Completed the {workshop_name} workshop",
            awarded_by=principal.id,
        )
        notification = Notification(
            type=NOTIFICATION_BADGE_AWARDED,
            title="badgeAwardedNotificationTitle",
            message="badgeAwardedNotificationMessage",
            workshop_id=wid,
            workshop_name=workshop_name,
            action=NotificationAction(label="viewBadgesAction", href="/profile"),
        )

        update = {"$push": {"badges": badge.to_document(), **push_notification(notification)}}
        result = await self.db[USERS].update_one(
            {"_id": uid, "registeredWorkshops": wid, "badges.workshopId": {"$ne": wid}},
            update,
        )
        if result.modified_count == 0:
            raise AlreadyAwarded()

        logger.info("badge_awarded", user_id=str(uid), workshop_id=str(wid), awarded_by=str(principal.id))
        return {"message": "Badge successfully awarded", "badge": serialize_doc(badge.to_document())}
