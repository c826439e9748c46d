"""
Workshop lifecycle: create, update, cancel, uncancel, reminders and
registration accounting.

``registeredCount`` is denormalized on the workshop. Every change to it goes
through a conditional single-document update so concurrent requests cannot
push it above ``capacity`` or below zero.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import ReturnDocument

from glitchlab.core.exceptions import (
    AlreadyCanceled,
    AlreadyRegistered,
    AlreadyReminded,
    HasBadge,
    NotCanceled,
    NotFound,
    NotRegistered,
    ValidationFailed,
    WorkshopCanceled,
    WorkshopEnded,
    WorkshopFull,
)
from glitchlab.core.security import Principal, require_instructor
from glitchlab.db.mongo import USERS, WORKSHOPS
from glitchlab.models.user import Notification, NotificationAction, push_notification
from glitchlab.models.workshop import Workshop, categories_of
from glitchlab.schemas.workshop import WorkshopCreate, WorkshopUpdate
from glitchlab.services.email_service import DeliveryReport, EmailService, fan_out
from glitchlab.utils.constants import (
    NOTIFICATION_WORKSHOP_REMOVAL,
    STATUS_CANCELED,
    STATUS_FUTURE,
    STATUS_ONGOING,
    STATUS_PAST,
)
from glitchlab.utils.helpers import parse_object_id, resolve_language, serialize_doc, workshop_display_name
from glitchlab.utils.workshop_status import status_of, to_utc_naive

logger = structlog.get_logger(__name__)

# Never written through a plain update
PROTECTED_FIELDS = ("registeredCount", "canceled", "reminderSent")

# Fields whose change triggers an update email
NOTIFIED_FIELDS = ("startDate", "endDate", "location")


def validation_message(error: ValidationError) -> str:
    """First human readable message of a pydantic error."""
    first = error.errors()[0]
    message = first.get("msg", "Invalid workshop data")
    return message.replace("Value error, ", "")


def serialize_workshop(workshop: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Workshop document as returned by the API, with derived fields."""
    data = serialize_doc(workshop)
    data["status"] = status_of(workshop, now=now)
    data["categories"] = categories_of(workshop)
    return data


def status_query(status: str, now: datetime) -> Dict[str, Any]:
    """MongoDB filter matching workshops with the given derived status."""
    if status == STATUS_CANCELED:
        return {"canceled": True}
    active = {"canceled": {"$ne": True}}
    if status == STATUS_FUTURE:
        return {**active, "startDate": {"$gt": now}}
    if status == STATUS_ONGOING:
        return {**active, "startDate": {"$lte": now}, "endDate": {"$gte": now}}
    if status == STATUS_PAST:
        return {**active, "endDate": {"$lt": now}}
    raise ValidationFailed(f"Invalid status: {status}")


class WorkshopService:
    """Workshop operations for users and instructors."""

    def __init__(self, db: AsyncIOMotorDatabase, mailer: EmailService):
        self.db = db
        self.mailer = mailer

    async def _get(self, workshop_id: Any) -> Dict[str, Any]:
        wid = parse_object_id(workshop_id, "workshop ID")
        workshop = await self.db[WORKSHOPS].find_one({"_id": wid})
        if not workshop:
            raise NotFound("Workshop not found")
        return workshop

    async def _get_user(self, user_id: Any) -> Dict[str, Any]:
        uid = parse_object_id(user_id, "user ID")
        user = await self.db[USERS].find_one({"_id": uid})
        if not user:
            raise NotFound("User not found")
        return user

    async def _decrement(self, workshop_id) -> None:
        await self.db[WORKSHOPS].update_one(
            {"_id": workshop_id, "registeredCount": {"$gt": 0}},
            {"$inc": {"registeredCount": -1}},
        )

    def _build(self, fields: Dict[str, Any]) -> Workshop:
        try:
            return Workshop.model_validate(fields)
        except ValidationError as e:
            raise ValidationFailed(validation_message(e))

    # Reads

    async def list_workshops(
        self,
        status: Optional[str] = None,
        age_range: Optional[str] = None,
        level: Optional[str] = None,
        class_type: Optional[str] = None,
        subject: Optional[str] = None,
        tech_type: Optional[str] = None,
        instructor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        now = now or datetime.utcnow()
        query: Dict[str, Any] = {}
        if status:
            query.update(status_query(status, now))
        if age_range:
            query["facets.ageRange"] = age_range
        if level:
            query["level"] = level
        if class_type:
            query["facets.classType"] = class_type
        if subject:
            query["facets.subjects"] = subject
        if tech_type:
            query["facets.techType"] = tech_type
        if instructor_id:
            query["instructorIds"] = parse_object_id(instructor_id, "instructor ID")

        cursor = self.db[WORKSHOPS].find(query).sort("startDate", 1)
        return [serialize_workshop(w, now) async for w in cursor]

    async def get_workshop(self, workshop_id: str) -> Dict[str, Any]:
        return serialize_workshop(await self._get(workshop_id))

    async def registered_workshops(self, principal: Principal) -> List[Dict[str, Any]]:
        ids = principal.user.get("registeredWorkshops") or []
        if not ids:
            return []
        cursor = self.db[WORKSHOPS].find({"_id": {"$in": ids}}).sort("startDate", 1)
        return [serialize_workshop(w) async for w in cursor]

    async def instructor_workshops(self, instructor_id: str) -> List[Dict[str, Any]]:
        iid = parse_object_id(instructor_id, "instructor ID")
        instructor = await self.db[USERS].find_one({"_id": iid, "role": "instructor"}, {"_id": 1})
        if not instructor:
            raise NotFound("Instructor not found")
        cursor = self.db[WORKSHOPS].find({"instructorIds": iid}).sort("startDate", 1)
        return [serialize_workshop(w) async for w in cursor]

    async def my_instructor_workshops(self, principal: Principal) -> List[Dict[str, Any]]:
        require_instructor(principal)
        return await self.instructor_workshops(principal.id)

    async def registered_users(self, principal: Principal, workshop_id: str) -> Dict[str, Any]:
        require_instructor(principal, "Only instructors can view registered users")
        workshop = await self._get(workshop_id)

        cursor = self.db[USERS].find(
            {"registeredWorkshops": workshop["_id"]},
            {"name": 1, "email": 1, "avatar": 1, "badges": 1},
        ).sort("name", 1)
        users = []
        async for user in cursor:
            user["badges"] = [
                {"workshopId": b.get("workshopId"), "name": b.get("name")}
                for b in user.get("badges") or []
            ]
            users.append(serialize_doc(user))

        return {
            "workshop": {
                "_id": str(workshop["_id"]),
                "name": workshop_display_name(workshop),
                "registeredCount": workshop.get("registeredCount", 0),
                "capacity": workshop.get("capacity"),
            },
            "users": users,
        }

    # Instructor writes

    async def create_workshop(self, principal: Principal, data: WorkshopCreate) -> Dict[str, Any]:
        require_instructor(principal, "Only instructors can create workshops")

        fields = data.model_dump(exclude={"categories"}, exclude_none=True)
        instructor_ids = [parse_object_id(i, "instructor ID") for i in data.instructor_ids]
        if principal.id not in instructor_ids:
            instructor_ids.append(principal.id)
        fields["instructor_ids"] = instructor_ids

        workshop = self._build(fields)
        doc = workshop.to_document()
        result = await self.db[WORKSHOPS].insert_one(doc)
        doc["_id"] = result.inserted_id

        logger.info("workshop_created", workshop_id=str(result.inserted_id), instructor_id=str(principal.id))
        return serialize_workshop(doc)

    async def batch_create(self, principal: Principal, items: List[WorkshopCreate]) -> List[Dict[str, Any]]:
        """Create several workshops; all are validated before any is stored."""
        require_instructor(principal, "Only instructors can create workshops")
        if not items:
            raise ValidationFailed("No workshops provided")

        docs = []
        for data in items:
            fields = data.model_dump(exclude={"categories"}, exclude_none=True)
            ids = [parse_object_id(i, "instructor ID") for i in data.instructor_ids]
            if principal.id not in ids:
                ids.append(principal.id)
            fields["instructor_ids"] = ids
            docs.append(self._build(fields).to_document())

        result = await self.db[WORKSHOPS].insert_many(docs)
        for doc, inserted_id in zip(docs, result.inserted_ids):
            doc["_id"] = inserted_id

        logger.info("workshops_batch_created", count=len(docs), instructor_id=str(principal.id))
        return [serialize_workshop(doc) for doc in docs]

    async def update_workshop(
        self, principal: Principal, workshop_id: str, data: WorkshopUpdate
    ) -> Dict[str, Any]:
        """
        Merge the provided fields into the workshop.

        When the dates or location change, registrants who opted in to
        change notifications get an email comparing old and new details.
        """
        require_instructor(principal, "Only instructors can update workshops")
        existing = await self._get(workshop_id)
        current = self._build(existing)

        updates = data.model_dump(exclude={"categories"}, exclude_none=True)
        if "instructor_ids" in updates:
            updates["instructor_ids"] = [parse_object_id(i, "instructor ID") for i in updates["instructor_ids"]]
        merged = self._build({**current.model_dump(), **updates})

        before = current.to_document()
        after = merged.to_document()
        changed = [f for f in NOTIFIED_FIELDS if before.get(f) != after.get(f)]

        report: Optional[DeliveryReport] = None
        if changed:
            previous = {f: before.get(f) for f in NOTIFIED_FIELDS}
            latest = {f: after.get(f) for f in NOTIFIED_FIELDS}
            recipients = self.db[USERS].find(
                {"registeredWorkshops": existing["_id"], "emailNotifications.changes": True},
                {"email": 1, "emailLanguage": 1},
            )

            async def notify(user):
                language = resolve_language(user.get("emailLanguage"))
                return await self.mailer.send_workshop_update_email(
                    user["email"], workshop_display_name(existing, language), previous, latest, language
                )

            report = await fan_out(await recipients.to_list(length=None), notify)
            logger.info(
                "workshop_update_notified",
                workshop_id=str(existing["_id"]),
                changed=changed,
                sent=len(report.sent),
                failed=len(report.failed),
            )

        changes = {k: v for k, v in after.items() if k not in PROTECTED_FIELDS}
        updated = await self.db[WORKSHOPS].find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFound("Workshop not found")

        response = {"workshop": serialize_workshop(updated)}
        if report is not None:
            response["notifications"] = report.to_dict()
        return response

    async def cancel(self, principal: Principal, workshop_id: str) -> Dict[str, Any]:
        """
        Cancel a workshop and unregister everybody.

        Each registrant gets a cancellation email in their own language.
        Delivery is best effort; the per-recipient outcome is returned.
        """
        require_instructor(principal, "Only instructors can cancel workshops")
        workshop = await self._get(workshop_id)
        wid = workshop["_id"]

        result = await self.db[WORKSHOPS].update_one(
            {"_id": wid, "canceled": {"$ne": True}},
            {"$set": {"canceled": True}},
        )
        if result.modified_count == 0:
            raise AlreadyCanceled()

        registrants = await self.db[USERS].find(
            {"registeredWorkshops": wid}, {"email": 1, "emailLanguage": 1}
        ).to_list(length=None)

        async def notify(user):
            language = resolve_language(user.get("emailLanguage"))
            return await self.mailer.send_workshop_cancellation_email(
                user["email"], workshop_display_name(workshop, language), workshop["startDate"], language
            )

        report = await fan_out(registrants, notify)

        await self.db[USERS].update_many(
            {"registeredWorkshops": wid}, {"$pull": {"registeredWorkshops": wid}}
        )
        await self.db[WORKSHOPS].update_one({"_id": wid}, {"$set": {"registeredCount": 0}})

        logger.info(
            "workshop_canceled",
            workshop_id=str(wid),
            registrants=len(registrants),
            emails_sent=len(report.sent),
            emails_failed=len(report.failed),
        )
        workshop = await self.db[WORKSHOPS].find_one({"_id": wid})
        return {
            "message": "Workshop canceled successfully",
            "workshop": serialize_workshop(workshop),
            "notifications": report.to_dict(),
        }

    async def uncancel(
        self, principal: Principal, workshop_id: str, new_start: datetime, new_end: datetime
    ) -> Dict[str, Any]:
        require_instructor(principal, "Only instructors can uncancel workshops")
        workshop = await self._get(workshop_id)
        if not workshop.get("canceled"):
            raise NotCanceled()

        start, end = to_utc_naive(new_start), to_utc_naive(new_end)
        if end < start:
            raise ValidationFailed("End date must not be before start date")

        updated = await self.db[WORKSHOPS].find_one_and_update(
            {"_id": workshop["_id"], "canceled": True},
            {"$set": {"startDate": start, "endDate": end, "canceled": False, "reminderSent": False}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotCanceled()

        logger.info("workshop_uncanceled", workshop_id=str(workshop["_id"]))
        return {"message": "Workshop restored successfully", "workshop": serialize_workshop(updated)}

    async def send_reminder(self, principal: Principal, workshop_id: str) -> Dict[str, Any]:
        """Email registrants who opted in to workshop reminders. Runs once per cycle."""
        require_instructor(principal, "Only instructors can send reminders")
        workshop = await self._get(workshop_id)
        wid = workshop["_id"]

        if workshop.get("canceled"):
            raise AlreadyCanceled("Cannot send reminder for a canceled workshop")
        if workshop.get("reminderSent"):
            raise AlreadyReminded()

        # Claim the flag first; the flag stays set whatever the delivery outcome
        claimed = await self.db[WORKSHOPS].update_one(
            {"_id": wid, "canceled": {"$ne": True}, "reminderSent": {"$ne": True}},
            {"$set": {"reminderSent": True}},
        )
        if claimed.modified_count == 0:
            raise AlreadyReminded()

        registrants = await self.db[USERS].find(
            {"registeredWorkshops": wid, "emailNotifications.workshops": True},
            {"email": 1, "emailLanguage": 1},
        ).to_list(length=None)

        async def notify(user):
            language = resolve_language(user.get("emailLanguage"))
            return await self.mailer.send_workshop_reminder_email(
                user["email"], workshop_display_name(workshop, language), workshop["startDate"], language
            )

        report = await fan_out(registrants, notify)
        logger.info("workshop_reminder_sent", workshop_id=str(wid), sent=len(report.sent), total=report.total)
        return {
            "message": "Reminder emails sent successfully",
            "sentTo": len(report.sent),
            "totalUsers": report.total,
        }

    async def remove_user(self, principal: Principal, user_id: str, workshop_id: str) -> Dict[str, Any]:
        require_instructor(principal, "Only instructors can remove users from workshops")
        user = await self._get_user(user_id)
        workshop = await self._get(workshop_id)
        wid = workshop["_id"]

        if wid not in (user.get("registeredWorkshops") or []):
            raise NotRegistered()
        if any(b.get("workshopId") == wid for b in user.get("badges") or []):
            raise HasBadge()

        notification = Notification(
            type=NOTIFICATION_WORKSHOP_REMOVAL,
            title="removalNotificationTitle",
            message="removalNotificationMessage",
            workshop_id=wid,
            workshop_name=workshop_display_name(workshop, user.get("emailLanguage")),
            action=NotificationAction(label="exploreWorkshopsAction", href="/workshops"),
        )
        result = await self.db[USERS].update_one(
            {"_id": user["_id"], "registeredWorkshops": wid, "badges.workshopId": {"$ne": wid}},
            {"$pull": {"registeredWorkshops": wid}, "$push": push_notification(notification)},
        )
        if result.modified_count == 0:
            # Lost a race with an unregister or a badge award
            raise NotRegistered()

        await self._decrement(wid)
        logger.info("workshop_user_removed", workshop_id=str(wid), user_id=str(user["_id"]))
        return {"message": "User successfully removed from workshop"}

    # User writes

    async def register(self, principal: Principal, workshop_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Register the caller, holding a seat before touching the user."""
        workshop = await self._get(workshop_id)
        wid = workshop["_id"]
        user = await self._get_user(principal.id)

        if wid in (user.get("registeredWorkshops") or []):
            raise AlreadyRegistered()
        status = status_of(workshop, now=now)
        if status == STATUS_CANCELED:
            raise WorkshopCanceled()
        if status == STATUS_PAST:
            raise WorkshopEnded()

        capacity = workshop.get("capacity", 10)
        seat = await self.db[WORKSHOPS].update_one(
            {"_id": wid, "canceled": {"$ne": True}, "registeredCount": {"$lt": capacity}},
            {"$inc": {"registeredCount": 1}},
        )
        if seat.modified_count == 0:
            raise WorkshopFull()

        added = await self.db[USERS].update_one(
            {"_id": user["_id"], "registeredWorkshops": {"$ne": wid}},
            {"$addToSet": {"registeredWorkshops": wid}},
        )
        if added.modified_count == 0:
            await self._decrement(wid)
            raise AlreadyRegistered()

        logger.info("workshop_registered", workshop_id=str(wid), user_id=str(user["_id"]))
        return {"message": "Successfully registered for workshop"}

    async def unregister(self, principal: Principal, workshop_id: str) -> Dict[str, Any]:
        workshop = await self._get(workshop_id)
        wid = workshop["_id"]

        result = await self.db[USERS].update_one(
            {"_id": principal.id, "registeredWorkshops": wid},
            {"$pull": {"registeredWorkshops": wid}},
        )
        if result.modified_count == 0:
            raise NotRegistered()

        await self._decrement(wid)
        logger.info("workshop_unregistered", workshop_id=str(wid), user_id=str(principal.id))
        return {"message": "Successfully unregistered from workshop"}
