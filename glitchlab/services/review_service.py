"""Workshop reviews ("stamps")."""

from typing import Any, Dict, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from glitchlab.config import settings
from glitchlab.core.exceptions import DuplicateReview, Forbidden, NotFound, NotPastYet, ValidationFailed
from glitchlab.core.security import Principal, require_instructor
from glitchlab.db.mongo import REVIEWS, WORKSHOPS
from glitchlab.models.review import Review
from glitchlab.schemas.review import ReviewCreate, ReviewUpdate
from glitchlab.utils.constants import STATUS_PAST
from glitchlab.utils.helpers import parse_object_id, serialize_doc, workshop_display_name
from glitchlab.utils.workshop_status import status_of

logger = structlog.get_logger(__name__)


class ReviewService:
    """
    Reviews may only be written, edited or deleted while their workshop is
    past. Instructors cannot review; they feature reviews instead.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _get(self, review_id: str) -> Dict[str, Any]:
        rid = parse_object_id(review_id, "review ID")
        review = await self.db[REVIEWS].find_one({"_id": rid})
        if not review:
            raise NotFound("Review not found")
        return review

    async def _require_past(self, workshop_id, message: str) -> Dict[str, Any]:
        workshop = await self.db[WORKSHOPS].find_one({"_id": workshop_id})
        if not workshop:
            raise NotFound("Workshop not found")
        if status_of(workshop) != STATUS_PAST:
            raise NotPastYet(message)
        return workshop

    async def _owned(self, review_id: str, principal: Principal, action: str) -> Dict[str, Any]:
        review = await self._get(review_id)
        if review["user"] != principal.id:
            raise Forbidden(f"You can only {action} your own reviews")
        return review

    async def create(self, principal: Principal, data: ReviewCreate) -> Dict[str, Any]:
        if principal.is_instructor:
            raise Forbidden("Instructors cannot submit reviews")

        wid = parse_object_id(data.workshop_id, "workshop ID")
        await self._require_past(wid, "Reviews can only be submitted for past workshops")

        if await self.db[REVIEWS].find_one({"user": principal.id, "workshop": wid}, {"_id": 1}):
            raise DuplicateReview()

        review = Review(
            user=principal.id,
            workshop=wid,
            user_name=principal.user.get("name", ""),
            circle_color=data.circle_color,
            circle_font=data.circle_font,
            circle_text=data.circle_text,
            comment=data.comment or "",
        )
        doc = review.to_document()
        try:
            result = await self.db[REVIEWS].insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateReview()

        doc["_id"] = result.inserted_id
        logger.info("review_created", review_id=str(result.inserted_id), workshop_id=str(wid))
        return serialize_doc(doc)

    async def update(self, principal: Principal, review_id: str, data: ReviewUpdate) -> Dict[str, Any]:
        review = await self._owned(review_id, principal, "edit")
        await self._require_past(review["workshop"], "Reviews can only be edited for past workshops")

        # Blank stamp fields leave the stored value alone
        changes = {
            key: value
            for key, value in data.model_dump(by_alias=True, exclude={"comment"}).items()
            if value
        }
        changes["comment"] = data.comment or ""

        updated = await self.db[REVIEWS].find_one_and_update(
            {"_id": review["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFound("Review not found")
        return serialize_doc(updated)

    async def delete(self, principal: Principal, review_id: str) -> Dict[str, Any]:
        review = await self._owned(review_id, principal, "delete")
        await self._require_past(review["workshop"], "Reviews can only be deleted for past workshops")

        await self.db[REVIEWS].delete_one({"_id": review["_id"]})
        logger.info("review_deleted", review_id=str(review["_id"]))
        return {"message": "Review deleted successfully"}

    async def feature(self, principal: Principal, review_id: str, featured: bool) -> Dict[str, Any]:
        """Flag a review for the homepage, copying the workshop name onto it."""
        require_instructor(principal, "Only instructors can feature reviews")
        review = await self._get(review_id)

        changes: Dict[str, Any] = {"featured": featured}
        if featured and not review.get("workshopName"):
            workshop = await self.db[WORKSHOPS].find_one({"_id": review["workshop"]})
            changes["workshopName"] = workshop_display_name(workshop)

        updated = await self.db[REVIEWS].find_one_and_update(
            {"_id": review["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFound("Review not found")
        logger.info("review_featured", review_id=str(review["_id"]), featured=featured)
        return serialize_doc(updated)

    # Reads

    async def list_for_workshop(self, workshop_id: str, limit: Optional[int] = None, offset: int = 0) -> Dict[str, Any]:
        wid = parse_object_id(workshop_id, "workshop ID")
        limit = settings.DEFAULT_PAGE_SIZE if limit is None else limit
        if limit < 1 or offset < 0:
            raise ValidationFailed("Invalid pagination parameters")
        limit = min(limit, settings.MAX_PAGE_SIZE)

        cursor = self.db[REVIEWS].find({"workshop": wid}).sort("createdAt", DESCENDING).skip(offset).limit(limit)
        reviews = [serialize_doc(r) async for r in cursor]
        total = await self.db[REVIEWS].count_documents({"workshop": wid})
        return {
            "reviews": reviews,
            "pagination": {
                "total": total,
                "offset": offset,
                "limit": limit,
                "hasMore": offset + len(reviews) < total,
            },
        }

    async def get(self, review_id: str) -> Dict[str, Any]:
        return serialize_doc(await self._get(review_id))

    async def featured(self) -> List[Dict[str, Any]]:
        cursor = (
            self.db[REVIEWS]
            .find({"featured": True})
            .sort("createdAt", DESCENDING)
            .limit(settings.FEATURED_REVIEWS_LIMIT)
        )
        return [serialize_doc(r) async for r in cursor]

    async def for_user(self, principal: Principal) -> Dict[str, Any]:
        cursor = self.db[REVIEWS].find({"user": principal.id}).sort("createdAt", DESCENDING)
        reviews = await cursor.to_list(length=None)

        workshop_ids = list({r["workshop"] for r in reviews})
        workshops = {
            w["_id"]: w
            async for w in self.db[WORKSHOPS].find(
                {"_id": {"$in": workshop_ids}}, {"name": 1, "nameTranslations": 1}
            )
        }
        language = principal.user.get("emailLanguage")
        for review in reviews:
            review["workshopName"] = workshop_display_name(workshops.get(review["workshop"]), language)
        return {"reviews": [serialize_doc(r) for r in reviews]}

    async def check(self, principal: Principal, workshop_id: str) -> Dict[str, Any]:
        wid = parse_object_id(workshop_id, "workshop ID")
        review = await self.db[REVIEWS].find_one({"user": principal.id, "workshop": wid})
        return {"hasReviewed": review is not None, "review": serialize_doc(review)}
