"""Review endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from glitchlab.api.deps import get_current_principal, get_review_service
from glitchlab.core.security import Principal
from glitchlab.schemas.review import FeatureReviewRequest, ReviewCreate, ReviewUpdate
from glitchlab.services.review_service import ReviewService

router = APIRouter()


@router.get("")
async def list_reviews(
    workshop_id: str = Query(..., alias="workshopId"),
    limit: Optional[int] = None,
    offset: int = 0,
    service: ReviewService = Depends(get_review_service),
):
    """Reviews for one workshop, newest first."""
    return await service.list_for_workshop(workshop_id, limit=limit, offset=offset)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(
    request: ReviewCreate,
    principal: Principal = Depends(get_current_principal),
    service: ReviewService = Depends(get_review_service),
):
    return await service.create(principal, request)


@router.get("/featured")
async def featured_reviews(service: ReviewService = Depends(get_review_service)):
    return await service.featured()


@router.put("/feature")
async def feature_review(
    request: FeatureReviewRequest,
    principal: Principal = Depends(get_current_principal),
    service: ReviewService = Depends(get_review_service),
):
    return await service.feature(principal, request.review_id, request.featured)


@router.get("/user")
async def user_reviews(
    principal: Principal = Depends(get_current_principal),
    service: ReviewService = Depends(get_review_service),
):
    return await service.for_user(principal)


@router.get("/check")
async def check_review(
    workshop_id: str = Query(..., alias="workshopId"),
    principal: Principal = Depends(get_current_principal),
    service: ReviewService = Depends(get_review_service),
):
    return await service.check(principal, workshop_id)


@router.get("/{review_id}")
async def get_review(review_id: str, service: ReviewService = Depends(get_review_service)):
    return await service.get(review_id)


@router.put("/{review_id}")
async def update_review(
    review_id: str,
    request: ReviewUpdate,
    principal: Principal = Depends(get_current_principal),
    service: ReviewService = Depends(get_review_service),
):
    return await service.update(principal, review_id, request)


@router.delete("/{review_id}")
async def delete_review(
    review_id: str,
    principal: Principal = Depends(get_current_principal),
    service: ReviewService = Depends(get_review_service),
):
    return await service.delete(principal, review_id)
