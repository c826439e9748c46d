"""Badge endpoints."""

from fastapi import APIRouter, Depends

from glitchlab.api.deps import get_badge_service, get_current_principal
from glitchlab.core.security import Principal
from glitchlab.schemas.user import AwardBadgeRequest
from glitchlab.services.badge_service import BadgeService

router = APIRouter()


@router.post("/award")
async def award_badge(
    request: AwardBadgeRequest,
    principal: Principal = Depends(get_current_principal),
    service: BadgeService = Depends(get_badge_service),
):
    """Award a workshop's badge to one of its registrants."""
    return await service.award(principal, request.user_id, request.workshop_id)
