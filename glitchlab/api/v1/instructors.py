"""Instructor endpoints."""

from fastapi import APIRouter, Depends, status

from glitchlab.api.deps import get_current_principal, get_user_service
from glitchlab.core.security import Principal
from glitchlab.schemas.user import InstructorCreate
from glitchlab.services.user_service import UserService

router = APIRouter()


@router.get("")
async def list_instructors(service: UserService = Depends(get_user_service)):
    return await service.list_instructors()


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_instructor(
    request: InstructorCreate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """Create a verified instructor account."""
    return await service.register_instructor(principal, request)
