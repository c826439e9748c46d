"""Workshop endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from glitchlab.api.deps import get_current_principal, get_workshop_service
from glitchlab.core.security import Principal
from glitchlab.schemas.workshop import (
    RemoveUserRequest,
    UncancelRequest,
    WorkshopCreate,
    WorkshopIdRequest,
    WorkshopUpdate,
)
from glitchlab.services.workshop_service import WorkshopService

router = APIRouter()

# Static paths are declared before "/{workshop_id}" so they are matched first.


@router.get("")
async def list_workshops(
    status_filter: Optional[str] = Query(None, alias="status"),
    age_range: Optional[str] = Query(None, alias="ageRange"),
    level: Optional[str] = None,
    class_type: Optional[str] = Query(None, alias="classType"),
    subject: Optional[str] = None,
    tech_type: Optional[str] = Query(None, alias="techType"),
    instructor_id: Optional[str] = Query(None, alias="instructorId"),
    service: WorkshopService = Depends(get_workshop_service),
):
    """List workshops, optionally filtered by status and facets."""
    return await service.list_workshops(
        status=status_filter,
        age_range=age_range,
        level=level,
        class_type=class_type,
        subject=subject,
        tech_type=tech_type,
        instructor_id=instructor_id,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_workshop(
    request: WorkshopCreate,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.create_workshop(principal, request)


@router.post("/batch", status_code=status.HTTP_201_CREATED)
async def batch_create(
    request: List[WorkshopCreate],
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    workshops = await service.batch_create(principal, request)
    return {"message": f"{len(workshops)} workshops created", "workshops": workshops}


@router.post("/register")
async def register(
    request: WorkshopIdRequest,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.register(principal, request.workshop_id)


@router.post("/unregister")
async def unregister(
    request: WorkshopIdRequest,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.unregister(principal, request.workshop_id)


@router.post("/remove-user")
async def remove_user(
    request: RemoveUserRequest,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Instructor removes a registrant who has no badge for the workshop."""
    return await service.remove_user(principal, request.user_id, request.workshop_id)


@router.post("/cancel")
async def cancel_by_body(
    request: WorkshopIdRequest,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.cancel(principal, request.workshop_id)


@router.post("/uncancel")
async def uncancel(
    request: UncancelRequest,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.uncancel(principal, request.workshop_id, request.new_start_date, request.new_end_date)


@router.get("/registered-users")
async def registered_users(
    workshop_id: str = Query(..., alias="workshopId"),
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.registered_users(principal, workshop_id)


@router.get("/registered")
async def registered_workshops(
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Workshops the caller is registered for."""
    return await service.registered_workshops(principal)


@router.get("/instructor")
async def my_instructor_workshops(
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.my_instructor_workshops(principal)


@router.get("/instructor/{instructor_id}")
async def instructor_workshops(instructor_id: str, service: WorkshopService = Depends(get_workshop_service)):
    return await service.instructor_workshops(instructor_id)


@router.get("/{workshop_id}")
async def get_workshop(workshop_id: str, service: WorkshopService = Depends(get_workshop_service)):
    return await service.get_workshop(workshop_id)


@router.put("/{workshop_id}")
async def update_workshop(
    workshop_id: str,
    request: WorkshopUpdate,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.update_workshop(principal, workshop_id, request)


@router.post("/{workshop_id}/cancel")
async def cancel(
    workshop_id: str,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    """Cancel a workshop, emailing and unregistering every registrant."""
    return await service.cancel(principal, workshop_id)


@router.post("/{workshop_id}/send-reminder")
async def send_reminder(
    workshop_id: str,
    principal: Principal = Depends(get_current_principal),
    service: WorkshopService = Depends(get_workshop_service),
):
    return await service.send_reminder(principal, workshop_id)
