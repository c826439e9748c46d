"""User account endpoints."""

from fastapi import APIRouter, Depends

from glitchlab.api.deps import get_current_principal, get_user_service
from glitchlab.core.security import Principal
from glitchlab.schemas.user import (
    EmailLanguageUpdate,
    MarkNotificationsRead,
    NotificationPreferencesUpdate,
    PasswordChange,
    ProfileUpdate,
)
from glitchlab.services.user_service import UserService

router = APIRouter()


@router.put("/update")
async def update_profile(
    request: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.update_profile(principal, request)


@router.put("/password")
async def change_password(
    request: PasswordChange,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.change_password(principal, request)


@router.get("/notification-preferences")
async def get_notification_preferences(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.get_notification_preferences(principal)


@router.put("/notification-preferences")
async def update_notification_preferences(
    request: NotificationPreferencesUpdate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.update_notification_preferences(principal, request)


@router.get("/email-language")
async def get_email_language(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.get_email_language(principal)


@router.put("/email-language")
async def update_email_language(
    request: EmailLanguageUpdate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.update_email_language(principal, request)


@router.delete("/delete")
async def delete_account(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    """Delete the caller's account, reviews and workshop seats."""
    return await service.delete_account(principal)


@router.get("/notifications")
async def notifications(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.notifications(principal)


@router.put("/notifications")
async def mark_notifications_read(
    request: MarkNotificationsRead,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return await service.mark_notifications_read(principal, request)
