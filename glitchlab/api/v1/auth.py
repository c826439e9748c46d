"""Authentication endpoints."""

from fastapi import APIRouter, Depends, status

from glitchlab.api.deps import get_auth_service, get_current_principal
from glitchlab.core.security import Principal
from glitchlab.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
    VerifyResetCodeRequest,
)
from glitchlab.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Start a registration and email a verification code."""
    return await service.register(request)


@router.post("/verify-email")
async def verify_email(request: VerifyEmailRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange a pending token and code for a session token."""
    return await service.verify_email(request.token, request.verification_code)


@router.post("/resend-verification")
async def resend_verification(
    request: ResendVerificationRequest, service: AuthService = Depends(get_auth_service)
):
    return await service.resend_verification(request.token, request.locale)


@router.post("/login")
async def login(request: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Login with email and password."""
    return await service.login(request.email, request.password)


@router.get("/me")
async def me(
    principal: Principal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
):
    """Get current user info."""
    return await service.me(principal)


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return await service.forgot_password(request.email, request.locale)


@router.post("/verify-reset-code")
async def verify_reset_code(request: VerifyResetCodeRequest, service: AuthService = Depends(get_auth_service)):
    return await service.verify_reset_code(request.email, request.code)


@router.post("/reset-password")
async def reset_password(request: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return await service.reset_password(request.email, request.code, request.password)
