"""Authentication schemas."""

from typing import Literal, Optional

from pydantic import EmailStr, Field

from glitchlab.config import settings
from glitchlab.schemas.base import APIModel


class RegisterRequest(APIModel):
    """Register request schema."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(
        ...,
        min_length=settings.MIN_PASSWORD_LENGTH,
        description="Password must be at least 8 characters",
    )
    role: Literal["user", "instructor"] = "user"
    avatar: Optional[str] = None
    surname: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    email_language: Optional[Literal["en", "it"]] = None
    locale: Optional[str] = None


class RegisterResponse(APIModel):
    message: str
    token: str
    email: str


class VerifyEmailRequest(APIModel):
    token: str = Field(..., min_length=1)
    verification_code: str = Field(..., min_length=1)


class ResendVerificationRequest(APIModel):
    token: str = Field(..., min_length=1)
    locale: Optional[str] = None


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(APIModel):
    email: EmailStr
    locale: Optional[str] = None


class VerifyResetCodeRequest(APIModel):
    email: EmailStr
    code: str = Field(..., min_length=1)


class ResetPasswordRequest(VerifyResetCodeRequest):
    password: str = Field(..., min_length=settings.MIN_PASSWORD_LENGTH)
