"""Application configuration using Pydantic Settings."""

from typing import List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "GlitchLab API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: Union[str, List[str]] = ["*"]

    # MongoDB (required, no default)
    MONGODB_URI: str = Field(..., min_length=1)
    MONGODB_DATABASE: str = "GlitchLab"
    MONGODB_MAX_POOL_SIZE: int = 10
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # JWT (required, no default)
    JWT_SECRET: str = Field(..., min_length=1)
    JWT_ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_DAYS: int = 7
    PENDING_TOKEN_EXPIRE_HOURS: int = 24

    # Email verification / password reset
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 30
    PASSWORD_RESET_EXPIRE_MINUTES: int = 30
    PENDING_USER_TTL_SECONDS: int = 86400  # 24 hours
    MIN_PASSWORD_LENGTH: int = 8
    BCRYPT_ROUNDS: int = 10

    # Email (SMTP)
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_SECURE: bool = False  # True = implicit TLS, False = STARTTLS
    EMAIL_USER: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM_NAME: str = "GlitchLab"
    EMAIL_TIMEOUT: int = 10

    # Users
    MAX_NOTIFICATIONS: int = 50
    DEFAULT_AVATAR: str = "/images/default-avatar.png"
    DEFAULT_INSTRUCTOR_AVATAR: str = "/images/avatar.jpg"
    DEFAULT_BADGE_IMAGE: str = "/images/badge.png"

    # Reviews
    FEATURED_REVIEWS_LIMIT: int = 12
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Monitoring
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "production"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse comma-separated origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


# Create global settings instance (fails fast when MONGODB_URI / JWT_SECRET are missing)
settings = Settings()
