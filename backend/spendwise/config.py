from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    # Identity provider (Supabase Auth REST API)
    SUPABASE_URL: str  # REQUIRED
    SUPABASE_KEY: str  # REQUIRED - sent as the apikey header
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    # Database configuration
    DATABASE_URL: str  # PostgreSQL URL (required)

    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    OTP_RATE_LIMIT: str = "5/15minutes"

    # Background job / Redis configuration
    REDIS_URL: str = "redis://redis:6379/0"
    RECURRING_QUEUE_NAME: str = "recurring_generation"
    RECURRING_JOB_TIMEOUT: int = 600  # 10 minutes
    RECURRING_MAX_BACKFILL: int = 366

    # One-time passcodes and mail delivery
    OTP_EXPIRE_MINUTES: int = 5
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: Optional[str] = None

    @field_validator("SUPABASE_URL")
    @classmethod
    def _validate_supabase_url(cls, value):
        value = (value or "").strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("RECURRING_MAX_BACKFILL", "OTP_EXPIRE_MINUTES")
    @classmethod
    def _validate_positive(cls, value):
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "development"

    @property
    def mail_sender(self) -> Optional[str]:
        """Address used in the From header of outgoing mail."""
        return self.MAIL_FROM or self.SMTP_USER

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra environment variables not defined in the model


settings = Settings()
