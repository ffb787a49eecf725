from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Department Portal"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    API_PREFIX: str = "/api/auth"

    # ── Database ────────────────────────────────
    DATABASE_URL: str

    # ── Institution / roles ─────────────────────
    INSTITUTION_DOMAIN: str = "inst.edu"
    # Comma separated list of addresses always promoted to admin
    ADMIN_EMAILS: str = ""

    # ── OTP ─────────────────────────────────────
    OTP_EXPIRY_MINUTES: int = 5
    # Echo the raw code back in API responses (ignored in production)
    RETURN_OTP: bool = False

    RATE_LIMIT_ENABLED: bool = True
    OTP_RATE_LIMIT: int = 10
    OTP_RATE_WINDOW_SECONDS: int = 60

    # ── JWT / Auth ──────────────────────────────
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 360
    ALGORITHM: str = "HS256"

    # ── Sessions ────────────────────────────────
    SESSION_DURATION_DAYS: int = 90
    SESSION_RETENTION_DAYS: int = 30

    # ── Email Configuration ─────────────────────
    MAIL_HOST: str = ""
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_ENCRYPTION: str = "tls"
    MAIL_FROM_ADDRESS: str = "no-reply@localhost"
    MAIL_FROM_NAME: str = "Department Portal"

    EMAIL_RELAY_URL: str = ""
    EMAIL_RELAY_API_KEY: str = ""
    EMAIL_RELAY_TIMEOUT: int = 30

    # ── Background jobs ─────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CLEANUP_INTERVAL_SECONDS: float = 86400.0

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def echo_otp(self) -> bool:
        """Whether OTP-issuing endpoints may include the raw code in the response."""
        return self.RETURN_OTP and not self.is_production

    @property
    def mail_configured(self) -> bool:
        relay = bool(self.EMAIL_RELAY_URL and self.EMAIL_RELAY_API_KEY)
        smtp = bool(self.MAIL_HOST and self.MAIL_USERNAME and self.MAIL_PASSWORD)
        return relay or smtp

    @property
    def admin_emails(self) -> frozenset:
        return frozenset(
            e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()
        )


settings = Settings()
