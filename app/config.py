from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Document store (PostgreSQL)
    DATABASE_URL: str | None = None

    # Redis settings (shared rate-limit state; optional for single-process deployments)
    REDIS_URL: str | None = None

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_FAIL_OPEN: bool = True
    SEND_LINK_IP_LIMIT: int = 30
    SEND_LINK_IP_WINDOW_SECONDS: int = 600  # 10 minutes

    # Proxy / client IP handling
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # CORS (comma separated origins; empty = allow any origin)
    CORS_ALLOW_ORIGINS: str = ""

    # Public URLs
    PUBLIC_BASE_URL: str = ""
    BACKEND_BASE_URL: str = ""

    # Object storage
    S3_BUCKET: str | None = None
    AWS_REGION: str | None = None
    AWS_KMS_KEY_ID: str | None = None

    # Outbound mail (Resend)
    RESEND_API_KEY: str | None = None
    MAIL_FROM: str | None = None
    MAIL_REPLY_TO: str | None = None

    # Admin magic-link access
    ADMIN_ALLOWED_EMAILS: str = ""
    ADMIN_JWT_SECRET: str | None = None
    ADMIN_SESSION_SECRET: str | None = None
    ADMIN_MAGIC_TTL_MIN: int = 15
    ADMIN_SESSION_TTL_HOURS: int = 12
    ADMIN_UI_BASE_URL: str = ""
    ADMIN_MAGIC_RESEND_SECONDS: int = 60
    ADMIN_BRAND: str = "Admin Access"

    # Applicant resume flow
    RESUME_TOKEN_TTL_HOURS: int = 24
    RESUME_COOKIE_MAX_AGE_HOURS: int = 24
    DRAFT_RETENTION_DAYS: int = 180
    CLEANUP_SCHEDULE_HOUR: int = 2  # UTC

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def admin_allowed_emails(self) -> list[str]:
        """Split ADMIN_ALLOWED_EMAILS on commas, semicolons or whitespace."""
        raw = self.ADMIN_ALLOWED_EMAILS.replace(";", ",").replace(" ", ",")
        return [item.strip().lower() for item in raw.split(",") if item.strip()]

    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ALLOW_ORIGINS.split(",") if item.strip()]

    def exchange_base_url(self) -> str:
        """Base for resume exchange links; empty string means a relative link."""
        return (self.BACKEND_BASE_URL or self.PUBLIC_BASE_URL or "").rstrip("/")

    def public_base_url(self) -> str:
        return (self.PUBLIC_BASE_URL or "").rstrip("/")

    def mail_configured(self) -> bool:
        return bool(self.RESEND_API_KEY and self.MAIL_FROM)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 4, "timeout": 15.0})

        return config


settings = Settings()
