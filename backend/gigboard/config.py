"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (defaults are development-only)
    - get_settings() is cached (lru_cache) — single instance per process
    - The cache pagination grid (cache_pages x cache_page_sizes) is the only grid the
      invalidation planner enumerates; read paths never cache pages outside it
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://gigboard:gigboard@db:5432/gigboard"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    auto_create_tables: bool = False

    # Cache
    redis_url: str = "redis://redis:6379/0"
    cache_pages: int = 10
    cache_page_sizes: list[int] = [10, 20, 50]

    # OTP
    otp_ttl_seconds: int = 600
    otp_max_attempts: int = 3
    otp_rate_limit_seconds: int = 120
    otp_password_reset_grace_seconds: int = 900
    otp_email_verification_grace_seconds: int = 1800

    # Credentials
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Mail: an empty smtp_host means log-only delivery
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    mail_sender: str = "no-reply@gigboard.local"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
