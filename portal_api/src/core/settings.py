from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the portal API.

    This is separate from src.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Employee Portal API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for the roofing operations employee portal. "
            "Serves commission, request and warranty data and the pending-review worklist."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed the base tenant, roles and sample review items after migrations.",
    )
    DEFAULT_TENANT_SLUG: str = Field(default="summit-roofing")
    SEED_USER_PASSWORD: str = Field(
        default="portal-dev-password", description="Password given to seeded demo accounts"
    )

    # Tokens
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC secret used to sign JWTs")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Pending review worklist
    REVIEWER_ROLES: List[str] = Field(
        default_factory=lambda: ["admin", "manager"],
        description="Role names whose holders review items submitted by others.",
    )
    PENDING_REVIEW_SOURCE_LIMIT: int = Field(
        default=20, ge=1, description="Max rows pulled from each worklist source per query."
    )
    PENDING_REVIEW_POLL_SECONDS: float = Field(
        default=60.0, gt=0, description="Interval between live worklist refreshes."
    )
    BUSINESS_TIMEZONE: str = Field(
        default="America/Chicago",
        description="IANA timezone that defines 'today' for SLA due dates.",
    )

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]

    @field_validator("REVIEWER_ROLES", mode="before")
    @classmethod
    def _parse_reviewer_roles(cls, v):
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """
    Return a new AppSettings instance populated from environment variables.

    Note:
      Construction is cheap; callers that need a stable view within a request
      should hold on to the returned instance.
    """
    return AppSettings()
