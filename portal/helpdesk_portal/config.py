"""
Application configuration loaded from environment variables.

Uses pydantic-settings for typed, validated configuration with .env file support.
Supports both the plain env var name (API_BASE_URL) and the legacy
hierarchical name used by older deployments (API_SETTINGS_BASE_URL) via
AliasChoices.
"""

import secrets
from functools import lru_cache
from pydantic import AliasChoices
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings — loaded from environment variables or .env file."""

    # ── App ──────────────────────────────────────────
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # ── Ticketing backend API ────────────────────────
    # Accepts API_BASE_URL or API_SETTINGS_BASE_URL
    api_base_url: str = Field(
        default="https://localhost:7181",
        validation_alias=AliasChoices("api_base_url", "api_settings_base_url"),
    )
    # Accepts API_TIMEOUT_SECONDS or API_SETTINGS_TIMEOUT
    api_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("api_timeout_seconds", "api_settings_timeout"),
    )

    # ── Session cookie ───────────────────────────────
    auth_cookie_name: str = "AuthToken"
    session_hours: int = 12
    # Browsers drop Secure cookies over plain http, so local dev may turn this off.
    cookie_secure: bool = True
    login_path: str = "/auth/login"

    # ── Signed session (profile and roles captured at login) ──
    # Generated keys sign everyone out on restart; set one per deployment.
    session_secret_key: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    session_cookie_name: str = "PortalSession"

    # ── Dashboard ────────────────────────────────────
    default_period: str = "30days"
    urgent_ticket_limit: int = 5

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def api_base(self) -> str:
        """Backend base URL with a single trailing slash, ready for relative paths."""
        return self.api_base_url.rstrip("/") + "/"

    @property
    def session_max_age(self) -> int:
        """Session cookie lifetime in seconds."""
        return self.session_hours * 3600


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
