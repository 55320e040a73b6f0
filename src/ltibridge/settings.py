"""
Central configuration for the LTI bridge.

All settings are read from environment variables with the ``LTIB_`` prefix
(e.g. ``LTIB_ENV=prod``, ``LTIB_REDIS_URL=...``).  Pydantic validates and
casts values on startup.

Usage::

    from ltibridge.settings import get_settings
    settings = get_settings()
    print(settings.env, settings.tools_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SESSION_SECRET = "dev-session-secret"


class Settings(BaseSettings):
    """Application settings loaded from ``LTIB_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LTIB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────────
    env: Literal["local", "dev", "prod"] = "local"

    # ── Redis ────────────────────────────────────────────────────────
    # Launch contexts live here, keyed by browser session.
    redis_url: str = "redis://localhost:6379/0"

    # ── Session ──────────────────────────────────────────────────────
    session_secret: str = DEFAULT_SESSION_SECRET
    session_cookie: str = "JSESSIONID"
    session_max_age: int = 4 * 60 * 60  # also the launch context TTL

    # ── LTI ──────────────────────────────────────────────────────────
    # Path under which all the LTI tools are available.
    tools_url: str = "/ltitools"
    # Consumer key -> secret map.  Values starting with "{" are parsed as
    # JSON directly; otherwise they are read as a file path.
    consumers: str = "configs/lti/consumers.json"

    # ── CSP ──────────────────────────────────────────────────────────
    csp_frame_ancestors: str = "*"

    # ── Debug ────────────────────────────────────────────────────────
    # Content-item return forms are shown instead of auto-submitted.
    debug: bool = False
    log_level: str = "INFO"

    @property
    def https_only(self) -> bool:
        return self.env != "local"

    # ── Startup validation ───────────────────────────────────────────

    @model_validator(mode="after")
    def _validate_config(self) -> Settings:
        """
        Fail fast if required settings are missing or misconfigured.

        All errors are collected before raising so a single startup failure
        reveals every problem at once.
        """
        errors: list[str] = []

        if not self.tools_url.startswith("/"):
            errors.append(f"LTIB_TOOLS_URL must be an absolute path (got {self.tools_url!r})")

        if self.session_max_age <= 0:
            errors.append("LTIB_SESSION_MAX_AGE must be positive")

        # ── Any deployed environment (dev or prod — not local) ────────
        if self.env != "local":
            if self.session_secret == DEFAULT_SESSION_SECRET:
                errors.append(
                    "LTIB_SESSION_SECRET must be set in deployed environments "
                    f"(env={self.env!r})"
                )

            if "localhost" in self.redis_url or "127.0.0.1" in self.redis_url:
                errors.append(
                    "LTIB_REDIS_URL must not point to localhost "
                    f"(env={self.env!r})"
                )

        # ── Production only ───────────────────────────────────────────
        if self.env == "prod":
            if self.csp_frame_ancestors.strip() == "*":
                errors.append("LTIB_CSP_FRAME_ANCESTORS must not be '*' in prod")

            if self.debug:
                errors.append("LTIB_DEBUG must be false in prod")

        if errors:
            raise ValueError(
                f"[LTIB env={self.env!r}] Configuration errors — fix before deploying:\n  - "
                + "\n  - ".join(errors)
            )

        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (for testing)."""
    get_settings.cache_clear()
