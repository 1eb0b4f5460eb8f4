"""Centralized configuration loading.

Loads environment variables once and provides a typed Settings object
for the rest of the codebase. Call get_settings() from entrypoints and
tests rather than reading os.environ directly.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv


# Load .env once at import time
load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    # Remote admissions API
    api_domain: str = field(default_factory=lambda: os.getenv("PORTAL_API_DOMAIN", ""))
    access_token: Optional[str] = field(
        default_factory=lambda: os.getenv("PORTAL_ACCESS_TOKEN")
    )
    api_timeout: int = field(default_factory=lambda: _env_int("PORTAL_API_TIMEOUT", 30))

    # Local persistence for UI state
    database_url: str = field(
        default_factory=lambda: os.getenv(
            "DATABASE_URL",
            "sqlite:///" + os.path.join(PROJECT_ROOT, "data", "portal.db"),
        )
    )
    state_path: str = field(
        default_factory=lambda: os.getenv(
            "PORTAL_STATE_PATH",
            os.path.join(PROJECT_ROOT, "data", "ui_state.json"),
        )
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("PORTAL_LOG_LEVEL", "INFO"))

    @property
    def api_base_url(self) -> str:
        """Base URL for every gateway endpoint."""
        return self.api_domain.rstrip("/") + "/api/v1"


def get_settings() -> Settings:
    """Return a new Settings instance (cheap dataclass construction)."""
    return Settings()
