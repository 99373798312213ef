"""Centralized application configuration.

Single source of truth for editor, persistence and API settings.
Reads from environment variables with sensible defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from services.sheet_engine.history import DEFAULT_MAX_SIZE


DATA_DIR = Path("data")


@dataclass
class RateLimitSettings:
    """Request budgets per client."""
    requests_per_minute: int = 120
    requests_per_hour: int = 2000
    heavy_requests_per_minute: int = 30  # Pivot and chart endpoints
    heavy_requests_per_hour: int = 500
    burst_limit: int = 20
    enabled: bool = True


@dataclass
class AppSettings:
    """Application settings loaded from environment.

    Usage:
        settings = get_settings()
        print(settings.history_max_size)  # 50
    """
    # Undo history bound per session
    history_max_size: int = DEFAULT_MAX_SIZE

    # Persistence
    database_url: str = f"sqlite:///{DATA_DIR / 'app.db'}"

    # Logging
    log_level: str = "INFO"

    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)


def _load_settings_from_env() -> AppSettings:
    """Load settings from environment variables."""
    settings = AppSettings()

    if os.getenv("HISTORY_MAX_SIZE"):
        settings.history_max_size = int(os.getenv("HISTORY_MAX_SIZE"))
    if os.getenv("DATABASE_URL"):
        settings.database_url = os.getenv("DATABASE_URL")
    settings.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    # Rate limiting (can be disabled in dev with DISABLE_RATE_LIMIT=1)
    settings.rate_limit.enabled = os.getenv("DISABLE_RATE_LIMIT", "").lower() not in ("1", "true")
    if os.getenv("RATE_LIMIT_PER_MINUTE"):
        settings.rate_limit.requests_per_minute = int(os.getenv("RATE_LIMIT_PER_MINUTE"))
    if os.getenv("RATE_LIMIT_HEAVY_PER_MINUTE"):
        settings.rate_limit.heavy_requests_per_minute = int(os.getenv("RATE_LIMIT_HEAVY_PER_MINUTE"))

    return settings


# Singleton instance
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get the settings singleton.

    Settings are loaded once from environment on first access.
    """
    global _settings
    if _settings is None:
        _settings = _load_settings_from_env()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload settings from environment.

    Useful for testing or after env changes.
    """
    global _settings
    _settings = _load_settings_from_env()
    return _settings
