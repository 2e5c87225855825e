"""
Central configuration using Pydantic BaseSettings.

Validates all env vars at startup (fail-fast). Command-line flags take
precedence over anything configured here.

Usage:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.reconcile.strict)

Lazy initialization: get_settings() creates the singleton on first call.
Tests can reset via get_settings.cache_clear().
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from core.strictness import StrictnessLevel

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# Nested Settings Groups
# =============================================================================


class ReconcileSettings(BaseSettings):
    """Reconciliation behaviour."""

    model_config = {"env_prefix": "", "extra": "ignore"}

    # off | warning | error
    strict: StrictnessLevel = StrictnessLevel.WARNING

    # Parallel resources per catalog run (1 = sequential)
    reconcile_max_workers: int = 1

    # Report changes without applying them
    noop: bool = False

    @field_validator("strict", mode="before")
    @classmethod
    def _parse_strict(cls, value):
        return StrictnessLevel.parse(value)

    @field_validator("reconcile_max_workers")
    @classmethod
    def _positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("RECONCILE_MAX_WORKERS must be at least 1")
        return value


class DeviceSettings(BaseSettings):
    """Device targeting configuration."""

    model_config = {"env_prefix": "", "extra": "ignore"}

    # device.conf used by `device --target`
    deviceconfig: str = "/etc/devicectl/device.conf"

    # Device used by `resource` when no --target is given
    default_transport: str = "test_device"
    default_url: str = "file:///etc/credentials.txt"


# =============================================================================
# Root Settings
# =============================================================================


class AppSettings(BaseSettings):
    """Root application settings composing all sub-settings."""

    model_config = {"env_prefix": "", "extra": "ignore", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Logging
    log_level: str = "WARNING"

    # Nested groups (initialized separately to support env_prefix)
    reconcile: ReconcileSettings = None  # type: ignore[assignment]
    devices: DeviceSettings = None  # type: ignore[assignment]

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return value

    @model_validator(mode="before")
    @classmethod
    def _init_nested(cls, values):
        """Initialize nested settings from environment."""
        if values.get("reconcile") is None:
            values["reconcile"] = ReconcileSettings()
        if values.get("devices") is None:
            values["devices"] = DeviceSettings()
        return values


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """
    Get the application settings singleton.

    Lazy-initialized on first call. Validates all env vars (fail-fast).
    Tests can reset via: get_settings.cache_clear()
    """
    return AppSettings()
