"""Configuration module for the notification service."""

from .settings import (
    RealtimeSettings,
    Settings,
    StartupSecurityError,
    get_settings,
    validate_startup_security,
)

__all__ = [
    "RealtimeSettings",
    "Settings",
    "StartupSecurityError",
    "get_settings",
    "validate_startup_security",
]
