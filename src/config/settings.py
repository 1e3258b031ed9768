"""Application settings using Pydantic Settings.

Centralized configuration for the notification service.

SECURITY: Production requires the following environment variables:
- SESSION_SECRET: Shared signing key for session and socket tokens (min 32 chars)

Generate secrets with: python -c "import secrets; print(secrets.token_hex(32))"
"""

import sys
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RealtimeSettings(BaseSettings):
    """WebSocket notification service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WS_",
        extra="ignore",
    )

    path: str = Field(default="/ws", description="WebSocket endpoint path")

    # Connection limits
    max_connections_per_user: int = Field(
        default=5, ge=1, description="Max simultaneous sockets per user id"
    )
    max_inbound_message_bytes: int = Field(
        default=1024, ge=1, description="Inbound frames above this size close the socket"
    )

    # Liveness
    heartbeat_interval_seconds: float = Field(
        default=30.0, gt=0, description="Seconds between liveness sweeps"
    )

    # Credentials
    socket_token_ttl_seconds: int = Field(
        default=3600, ge=1, description="Lifetime of a socket credential (1 hour)"
    )

    # Payload shaping
    message_preview_length: int = Field(
        default=100, ge=1, description="Direct message previews are truncated to this length"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Application info
    name: str = Field(default="Tax Office Notifications", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    # Security
    # Shared with the REST layer: the same key signs session and socket tokens.
    session_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SESSION_SECRET", "APP_SESSION_SECRET"),
        description="Token signing key - MUST be set in production",
    )

    # CORS
    cors_origins: list = Field(
        default=["http://localhost:3000", "http://localhost:5000"],
        description="Allowed CORS origins"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    # Nested settings (loaded separately)
    @property
    def realtime(self) -> RealtimeSettings:
        return RealtimeSettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")

    def validate_production_security(self) -> List[str]:
        """
        Validate all security requirements for production.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.is_production:
            return errors

        if not self.session_secret:
            errors.append(
                "SESSION_SECRET: Required in production. "
                "Generate with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        elif len(self.session_secret) < 32:
            errors.append("SESSION_SECRET: Must be at least 32 characters")

        return errors


# =============================================================================
# STARTUP VALIDATION
# =============================================================================

class StartupSecurityError(Exception):
    """Raised when security validation fails at startup."""
    pass


def validate_startup_security(settings: Settings, exit_on_failure: bool = True) -> bool:
    """
    Validate security settings at application startup.

    In production, fails fast if critical security settings are missing.
    In development a missing secret only logs a warning; sockets are then
    rejected with a server-misconfiguration close code.

    Args:
        settings: Application settings instance
        exit_on_failure: If True, exit the process on failure (default)

    Returns:
        True if validation passes

    Raises:
        StartupSecurityError: If validation fails and exit_on_failure is False
    """
    if not settings.session_secret and not settings.is_production:
        logger.warning("[WS] SESSION_SECRET not set, WebSocket auth will fail")

    errors = settings.validate_production_security()

    if not errors:
        if settings.is_production:
            logger.info("Production security validation PASSED")
        return True

    error_msg = (
        "\n" + "=" * 60 + "\n"
        "CRITICAL SECURITY CONFIGURATION ERROR\n"
        "=" * 60 + "\n\n"
        "The following security settings are missing or invalid:\n\n"
    )
    for i, err in enumerate(errors, 1):
        error_msg += f"  {i}. {err}\n\n"

    error_msg += (
        "=" * 60 + "\n"
        "APPLICATION CANNOT START IN PRODUCTION WITHOUT THESE SETTINGS\n"
        "=" * 60 + "\n"
    )

    logger.critical(error_msg)

    if exit_on_failure:
        print(error_msg, file=sys.stderr)
        sys.exit(1)
    else:
        raise StartupSecurityError(error_msg)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()
