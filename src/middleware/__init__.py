"""Logging context helpers for the notification service."""

from .correlation import (
    ConnectionIdFilter,
    configure_logging,
    connection_id_context,
    get_connection_id,
    new_connection_id,
)

__all__ = [
    "ConnectionIdFilter",
    "configure_logging",
    "connection_id_context",
    "get_connection_id",
    "new_connection_id",
]
