"""Connection ID Logging Context.

Tags log records with the id of the WebSocket connection being served.
The connection ID is:
- Generated for each accepted socket
- Bound for the lifetime of the socket handler
- Included in all log messages emitted while serving it

Usage:
    from middleware.correlation import connection_id_context, configure_logging

    configure_logging()

    with connection_id_context() as cid:
        logger.info("handling socket")   # record carries connection_id=cid
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar, Token
from typing import Optional

logger = logging.getLogger(__name__)


# Context variable for connection ID (task-local under asyncio)
_connection_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "connection_id",
    default=None,
)

DEFAULT_LOG_FORMAT = (
    "%(asctime)s [%(connection_id)s] %(levelname)s "
    "%(name)s: %(message)s"
)


def new_connection_id() -> str:
    """Generate a short connection id."""
    return uuid.uuid4().hex[:12]


def get_connection_id() -> Optional[str]:
    """Get the connection ID bound to the current context, or None."""
    return _connection_id_ctx.get()


def set_connection_id(connection_id: Optional[str]) -> Token[Optional[str]]:
    """Set the connection ID for the current context.

    Returns:
        Token that can be used to reset the context.
    """
    return _connection_id_ctx.set(connection_id)


def reset_connection_id(token: Token[Optional[str]]) -> None:
    """Reset the connection ID to its previous value."""
    _connection_id_ctx.reset(token)


class connection_id_context:
    """Context manager binding a connection ID.

    Usage:
        with connection_id_context("abc123"):
            ...

        # Or generate a new one:
        with connection_id_context() as cid:
            ...
    """

    def __init__(self, connection_id: Optional[str] = None):
        self.connection_id = connection_id or new_connection_id()
        self._token: Optional[Token[Optional[str]]] = None

    def __enter__(self) -> str:
        self._token = set_connection_id(self.connection_id)
        return self.connection_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            reset_connection_id(self._token)


class ConnectionIdFilter(logging.Filter):
    """Logging filter that adds connection_id to log records.

    Usage:
        handler = logging.StreamHandler()
        handler.addFilter(ConnectionIdFilter())
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.connection_id = get_connection_id() or "-"
        return True


def configure_logging(
    log_format: Optional[str] = None,
    level: int | str = logging.INFO,
) -> logging.Handler:
    """Configure root logging with connection ID support.

    Args:
        log_format: Custom log format (may include %(connection_id)s).
        level: Logging level.

    Returns:
        The installed handler.
    """
    handler = logging.StreamHandler()
    handler.addFilter(ConnectionIdFilter())
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_LOG_FORMAT))
    handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return handler
