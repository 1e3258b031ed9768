"""
Notification Socket Errors

Close codes and handshake rejections. Every rejection kind has its own
close code so clients can tell "re-authenticate" (4001/4003) from
"retry later" (4008) from "give up" (4011).
"""

from enum import IntEnum
from typing import Optional


class CloseCode(IntEnum):
    """WebSocket close codes used by the notification service."""
    MESSAGE_TOO_LARGE = 1009     # RFC 6455 "message too big"
    HEARTBEAT_TIMEOUT = 4000
    AUTH_REQUIRED = 4001
    INVALID_TOKEN = 4003
    TOO_MANY_CONNECTIONS = 4008
    SERVER_MISCONFIGURED = 4011


class HandshakeRejected(Exception):
    """Base class for handshake rejections."""

    close_code: CloseCode = CloseCode.INVALID_TOKEN
    reason: str = "Handshake rejected"

    def __init__(self, reason: Optional[str] = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class AuthenticationRequired(HandshakeRejected):
    close_code = CloseCode.AUTH_REQUIRED
    reason = "Authentication required"


class InvalidCredential(HandshakeRejected):
    """Signature, expiry or payload check failed. The reason never says which."""
    close_code = CloseCode.INVALID_TOKEN
    reason = "Invalid token"


class ConnectionLimitExceeded(HandshakeRejected):
    close_code = CloseCode.TOO_MANY_CONNECTIONS
    reason = "Too many connections"


class ServerMisconfigured(HandshakeRejected):
    close_code = CloseCode.SERVER_MISCONFIGURED
    reason = "Server configuration error"
