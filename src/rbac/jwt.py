"""
JWT Token Handling

Socket credentials are short-lived HS256 tokens signed with the same
secret the REST layer signs its session tokens with (SESSION_SECRET).
A socket token carries only the user id and role.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Dict, Any
import jwt

from config.settings import get_settings
from .roles import Role


# =============================================================================
# CONFIGURATION
# =============================================================================

JWT_ALGORITHM = "HS256"
SOCKET_TOKEN_TYPE = "ws"


class MissingSigningSecretError(RuntimeError):
    """Raised when SESSION_SECRET is not configured."""
    pass


def get_signing_secret() -> str:
    """
    Get the shared signing secret.

    Raises:
        MissingSigningSecretError: If SESSION_SECRET is not set
    """
    secret = get_settings().session_secret
    if not secret:
        raise MissingSigningSecretError("SESSION_SECRET is not configured")
    return secret


# =============================================================================
# TOKEN CREATION
# =============================================================================

def create_socket_token(
    user_id: int,
    role: Role,
    expires_delta: Optional[timedelta] = None,
    secret: Optional[str] = None,
) -> str:
    """
    Create a short-lived credential for opening the notification socket.

    Args:
        user_id: User's numeric identifier
        role: User's role
        expires_delta: Custom expiration time (defaults to WS_SOCKET_TOKEN_TTL_SECONDS)
        secret: Signing secret override (defaults to SESSION_SECRET)

    Returns:
        JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(seconds=get_settings().realtime.socket_token_ttl_seconds)

    issued_at = datetime.now(timezone.utc)
    payload = {
        "id": int(user_id),
        "role": Role(role).value,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "type": SOCKET_TOKEN_TYPE,
    }

    return jwt.encode(payload, secret or get_signing_secret(), algorithm=JWT_ALGORITHM)


# =============================================================================
# TOKEN DECODING
# =============================================================================

def decode_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode and validate a JWT token (signature and expiry).

    Raises:
        jwt.InvalidTokenError: If token is invalid or expired
        MissingSigningSecretError: If no secret is configured
    """
    return jwt.decode(token, secret or get_signing_secret(), algorithms=[JWT_ALGORITHM])


def decode_socket_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode a socket credential into ``{"id": int, "role": Role}``.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, not a socket
            token, or its payload is malformed
        MissingSigningSecretError: If no secret is configured
    """
    payload = decode_token(token, secret)
    if payload.get("type") != SOCKET_TOKEN_TYPE:
        raise jwt.InvalidTokenError("not a socket token")
    return _identity_from_payload(payload)


def decode_session_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode a REST session token into ``{"id": int, "role": Role}``.

    Session tokens are minted by the REST layer; only ``id`` and ``role``
    are required here.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or malformed
        MissingSigningSecretError: If no secret is configured
    """
    payload = decode_token(token, secret)
    if payload.get("type") == SOCKET_TOKEN_TYPE:
        raise jwt.InvalidTokenError("socket tokens cannot be exchanged")
    return _identity_from_payload(payload)


def socket_token_decoder(secret: Optional[str]) -> Callable[[str], Dict[str, Any]]:
    """
    Bind ``decode_socket_token`` to an explicit secret.

    A missing secret raises MissingSigningSecretError at decode time, so
    the handshake can report a server misconfiguration.
    """
    def decode(token: str) -> Dict[str, Any]:
        if not secret:
            raise MissingSigningSecretError("SESSION_SECRET is not configured")
        return decode_socket_token(token, secret)

    return decode


def _identity_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    user_id = payload.get("id")
    # bool is an int subclass
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise jwt.InvalidTokenError("malformed id claim")
    try:
        role = Role.parse(payload.get("role", ""))
    except ValueError as e:
        raise jwt.InvalidTokenError("malformed role claim") from e
    return {"id": user_id, "role": role}
