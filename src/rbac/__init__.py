"""
Roles and token handling for the notification service.

Roles:
    admin     - staff
    preparer  - staff
    client    - taxpayer

Usage:
    from rbac import Role, create_socket_token

    token = create_socket_token(user_id=10, role=Role.CLIENT)
"""

from .roles import STAFF_ROLES, Role, get_staff_roles
from .jwt import (
    MissingSigningSecretError,
    create_socket_token,
    decode_session_token,
    decode_socket_token,
    socket_token_decoder,
)

__all__ = [
    "Role",
    "STAFF_ROLES",
    "get_staff_roles",
    "MissingSigningSecretError",
    "create_socket_token",
    "decode_session_token",
    "decode_socket_token",
    "socket_token_decoder",
]
