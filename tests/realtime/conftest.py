"""
Pytest fixtures for real-time notification tests.

Provides:
- A connection manager bound to the test signing secret
- Socket token helpers
- A ``connect`` helper that runs a full handshake over a fake transport
"""

from datetime import timedelta

import pytest

from rbac.jwt import create_socket_token, socket_token_decoder
from rbac.roles import Role
from realtime.connection_manager import ConnectionManager
from realtime.event_publisher import EventPublisher


@pytest.fixture
def manager(session_secret):
    """Isolated connection manager with the default limits."""
    return ConnectionManager(token_decoder=socket_token_decoder(session_secret))


@pytest.fixture
def publisher(manager):
    return EventPublisher(manager)


@pytest.fixture
def make_token(session_secret):
    """Mint socket tokens signed with the test secret."""
    def _make(user_id: int, role: Role = Role.CLIENT, expires_delta: timedelta = None) -> str:
        return create_socket_token(user_id, role, expires_delta=expires_delta, secret=session_secret)
    return _make


@pytest.fixture
def connect(manager, make_transport, make_token):
    """Run a handshake; returns (connection_or_None, transport)."""
    async def _connect(user_id: int, role: Role = Role.CLIENT, target=None):
        target = target or manager
        transport = make_transport()
        connection = await target.connect(transport, make_token(user_id, role))
        return connection, transport
    return _connect
