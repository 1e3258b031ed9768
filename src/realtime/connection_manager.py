"""
WebSocket Connection Manager

Owns the registry of live notification sockets: user id -> set of
connections. Handles authentication at handshake, per-user connection
limits, teardown, liveness sweeps and notification fan-out.

All registry mutation is synchronous; nothing awaits between a check and
the mutation it guards, so no lock is needed on a single event loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import jwt

from config.settings import RealtimeSettings
from middleware.correlation import new_connection_id
from rbac.jwt import MissingSigningSecretError, decode_socket_token
from rbac.roles import Role

from .events import Notification, create_connected_notification
from .exceptions import (
    AuthenticationRequired,
    CloseCode,
    ConnectionLimitExceeded,
    HandshakeRejected,
    InvalidCredential,
    ServerMisconfigured,
)
from .heartbeat import Liveness
from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS_PER_USER = 5
DEFAULT_MAX_INBOUND_MESSAGE_BYTES = 1024

TokenDecoder = Callable[[str], Dict[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class ConnectionInfo:
    """Information about one authenticated socket."""
    transport: Transport
    user_id: int
    role: Role
    connection_id: str = field(default_factory=new_connection_id)
    connected_at: datetime = field(default_factory=_utcnow)
    liveness: Liveness = field(default_factory=Liveness)

    # Stats
    messages_sent: int = 0
    messages_received: int = 0

    @property
    def is_alive(self) -> bool:
        return self.liveness.is_alive

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "connection_id": self.connection_id,
            "user_id": self.user_id,
            "role": self.role.value,
            "liveness": self.liveness.state.value,
            "connected_at": self.connected_at.isoformat(),
            "messages_sent": self.messages_sent,
            "messages_received": self.messages_received,
        }


class ConnectionManager:
    """
    Manages notification sockets.

    Features:
    - Token authentication at handshake
    - Multiple connections per user, capped per user id
    - Liveness sweeps (see ``realtime.heartbeat``)
    - Fan-out to a user, the admins, the staff group, or everyone
    - Inbound frame size guard
    """

    def __init__(
        self,
        max_connections_per_user: int = DEFAULT_MAX_CONNECTIONS_PER_USER,
        max_inbound_message_bytes: int = DEFAULT_MAX_INBOUND_MESSAGE_BYTES,
        token_decoder: TokenDecoder = decode_socket_token,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.max_connections_per_user = max_connections_per_user
        self.max_inbound_message_bytes = max_inbound_message_bytes
        self._token_decoder = token_decoder
        self._clock = clock

        # Active connections by user_id; a key exists only while its set is non-empty
        self._clients: Dict[int, Set[ConnectionInfo]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: RealtimeSettings,
        token_decoder: TokenDecoder = decode_socket_token,
    ) -> "ConnectionManager":
        return cls(
            max_connections_per_user=settings.max_connections_per_user,
            max_inbound_message_bytes=settings.max_inbound_message_bytes,
            token_decoder=token_decoder,
        )

    # =========================================================================
    # HANDSHAKE / TEARDOWN
    # =========================================================================

    def authenticate(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Verify a socket credential.

        Returns:
            ``{"id": int, "role": Role}``

        Raises:
            AuthenticationRequired: token absent
            ServerMisconfigured: no signing secret configured
            InvalidCredential: bad signature, expired, or malformed payload
        """
        if not token:
            raise AuthenticationRequired()
        try:
            return self._token_decoder(token)
        except MissingSigningSecretError:
            raise ServerMisconfigured() from None
        except jwt.InvalidTokenError:
            raise InvalidCredential() from None

    def register(
        self,
        transport: Transport,
        token: Optional[str],
        connection_id: Optional[str] = None,
    ) -> ConnectionInfo:
        """
        Authenticate and admit a connection into the registry.

        Raises:
            HandshakeRejected: on any rejection; nothing is registered
        """
        identity = self.authenticate(token)
        user_id = identity["id"]

        user_connections = self._clients.get(user_id)
        if user_connections and len(user_connections) >= self.max_connections_per_user:
            raise ConnectionLimitExceeded()

        connection = ConnectionInfo(
            transport=transport,
            user_id=user_id,
            role=identity["role"],
            connection_id=connection_id or new_connection_id(),
            connected_at=self._clock(),
        )
        self._clients.setdefault(user_id, set()).add(connection)
        return connection

    async def connect(
        self,
        transport: Transport,
        token: Optional[str],
        connection_id: Optional[str] = None,
    ) -> Optional[ConnectionInfo]:
        """
        Run the handshake for an accepted transport.

        On rejection the transport is closed with the rejection's close code
        and None is returned. On success the connection is registered and
        receives a ``connected`` notification.
        """
        try:
            connection = self.register(transport, token, connection_id)
        except HandshakeRejected as e:
            logger.warning(f"[WS] Handshake rejected ({int(e.close_code)}): {e.reason}")
            await transport.close(e.close_code, e.reason)
            return None

        logger.info(
            f"[WS] Connected: user={connection.user_id} role={connection.role.value} "
            f"({len(self._clients[connection.user_id])} open)"
        )
        await self._send_to_connection(connection, create_connected_notification().to_json())
        return connection

    def disconnect(self, connection: ConnectionInfo) -> bool:
        """
        Remove a connection from the registry.

        Idempotent. Returns True if the connection was registered.
        """
        user_connections = self._clients.get(connection.user_id)
        if not user_connections or connection not in user_connections:
            return False

        user_connections.discard(connection)
        if not user_connections:
            del self._clients[connection.user_id]

        logger.info(f"[WS] Disconnected: user={connection.user_id}")
        return True

    async def close_connection(
        self,
        connection: ConnectionInfo,
        code: int,
        reason: str = "",
    ) -> None:
        """Close a connection from the server side and tear it down."""
        connection.liveness.terminate()
        self.disconnect(connection)
        await connection.transport.close(code, reason)

    async def terminate(self, connection: ConnectionInfo) -> None:
        """Silently drop a connection (no payload to the peer) and tear it down."""
        connection.liveness.terminate()
        self.disconnect(connection)
        await connection.transport.terminate()

    # =========================================================================
    # INBOUND
    # =========================================================================

    async def on_frame(self, connection: ConnectionInfo, size: int) -> bool:
        """
        Account for an inbound frame of ``size`` bytes.

        The channel is push-only: frames are not interpreted, they only
        prove the peer is alive. Oversized frames close the connection.

        Returns:
            False if the connection was closed.
        """
        if size > self.max_inbound_message_bytes:
            logger.warning(
                f"[WS] Oversized frame from user={connection.user_id}: "
                f"{size} > {self.max_inbound_message_bytes} bytes, closing"
            )
            await self.close_connection(connection, CloseCode.MESSAGE_TOO_LARGE, "Message too large")
            return False

        connection.messages_received += 1
        connection.liveness.on_pong()
        return True

    def on_pong(self, connection: ConnectionInfo) -> None:
        connection.liveness.on_pong()

    # =========================================================================
    # LIVENESS
    # =========================================================================

    async def sweep(self) -> int:
        """
        Run one heartbeat tick over every registered connection.

        Connections whose previous probe went unanswered are removed from
        the registry first; their transport closes and the probes for the
        rest are then issued concurrently, so one slow close never delays
        the others.

        Returns:
            Number of connections reclaimed.
        """
        dead: List[ConnectionInfo] = []
        probed: List[ConnectionInfo] = []
        for connection in self._snapshot(self._all_connections()):
            if not self._is_registered(connection):
                continue
            if connection.liveness.on_sweep():
                probed.append(connection)
            else:
                connection.liveness.terminate()
                self.disconnect(connection)
                dead.append(connection)
                logger.info(f"[WS] Heartbeat timeout: user={connection.user_id}")

        results = await asyncio.gather(
            *(connection.transport.terminate() for connection in dead),
            *(connection.transport.ping() for connection in probed),
            return_exceptions=True,
        )
        for connection, result in zip(dead + probed, results):
            if isinstance(result, Exception):
                # Teardown already happened or the transport's own disconnect handles it.
                logger.debug(f"[WS] Transport error for user={connection.user_id}: {result}")

        if dead:
            logger.info(f"[WS] Reclaimed {len(dead)} dead connection(s)")
        return len(dead)

    # =========================================================================
    # FAN-OUT
    # =========================================================================

    async def send_to_user(self, user_id: int, notification: Notification) -> int:
        """Send to every open connection of one user. No-op if none."""
        targets = self._snapshot(self._clients.get(user_id, ()))
        delivered = await self._deliver(targets, notification)
        if delivered:
            logger.debug(f"[WS] Sent to user {user_id}: {notification.type.value}")
        return delivered

    async def send_to_admins(self, notification: Notification) -> int:
        """Send to connections whose role is admin."""
        targets = self._select(lambda c: c.role.is_admin)
        return await self._deliver(targets, notification)

    async def send_to_preparers(self, notification: Notification) -> int:
        """Send to the staff group (admins and preparers)."""
        targets = self._select(lambda c: c.role.is_staff)
        return await self._deliver(targets, notification)

    async def broadcast(self, notification: Notification) -> int:
        """Send to every open connection."""
        targets = self._snapshot(self._all_connections())
        delivered = await self._deliver(targets, notification)
        logger.debug(f"[WS] Broadcast to all: {notification.type.value} ({delivered} clients)")
        return delivered

    async def _deliver(self, targets: List[ConnectionInfo], notification: Notification) -> int:
        if not targets:
            return 0
        message = notification.to_json()
        delivered = 0
        for connection in targets:
            if await self._send_to_connection(connection, message):
                delivered += 1
        return delivered

    async def _send_to_connection(self, connection: ConnectionInfo, message: str) -> bool:
        """Send a serialized payload to one connection."""
        if not connection.transport.is_open:
            return False
        try:
            await connection.transport.send_text(message)
        except Exception as e:
            logger.warning(f"[WS] Failed to send to user={connection.user_id}: {e}")
            # Don't remove here - let the disconnect handler clean up
            return False
        connection.messages_sent += 1
        return True

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def connected_users_count(self) -> int:
        """Distinct users with at least one live connection."""
        return len(self._clients)

    def connection_count(self) -> int:
        """Total live connections."""
        return sum(len(conns) for conns in self._clients.values())

    def is_user_connected(self, user_id: int) -> bool:
        return user_id in self._clients

    def get_connections(self, user_id: int) -> List[ConnectionInfo]:
        return list(self._clients.get(user_id, ()))

    def get_stats(self) -> Dict[str, Any]:
        """Get connection statistics."""
        by_role = {role.value: 0 for role in Role}
        for connection in self._all_connections():
            by_role[connection.role.value] += 1

        return {
            "connected_users": self.connected_users_count(),
            "total_connections": self.connection_count(),
            "connections_by_role": by_role,
        }

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _all_connections(self) -> Iterable[ConnectionInfo]:
        for conns in self._clients.values():
            yield from conns

    def _select(self, predicate: Callable[[ConnectionInfo], bool]) -> List[ConnectionInfo]:
        return [c for c in self._all_connections() if predicate(c)]

    @staticmethod
    def _snapshot(connections: Iterable[ConnectionInfo]) -> List[ConnectionInfo]:
        return list(connections)

    def _is_registered(self, connection: ConnectionInfo) -> bool:
        return connection in self._clients.get(connection.user_id, ())
