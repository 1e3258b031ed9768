"""
Real-Time Notifications Module

WebSocket-based notification fan-out for the tax office.

Features:
- Authenticated sockets, several per user (capped per user id)
- Heartbeat sweeps reclaiming dead sockets
- Fan-out to one user, the admins, the staff group, or everyone
- Event publisher for REST handlers

Usage:
    publisher = request.app.state.event_publisher

    await publisher.notify_new_message(
        from_user_id=10,
        to_user_id=20,
        message_preview="Hi",
    )

WebSocket Connection:
    Connect to: ws://host/ws?token=<socket_token>
    (obtain the token from POST /api/ws-token)

    Events (server -> client):
    - {"type": "case_update", "title": "...", "message": "...", "data": {...}}
    - {"type": "ping"}  (answer with any small frame, e.g. {"type": "pong"})
"""

from .events import (
    NotificationType,
    Notification,
    create_connected_notification,
    create_new_message_notification,
    create_case_status_client_notification,
    create_case_status_staff_notification,
    create_document_upload_notification,
    create_appointment_client_notification,
    create_appointment_staff_notification,
    create_status_update_notification,
)
from .exceptions import (
    CloseCode,
    HandshakeRejected,
    AuthenticationRequired,
    InvalidCredential,
    ConnectionLimitExceeded,
    ServerMisconfigured,
)
from .heartbeat import (
    HeartbeatMonitor,
    Liveness,
    LivenessState,
)
from .connection_manager import (
    ConnectionManager,
    ConnectionInfo,
)
from .event_publisher import EventPublisher
from .transport import Transport, WebSocketTransport
from .websocket_routes import websocket_endpoint, websocket_router

__all__ = [
    # Events
    "NotificationType",
    "Notification",
    "create_connected_notification",
    "create_new_message_notification",
    "create_case_status_client_notification",
    "create_case_status_staff_notification",
    "create_document_upload_notification",
    "create_appointment_client_notification",
    "create_appointment_staff_notification",
    "create_status_update_notification",
    # Errors
    "CloseCode",
    "HandshakeRejected",
    "AuthenticationRequired",
    "InvalidCredential",
    "ConnectionLimitExceeded",
    "ServerMisconfigured",
    # Liveness
    "HeartbeatMonitor",
    "Liveness",
    "LivenessState",
    # Connection manager
    "ConnectionManager",
    "ConnectionInfo",
    # Event publisher
    "EventPublisher",
    # Transport
    "Transport",
    "WebSocketTransport",
    # Router
    "websocket_endpoint",
    "websocket_router",
]
