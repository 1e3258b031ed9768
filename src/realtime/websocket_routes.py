"""
WebSocket Routes

FastAPI endpoints for the notification socket, socket credential
issuance and connection diagnostics.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect, status
from starlette.requests import HTTPConnection

from config.settings import RealtimeSettings, Settings
from middleware.correlation import connection_id_context
from rbac.jwt import MissingSigningSecretError, create_socket_token, decode_session_token

from .connection_manager import ConnectionManager
from .transport import WebSocketTransport, frame_size

logger = logging.getLogger(__name__)

websocket_router = APIRouter(tags=["WebSocket"])


def get_connection_manager(connection: HTTPConnection) -> ConnectionManager:
    return connection.app.state.connection_manager


def get_app_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_realtime_settings(connection: HTTPConnection) -> RealtimeSettings:
    return connection.app.state.realtime_settings


def _session_token(request: Request) -> Optional[str]:
    """Session token from a bearer header, falling back to the ``token`` cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get("token")


def require_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Resolve the caller's ``{"id", "role"}`` from their REST session token."""
    token = _session_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    if not settings.session_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server configuration error",
        )
    try:
        return decode_session_token(token, secret=settings.session_secret)
    except (jwt.InvalidTokenError, MissingSigningSecretError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_staff_session(session: Dict[str, Any] = Depends(require_session)) -> Dict[str, Any]:
    if not session["role"].is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")
    return session


async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None, description="Socket credential"),
):
    """
    Notification socket.

    Connect with: ws://host/ws?token=<socket_token>

    The channel is push-only. Inbound frames are only used as liveness
    answers (e.g. {"type": "pong"}) and must stay under the size cap.
    """
    manager = get_connection_manager(websocket)
    await websocket.accept()
    transport = WebSocketTransport(websocket)

    with connection_id_context() as connection_id:
        connection = await manager.connect(transport, token, connection_id=connection_id)
        if connection is None:
            return

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                if not await manager.on_frame(connection, frame_size(message)):
                    break
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error(f"[WS] Socket error for user {connection.user_id}: {e}")
        finally:
            manager.disconnect(connection)


# =============================================================================
# HTTP ENDPOINTS
# =============================================================================

@websocket_router.post("/api/ws-token")
async def issue_socket_token(
    session: Dict[str, Any] = Depends(require_session),
    settings: Settings = Depends(get_app_settings),
    realtime: RealtimeSettings = Depends(get_realtime_settings),
):
    """Exchange a REST session for a short-lived socket credential."""
    ttl = realtime.socket_token_ttl_seconds

    token = create_socket_token(
        session["id"],
        session["role"],
        expires_delta=timedelta(seconds=ttl),
        secret=settings.session_secret,
    )
    return {"token": token, "expiresIn": ttl}


@websocket_router.get("/api/ws/connections")
async def get_connections(
    session: Dict[str, Any] = Depends(require_staff_session),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Get current WebSocket connection statistics."""
    return {
        "success": True,
        **manager.get_stats(),
    }


@websocket_router.get("/api/ws/connections/{user_id}")
async def get_user_connections(
    user_id: int,
    session: Dict[str, Any] = Depends(require_staff_session),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Get connections for a specific user."""
    connections = manager.get_connections(user_id)
    return {
        "success": True,
        "user_id": user_id,
        "connected": manager.is_user_connected(user_id),
        "connections": [c.to_dict() for c in connections],
        "total": len(connections),
    }
