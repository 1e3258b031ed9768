"""Tests for the notification socket and its HTTP routes."""

from contextlib import ExitStack
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from config.settings import RealtimeSettings, Settings
from rbac.jwt import decode_socket_token
from rbac.roles import Role
from realtime.exceptions import CloseCode
from web.app import create_app


@pytest.fixture
def app(session_secret):
    settings = Settings(session_secret=session_secret, environment="test")
    return create_app(settings, realtime_settings=RealtimeSettings(), start_heartbeat=False)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def manager(app):
    return app.state.connection_manager


@pytest.fixture
def session_token(session_secret):
    """Mint a REST session token the way the auth layer does."""
    def _make(user_id: int, role: str = "client") -> str:
        return jwt.encode(
            {
                "id": user_id,
                "email": f"user{user_id}@example.com",
                "role": role,
                "exp": datetime.now(timezone.utc) + timedelta(days=7),
            },
            session_secret,
            algorithm="HS256",
        )
    return _make


def _close_code(ws) -> int:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        ws.receive_text()
    return exc_info.value.code


class TestWebSocketEndpoint:
    """Tests for the /ws handshake and inbound policy."""

    def test_connect_and_disconnect(self, client, manager, make_token):
        with client.websocket_connect(f"/ws?token={make_token(10)}") as ws:
            welcome = ws.receive_json()
            assert welcome["type"] == "connected"
            assert manager.is_user_connected(10)

        assert not manager.is_user_connected(10)

    def test_missing_token(self, client, manager):
        with client.websocket_connect("/ws") as ws:
            assert _close_code(ws) == CloseCode.AUTH_REQUIRED
        assert manager.connection_count() == 0

    def test_invalid_token(self, client):
        with client.websocket_connect("/ws?token=garbage") as ws:
            assert _close_code(ws) == CloseCode.INVALID_TOKEN

    def test_expired_token(self, client, make_token):
        token = make_token(10, expires_delta=timedelta(seconds=-5))
        with client.websocket_connect(f"/ws?token={token}") as ws:
            assert _close_code(ws) == CloseCode.INVALID_TOKEN

    def test_session_token_not_accepted_as_socket_token(self, client, session_token):
        with client.websocket_connect(f"/ws?token={session_token(10)}") as ws:
            assert _close_code(ws) == CloseCode.INVALID_TOKEN

    def test_sixth_connection_rejected(self, client, manager, make_token):
        with ExitStack() as stack:
            for _ in range(5):
                ws = stack.enter_context(client.websocket_connect(f"/ws?token={make_token(10)}"))
                assert ws.receive_json()["type"] == "connected"

            with client.websocket_connect(f"/ws?token={make_token(10)}") as extra:
                assert _close_code(extra) == CloseCode.TOO_MANY_CONNECTIONS
            assert len(manager.get_connections(10)) == 5

    def test_oversized_frame_closes_socket(self, client, manager, make_token):
        with client.websocket_connect(f"/ws?token={make_token(10)}") as ws:
            ws.receive_json()
            ws.send_text("x" * 2048)
            assert _close_code(ws) == CloseCode.MESSAGE_TOO_LARGE

        assert not manager.is_user_connected(10)

    def test_small_frame_accepted(self, client, manager, make_token):
        with client.websocket_connect(f"/ws?token={make_token(10)}") as ws:
            ws.receive_json()
            connection = manager.get_connections(10)[0]

            ws.send_json({"type": "pong"})
            # Frames are handled in order, so the oversized one closes after the pong
            ws.send_text("x" * 2048)
            assert _close_code(ws) == CloseCode.MESSAGE_TOO_LARGE

        assert connection.messages_received == 1

    def test_misconfigured_server(self, make_token):
        settings = Settings(session_secret=None, environment="test")
        client = TestClient(create_app(settings, realtime_settings=RealtimeSettings(), start_heartbeat=False))

        with client.websocket_connect(f"/ws?token={make_token(10)}") as ws:
            assert _close_code(ws) == CloseCode.SERVER_MISCONFIGURED

    def test_custom_path(self, session_secret, make_token):
        settings = Settings(session_secret=session_secret, environment="test")
        app = create_app(settings, realtime_settings=RealtimeSettings(path="/notifications"), start_heartbeat=False)
        client = TestClient(app)

        with client.websocket_connect(f"/notifications?token={make_token(10)}") as ws:
            assert ws.receive_json()["type"] == "connected"


class TestSocketTokenRoute:
    """Tests for POST /api/ws-token."""

    def test_exchange_bearer_session(self, client, session_token, session_secret):
        response = client.post(
            "/api/ws-token",
            headers={"Authorization": f"Bearer {session_token(10, 'client')}"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["expiresIn"] == 3600
        assert decode_socket_token(body["token"], session_secret) == {"id": 10, "role": Role.CLIENT}

    def test_exchange_cookie_session(self, client, session_token):
        client.cookies.set("token", session_token(20, "preparer"))

        response = client.post("/api/ws-token")

        assert response.status_code == 200

    def test_issued_token_opens_socket(self, client, manager, session_token):
        token = client.post(
            "/api/ws-token",
            headers={"Authorization": f"Bearer {session_token(20, 'preparer')}"},
        ).json()["token"]

        with client.websocket_connect(f"/ws?token={token}") as ws:
            assert ws.receive_json()["type"] == "connected"
            assert manager.get_connections(20)[0].role is Role.PREPARER

    def test_missing_session(self, client):
        assert client.post("/api/ws-token").status_code == 401

    def test_invalid_session(self, client):
        response = client.post("/api/ws-token", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_socket_token_cannot_be_exchanged(self, client, make_token):
        response = client.post(
            "/api/ws-token",
            headers={"Authorization": f"Bearer {make_token(10)}"},
        )
        assert response.status_code == 401


class TestConnectionsRoute:
    """Tests for the diagnostics routes."""

    def test_staff_can_read_stats(self, client, session_token, make_token):
        headers = {"Authorization": f"Bearer {session_token(1, 'admin')}"}
        with client.websocket_connect(f"/ws?token={make_token(10)}") as ws:
            ws.receive_json()
            stats = client.get("/api/ws/connections", headers=headers).json()

        assert stats["connected_users"] == 1
        assert stats["total_connections"] == 1
        assert stats["connections_by_role"]["client"] == 1

    def test_client_forbidden(self, client, session_token):
        headers = {"Authorization": f"Bearer {session_token(10, 'client')}"}
        assert client.get("/api/ws/connections", headers=headers).status_code == 403

    def test_user_connections(self, client, session_token, make_token):
        headers = {"Authorization": f"Bearer {session_token(2, 'preparer')}"}
        with client.websocket_connect(f"/ws?token={make_token(10)}") as ws:
            ws.receive_json()
            body = client.get("/api/ws/connections/10", headers=headers).json()

        assert body["connected"] is True
        assert body["total"] == 1
        assert body["connections"][0]["role"] == "client"

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["heartbeat_running"] is False
