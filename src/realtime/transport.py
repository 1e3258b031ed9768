"""
Socket Transport

The connection manager talks to sockets through the small ``Transport``
interface so the registry, heartbeat and fan-out logic can be exercised
without a running server. ``WebSocketTransport`` adapts a FastAPI/Starlette
``WebSocket``.
"""

import json
import logging
from typing import Any, Dict, Protocol, runtime_checkable

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from .exceptions import CloseCode

logger = logging.getLogger(__name__)

# ASGI has no protocol-level ping, so the probe is a tiny JSON frame.
# Any inbound frame (e.g. {"type": "pong"}) counts as the answer.
PING_FRAME = json.dumps({"type": "ping"})


@runtime_checkable
class Transport(Protocol):
    """Minimal socket surface used by the connection manager."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, text: str) -> None: ...

    async def ping(self) -> None: ...

    async def close(self, code: int, reason: str = "") -> None: ...

    async def terminate(self) -> None: ...


class WebSocketTransport:
    """Transport backed by an accepted Starlette WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        )

    async def send_text(self, text: str) -> None:
        await self.websocket.send_text(text)

    async def ping(self) -> None:
        await self.websocket.send_text(PING_FRAME)

    async def close(self, code: int, reason: str = "") -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close(code=int(code), reason=reason)
        except RuntimeError as e:
            # Peer already gone; the close frame has nowhere to go.
            logger.debug(f"[WS] Close after disconnect ignored: {e}")

    async def terminate(self) -> None:
        """Drop the socket without a notification payload."""
        await self.close(CloseCode.HEARTBEAT_TIMEOUT)


def frame_size(message: Dict[str, Any]) -> int:
    """Size in bytes of an ASGI ``websocket.receive`` message."""
    if message.get("bytes") is not None:
        return len(message["bytes"])
    text = message.get("text")
    if text is None:
        return 0
    return len(text.encode("utf-8"))
