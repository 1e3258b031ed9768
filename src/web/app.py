"""
ASGI application for the notification service.

Wires the connection manager, heartbeat monitor and event publisher onto
``app.state`` so REST handlers (and tests) work with one injectable
instance instead of a module-level singleton.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import RealtimeSettings, Settings, get_settings, validate_startup_security
from middleware.correlation import configure_logging
from rbac.jwt import socket_token_decoder
from realtime.connection_manager import ConnectionManager
from realtime.event_publisher import EventPublisher
from realtime.heartbeat import HeartbeatMonitor
from realtime.websocket_routes import websocket_endpoint, websocket_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    realtime_settings: Optional[RealtimeSettings] = None,
    manager: Optional[ConnectionManager] = None,
    start_heartbeat: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to the cached environment settings)
        realtime_settings: Socket settings (defaults to ``settings.realtime``)
        manager: Pre-built connection manager (tests)
        start_heartbeat: Start the heartbeat task on startup
    """
    settings = settings or get_settings()
    realtime_settings = realtime_settings or settings.realtime

    validate_startup_security(settings, exit_on_failure=settings.is_production)

    if manager is None:
        manager = ConnectionManager.from_settings(
            realtime_settings,
            token_decoder=socket_token_decoder(settings.session_secret),
        )
    monitor = HeartbeatMonitor(manager.sweep, realtime_settings.heartbeat_interval_seconds)

    app = FastAPI(title=settings.name, version=settings.version, debug=settings.debug)
    app.state.settings = settings
    app.state.realtime_settings = realtime_settings
    app.state.connection_manager = manager
    app.state.heartbeat = monitor
    app.state.event_publisher = EventPublisher(
        manager, preview_length=realtime_settings.message_preview_length
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_api_websocket_route(realtime_settings.path, websocket_endpoint)
    app.include_router(websocket_router)

    @app.on_event("startup")
    async def startup_heartbeat():
        """Start liveness sweeps."""
        if start_heartbeat:
            monitor.start()

    @app.on_event("shutdown")
    async def shutdown_heartbeat():
        """Stop liveness sweeps."""
        await monitor.stop()

    @app.get("/api/health")
    async def health():
        return {
            "status": "healthy",
            "connected_users": manager.connected_users_count(),
            "heartbeat_running": monitor.running,
        }

    logger.info(f"[WS] Notification service initialized at {realtime_settings.path}")
    return app


def build_default_app() -> FastAPI:
    """Entry point for uvicorn: configures logging from settings."""
    settings = get_settings()
    configure_logging(level=settings.log_level)
    return create_app(settings)
