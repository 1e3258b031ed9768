"""
Event Publisher

The interface REST handlers call after committing a state change.
Delivery is best-effort: every method swallows and logs its own
failures so a notification problem never fails the caller's request.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Mapping, Optional, Union

from .connection_manager import ConnectionManager
from .events import (
    DEFAULT_PREVIEW_LENGTH,
    Notification,
    create_appointment_client_notification,
    create_appointment_staff_notification,
    create_case_status_client_notification,
    create_case_status_staff_notification,
    create_document_upload_notification,
    create_new_message_notification,
    create_status_update_notification,
)

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Simplified interface for publishing notifications.

    Usage:
        publisher = request.app.state.event_publisher

        await publisher.notify_case_status_change(
            client_id=10,
            case_id=5,
            new_status="approved",
            client_name="Jane",
        )
    """

    def __init__(
        self,
        manager: ConnectionManager,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ):
        self.manager = manager
        self.preview_length = preview_length

    async def _guarded(self, send: Awaitable[int], notification: Notification, target: str) -> int:
        try:
            return await send
        except Exception:
            logger.exception(f"[WS] Failed to publish {notification.type.value} to {target}")
            return 0

    # Primitive targets

    async def publish_to_user(self, user_id: int, notification: Notification) -> int:
        return await self._guarded(
            self.manager.send_to_user(user_id, notification), notification, f"user {user_id}"
        )

    async def publish_to_admins(self, notification: Notification) -> int:
        return await self._guarded(
            self.manager.send_to_admins(notification), notification, "admins"
        )

    async def publish_to_staff(self, notification: Notification) -> int:
        return await self._guarded(
            self.manager.send_to_preparers(notification), notification, "staff"
        )

    async def publish_to_all(self, notification: Notification) -> int:
        return await self._guarded(
            self.manager.broadcast(notification), notification, "all"
        )

    # Office events

    async def notify_new_message(
        self,
        from_user_id: int,
        to_user_id: int,
        message_preview: str,
    ) -> int:
        """Notify the recipient of a direct message."""
        notification = create_new_message_notification(
            from_user_id, message_preview, self.preview_length
        )
        return await self.publish_to_user(to_user_id, notification)

    async def notify_case_status_change(
        self,
        client_id: int,
        case_id: int,
        new_status: str,
        client_name: Optional[str] = None,
    ) -> int:
        """Notify the owning client, then the staff group."""
        delivered = await self.publish_to_user(
            client_id, create_case_status_client_notification(case_id, new_status)
        )
        delivered += await self.publish_to_staff(
            create_case_status_staff_notification(case_id, new_status, client_name)
        )
        return delivered

    async def notify_document_upload(
        self,
        client_id: int,
        client_name: str,
        document_name: str,
        case_id: Optional[int] = None,
    ) -> int:
        """Alert the staff group that a client uploaded a document."""
        return await self.publish_to_staff(
            create_document_upload_notification(client_id, client_name, document_name, case_id)
        )

    async def notify_new_appointment(
        self,
        client_id: int,
        date_time: Union[datetime, str],
        service: str,
    ) -> int:
        """Confirm to the client, then alert the staff group."""
        delivered = await self.publish_to_user(
            client_id, create_appointment_client_notification(date_time, service)
        )
        delivered += await self.publish_to_staff(
            create_appointment_staff_notification(client_id, date_time, service)
        )
        return delivered

    async def notify_status_update(
        self,
        user_id: int,
        title: str,
        message: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> int:
        return await self.publish_to_user(
            user_id, create_status_update_notification(title, message, data)
        )

    async def announce(
        self,
        title: str,
        message: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Send a system announcement to every connection."""
        return await self.publish_to_all(create_status_update_notification(title, message, data))
