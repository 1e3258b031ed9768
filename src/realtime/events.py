"""
Real-Time Notification Models

Defines the notification payload pushed over the socket and the builders
the REST layer uses for common office events.

Wire format (server -> client):
    {"type": "case_update", "title": "...", "message": "...", "data": {...}}
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Any, Mapping, Union
import json


class NotificationType(str, Enum):
    """Types of real-time notifications."""
    CONNECTED = "connected"
    MESSAGE = "message"
    STATUS_UPDATE = "status_update"
    DOCUMENT = "document"
    APPOINTMENT = "appointment"
    CASE_UPDATE = "case_update"


DEFAULT_PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class Notification:
    """
    Immutable notification payload.

    ``data`` is stored as a read-only copy of the mapping passed in, so
    neither the caller nor the service can mutate it after construction.
    """
    type: NotificationType
    title: str
    message: str
    data: Optional[Mapping[str, Any]] = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, "type", NotificationType(self.type))
        if self.data is not None:
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
        }
        if self.data is not None:
            payload["data"] = dict(self.data)
        return payload

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        """Create notification from dictionary."""
        return cls(
            type=NotificationType(data["type"]),
            title=data.get("title", ""),
            message=data.get("message", ""),
            data=data.get("data"),
        )


# Convenience functions for creating common notifications

def create_connected_notification() -> Notification:
    """Welcome payload sent to a socket right after its handshake."""
    return Notification(
        type=NotificationType.CONNECTED,
        title="Conectado",
        message="Connected to notification service",
    )


def truncate_preview(text: str, limit: int = DEFAULT_PREVIEW_LENGTH) -> str:
    return text[:limit]


def create_new_message_notification(
    from_user_id: int,
    message_preview: str,
    preview_length: int = DEFAULT_PREVIEW_LENGTH,
) -> Notification:
    """Create a direct message notification for the recipient."""
    return Notification(
        type=NotificationType.MESSAGE,
        title="Nuevo Mensaje",
        message=truncate_preview(message_preview, preview_length),
        data={"fromUserId": from_user_id},
    )


def create_case_status_client_notification(case_id: int, new_status: str) -> Notification:
    """Create the case status notification for the owning client."""
    return Notification(
        type=NotificationType.CASE_UPDATE,
        title="Estado del Caso Actualizado",
        message=f"Su caso ha sido actualizado a: {new_status}",
        data={"caseId": case_id, "status": new_status},
    )


def create_case_status_staff_notification(
    case_id: int,
    new_status: str,
    client_name: Optional[str] = None,
) -> Notification:
    """Create the case status summary for the staff group."""
    if client_name:
        message = f"El caso de {client_name} ha sido actualizado"
    else:
        message = "Un caso ha sido actualizado"
    return Notification(
        type=NotificationType.CASE_UPDATE,
        title="Caso Actualizado",
        message=message,
        data={"caseId": case_id, "status": new_status},
    )


def create_document_upload_notification(
    client_id: int,
    client_name: str,
    document_name: str,
    case_id: Optional[int] = None,
) -> Notification:
    """Create a document upload alert for the staff group."""
    return Notification(
        type=NotificationType.DOCUMENT,
        title="Nuevo Documento",
        message=f"{client_name} ha subido: {document_name}",
        data={"clientId": client_id, "documentName": document_name, "caseId": case_id},
    )


def format_date_time(date_time: Union[datetime, str]) -> str:
    """Render an appointment date-time as ISO-8601."""
    if isinstance(date_time, datetime):
        return date_time.isoformat()
    return str(date_time)


def create_appointment_client_notification(
    date_time: Union[datetime, str],
    service: str,
) -> Notification:
    """Create the appointment confirmation for the client."""
    date_time = format_date_time(date_time)
    return Notification(
        type=NotificationType.APPOINTMENT,
        title="Cita Confirmada",
        message=f"Su cita para {service} ha sido programada",
        data={"dateTime": date_time, "service": service},
    )


def create_appointment_staff_notification(
    client_id: int,
    date_time: Union[datetime, str],
    service: str,
) -> Notification:
    """Create the new-appointment alert for the staff group."""
    date_time = format_date_time(date_time)
    return Notification(
        type=NotificationType.APPOINTMENT,
        title="Nueva Cita",
        message=f"Nueva cita programada para {service}",
        data={"clientId": client_id, "dateTime": date_time, "service": service},
    )


def create_status_update_notification(
    title: str,
    message: str,
    data: Optional[Mapping[str, Any]] = None,
) -> Notification:
    """Create a generic status update (also used for announcements)."""
    return Notification(
        type=NotificationType.STATUS_UPDATE,
        title=title,
        message=message,
        data=data,
    )
