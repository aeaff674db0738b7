"""Notification request/response schemas."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import Field

from domugrauds.models.notification import Notification
from domugrauds.schemas.common import CamelModel, UTCDateTime

NotificationType = Literal[
    "like", "comment", "follow", "topic_day", "group_invite", "group_join", "group_message"
]


class NotificationCreateRequest(CamelModel):
    """Explicit notification creation payload."""

    user_id: UUID
    type: NotificationType
    message: str = Field(min_length=1, max_length=500)
    related_id: str | None = Field(default=None, max_length=64)


class NotificationReadRequest(CamelModel):
    """Mark one notification, or all of the caller's notifications, as read."""

    notification_id: UUID | None = None
    all: bool = False


class NotificationOut(CamelModel):
    """Notification as delivered over HTTP and the push channel."""

    id: UUID
    user_id: UUID
    type: str
    message: str
    related_id: str | None = None
    read: bool
    created_at: UTCDateTime

    @classmethod
    def from_notification(cls, notification: Notification) -> NotificationOut:
        """Build the wire view of a notification row."""
        return cls(
            id=notification.id,
            user_id=notification.recipient_id,
            type=notification.type,
            message=notification.message,
            related_id=notification.related_id,
            read=notification.is_read,
            created_at=notification.created_at,
        )


class NotificationResponse(CamelModel):
    """Single-notification envelope."""

    success: Literal[True] = True
    notification: NotificationOut


class NotificationListResponse(CamelModel):
    """Notification listing envelope."""

    success: Literal[True] = True
    notifications: list[NotificationOut]
    unread_count: int = 0


class NotificationReadResponse(CamelModel):
    """Read-flag update acknowledgement."""

    success: Literal[True] = True
    updated: int
    message: str
