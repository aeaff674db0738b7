"""Notification listing, creation, and read-flag routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from domugrauds.dependencies import CurrentAccount, DbSessionDep, ServicesDep
from domugrauds.errors import InvalidInputError
from domugrauds.schemas.notification import (
    NotificationCreateRequest,
    NotificationListResponse,
    NotificationOut,
    NotificationReadRequest,
    NotificationReadResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    notifications = await services.notifications.list_for_account(
        db_session, account.id, limit=limit, offset=offset
    )
    unread = await services.notifications.count_unread(db_session, account.id)
    return NotificationListResponse(
        notifications=[NotificationOut.from_notification(item) for item in notifications],
        unread_count=unread,
    )


@router.post("", response_model=NotificationResponse, status_code=201)
async def create_notification(
    payload: NotificationCreateRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> NotificationResponse:
    """Create a notification for another account and push it live."""
    notification = await services.notifications.create(
        db_session,
        recipient_id=payload.user_id,
        notification_type=payload.type,
        message=payload.message,
        related_id=payload.related_id,
    )
    return NotificationResponse(notification=NotificationOut.from_notification(notification))


@router.put("", response_model=NotificationReadResponse)
async def mark_read(
    payload: NotificationReadRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> NotificationReadResponse:
    """Mark one notification, or all of them, as read."""
    if payload.all:
        updated = await services.notifications.mark_all_read(db_session, account.id)
        return NotificationReadResponse(
            updated=updated, message="All notifications marked as read"
        )
    if payload.notification_id is None:
        raise InvalidInputError("notificationId or all is required.")
    await services.notifications.mark_read(db_session, account.id, payload.notification_id)
    return NotificationReadResponse(updated=1, message="Notification marked as read")
