"""Notification persistence with push delivery to the recipient."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.core.realtime import PushHub
from domugrauds.errors import InvalidInputError, NotFoundError
from domugrauds.models.account import Account
from domugrauds.models.notification import Notification
from domugrauds.schemas.notification import NotificationOut

logger = structlog.get_logger(__name__)

NOTIFICATION_TYPES = frozenset(
    {"like", "comment", "follow", "topic_day", "group_invite", "group_join", "group_message"}
)


class NotificationService:
    """Service for creating, listing, and marking notifications."""

    def __init__(self, push_hub: PushHub) -> None:
        self._push_hub = push_hub

    async def create(
        self,
        db_session: AsyncSession,
        recipient_id: UUID,
        notification_type: str,
        message: str,
        related_id: str | None = None,
    ) -> Notification:
        """Persist a notification and push it to the recipient's live connections."""
        if notification_type not in NOTIFICATION_TYPES:
            raise InvalidInputError("Invalid notification type.")
        if not message.strip():
            raise InvalidInputError("Notification message is required.")
        if await db_session.get(Account, recipient_id) is None:
            raise NotFoundError("User not found.")

        notification = Notification(
            recipient_id=recipient_id,
            type=notification_type,
            message=message.strip(),
            related_id=related_id,
            is_read=False,
        )
        db_session.add(notification)
        try:
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            recipient_id=str(recipient_id),
            type=notification_type,
        )
        await self._push_hub.send_to_account(
            recipient_id,
            "notification_received",
            NotificationOut.from_notification(notification).model_dump(mode="json", by_alias=True),
        )
        return notification

    async def notify_unless_self(
        self,
        db_session: AsyncSession,
        actor_id: UUID,
        recipient_id: UUID,
        notification_type: str,
        message: str,
        related_id: str | None = None,
    ) -> Notification | None:
        """Create a side-effect notification unless the actor is the recipient."""
        if actor_id == recipient_id:
            return None
        return await self.create(
            db_session,
            recipient_id=recipient_id,
            notification_type=notification_type,
            message=message,
            related_id=related_id,
        )

    async def list_for_account(
        self,
        db_session: AsyncSession,
        account_id: UUID,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Notification]:
        """List an account's notifications, newest first."""
        statement = (
            select(Notification)
            .where(Notification.recipient_id == account_id)
            .order_by(Notification.created_at.desc(), Notification.id)
            .limit(limit)
            .offset(offset)
        )
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def count_unread(self, db_session: AsyncSession, account_id: UUID) -> int:
        """Count unread notifications for an account."""
        statement = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == account_id, Notification.is_read.is_(False))
        )
        result = await db_session.execute(statement)
        return int(result.scalar_one())

    async def mark_read(
        self, db_session: AsyncSession, account_id: UUID, notification_id: UUID
    ) -> Notification:
        """Mark one of the account's notifications as read."""
        notification = await db_session.get(Notification, notification_id)
        if notification is None or notification.recipient_id != account_id:
            raise NotFoundError("Notification not found.")
        if not notification.is_read:
            notification.is_read = True
            await db_session.flush()
            await db_session.commit()
        return notification

    async def mark_all_read(self, db_session: AsyncSession, account_id: UUID) -> int:
        """Mark every unread notification of an account as read."""
        statement = (
            update(Notification)
            .where(Notification.recipient_id == account_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        return int(result.rowcount or 0)
