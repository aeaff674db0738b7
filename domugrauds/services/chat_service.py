"""Group chat messages with member notifications and push delivery."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.core.realtime import PushEventType, PushHub
from domugrauds.errors import ForbiddenError, InvalidInputError, NotFoundError
from domugrauds.models.account import Account
from domugrauds.models.group import Group, GroupMembership, GroupMessage
from domugrauds.schemas.chat import GroupMessageOut
from domugrauds.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

MAX_MESSAGE_LENGTH = 1000
MESSAGE_TYPES = frozenset({"text", "image", "file"})
PREVIEW_LENGTH = 50


class ChatService:
    """Service for posting, listing, and hiding group chat messages."""

    def __init__(self, notification_service: NotificationService, push_hub: PushHub) -> None:
        self._notification_service = notification_service
        self._push_hub = push_hub

    async def list_messages(
        self,
        db_session: AsyncSession,
        viewer: Account,
        group_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> list[GroupMessageOut]:
        """List a group's visible messages, newest first; members only."""
        await self._require_membership(db_session, group_id, viewer.id)
        statement = (
            select(GroupMessage, Account)
            .join(Account, Account.id == GroupMessage.sender_id)
            .where(GroupMessage.group_id == group_id, GroupMessage.is_deleted.is_(False))
            .order_by(GroupMessage.created_at.desc(), GroupMessage.id)
            .limit(limit)
            .offset(offset)
        )
        result = await db_session.execute(statement)
        return [_to_view(message, sender) for message, sender in result.all()]

    async def send_message(
        self,
        db_session: AsyncSession,
        sender: Account,
        group_id: UUID,
        content: str,
        message_type: str = "text",
        attachment_url: str | None = None,
    ) -> GroupMessageOut:
        """Store a message, notify the other members, and push it to every member."""
        content = content.strip()
        if not content:
            raise InvalidInputError("Message content is required.")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise InvalidInputError(
                f"Message content must be {MAX_MESSAGE_LENGTH} characters or less."
            )
        if message_type not in MESSAGE_TYPES:
            raise InvalidInputError("Invalid message type.")
        await self._require_membership(db_session, group_id, sender.id)

        message = GroupMessage(
            group_id=group_id,
            sender_id=sender.id,
            content=content,
            message_type=message_type,
            attachment_url=attachment_url,
        )
        db_session.add(message)
        try:
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        view = _to_view(message, sender)
        logger.info(
            "group_message_sent",
            message_id=str(view.id),
            group_id=str(group_id),
            sender_id=str(view.sender_id),
        )

        member_ids = await self._member_ids(db_session, group_id)
        preview = content[:PREVIEW_LENGTH] + ("..." if len(content) > PREVIEW_LENGTH else "")
        for member_id in member_ids:
            if member_id == view.sender_id:
                continue
            await self._notification_service.create(
                db_session,
                recipient_id=member_id,
                notification_type="group_message",
                message=f"New message in group: {preview}",
                related_id=str(group_id),
            )

        await self._push_to_members(
            member_ids, "group_message_created", view.model_dump(mode="json", by_alias=True)
        )
        return view

    async def delete_message(
        self, db_session: AsyncSession, actor: Account, message_id: UUID
    ) -> None:
        """Hide a message as its sender or the group owner."""
        message = await db_session.get(GroupMessage, message_id)
        if message is None or message.is_deleted:
            raise NotFoundError("Message not found.")
        group = await db_session.get(Group, message.group_id)
        if group is None:
            raise NotFoundError("Group not found.")
        if actor.id not in (message.sender_id, group.owner_id):
            raise ForbiddenError("You are not authorized to delete this message.")

        group_id = message.group_id
        message.is_deleted = True
        try:
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "group_message_deleted",
            message_id=str(message_id),
            group_id=str(group_id),
            actor_id=str(actor.id),
        )
        await self._push_to_members(
            await self._member_ids(db_session, group_id),
            "group_message_deleted",
            {"id": str(message_id), "groupId": str(group_id)},
        )

    async def _member_ids(self, db_session: AsyncSession, group_id: UUID) -> list[UUID]:
        result = await db_session.execute(
            select(GroupMembership.account_id).where(GroupMembership.group_id == group_id)
        )
        return list(result.scalars().all())

    async def _push_to_members(
        self, member_ids: list[UUID], event_type: PushEventType, data: dict
    ) -> None:
        """Deliver a chat event to each member's live connections."""
        for member_id in member_ids:
            await self._push_hub.send_to_account(member_id, event_type, data)

    async def _require_membership(
        self, db_session: AsyncSession, group_id: UUID, account_id: UUID
    ) -> None:
        if await db_session.get(Group, group_id) is None:
            raise NotFoundError("Group not found.")
        if await db_session.get(GroupMembership, (group_id, account_id)) is None:
            raise ForbiddenError("You are not a member of this group.")


def _to_view(message: GroupMessage, sender: Account) -> GroupMessageOut:
    return GroupMessageOut(
        id=message.id,
        group_id=message.group_id,
        sender_id=message.sender_id,
        sender_username=sender.username,
        sender_display_name=sender.display_name,
        sender_avatar=sender.avatar,
        content=message.content,
        message_type=message.message_type,
        attachment_url=message.attachment_url,
        created_at=message.created_at,
        updated_at=message.updated_at,
    )
