"""Follow graph mutations with notification and push side effects."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.core.realtime import PushHub
from domugrauds.errors import InvalidInputError, NotFoundError
from domugrauds.models.account import Account, Follow
from domugrauds.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)


class FollowService:
    """Service for following and unfollowing accounts."""

    def __init__(self, notification_service: NotificationService, push_hub: PushHub) -> None:
        self._notification_service = notification_service
        self._push_hub = push_hub

    async def is_following(
        self, db_session: AsyncSession, follower_id: UUID, followee_id: UUID
    ) -> bool:
        """Return whether one account follows another."""
        result = await db_session.execute(
            select(Follow.follower_id).where(
                Follow.follower_id == follower_id, Follow.followee_id == followee_id
            )
        )
        return result.first() is not None

    async def follow(self, db_session: AsyncSession, follower: Account, followee_id: UUID) -> bool:
        """Follow an account; returns False when the edge already existed."""
        target = await self._require_target(db_session, follower, followee_id)
        if await self.is_following(db_session, follower.id, followee_id):
            return False

        db_session.add(Follow(follower_id=follower.id, followee_id=followee_id))
        try:
            await db_session.flush()
        except IntegrityError:
            # A concurrent request inserted the same edge first.
            await db_session.rollback()
            await db_session.refresh(follower)
            return False
        await db_session.commit()
        logger.info("account_followed", follower_id=str(follower.id), followee_id=str(followee_id))

        await self._notification_service.create(
            db_session,
            recipient_id=target.id,
            notification_type="follow",
            message=f"{follower.display_name} started following you",
            related_id=str(follower.id),
        )
        await self._publish(follower.id, followee_id, "follow")
        return True

    async def unfollow(
        self, db_session: AsyncSession, follower: Account, followee_id: UUID
    ) -> bool:
        """Unfollow an account; returns False when there was no edge."""
        await self._require_target(db_session, follower, followee_id)
        statement = delete(Follow).where(
            Follow.follower_id == follower.id, Follow.followee_id == followee_id
        )
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        removed = bool(result.rowcount)
        if removed:
            logger.info(
                "account_unfollowed", follower_id=str(follower.id), followee_id=str(followee_id)
            )
            await self._publish(follower.id, followee_id, "unfollow")
        return removed

    async def list_followers(self, db_session: AsyncSession, account_id: UUID) -> list[Account]:
        """List the accounts following an account."""
        statement = (
            select(Account)
            .join(Follow, Follow.follower_id == Account.id)
            .where(Follow.followee_id == account_id)
            .order_by(Follow.created_at.desc())
        )
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def list_following(self, db_session: AsyncSession, account_id: UUID) -> list[Account]:
        """List the accounts an account follows."""
        statement = (
            select(Account)
            .join(Follow, Follow.followee_id == Account.id)
            .where(Follow.follower_id == account_id)
            .order_by(Follow.created_at.desc())
        )
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def _require_target(
        self, db_session: AsyncSession, follower: Account, followee_id: UUID
    ) -> Account:
        if follower.id == followee_id:
            raise InvalidInputError("You cannot follow yourself.")
        target = await db_session.get(Account, followee_id)
        if target is None:
            raise NotFoundError("User not found.")
        return target

    async def _publish(self, follower_id: UUID, followee_id: UUID, action: str) -> None:
        payload = {
            "followerId": str(follower_id),
            "followeeId": str(followee_id),
            "action": action,
        }
        await self._push_hub.send_to_account(follower_id, "follow_updated", payload)
        await self._push_hub.send_to_account(followee_id, "follow_updated", payload)
