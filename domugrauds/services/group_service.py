"""Groups, memberships, and invitations."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.core.realtime import PushHub
from domugrauds.db.base import utcnow
from domugrauds.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from domugrauds.models.account import Account
from domugrauds.models.group import Group, GroupInvitation, GroupMembership
from domugrauds.schemas.group import GroupMemberOut, GroupOut
from domugrauds.services.account_service import role_satisfies
from domugrauds.services.follow_service import FollowService
from domugrauds.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)


class GroupService:
    """Service for group lifecycle, membership, and invitations."""

    def __init__(
        self,
        notification_service: NotificationService,
        follow_service: FollowService,
        push_hub: PushHub,
    ) -> None:
        self._notification_service = notification_service
        self._follow_service = follow_service
        self._push_hub = push_hub

    async def create_group(
        self,
        db_session: AsyncSession,
        owner: Account,
        name: str,
        description: str = "",
        is_private: bool = False,
    ) -> GroupOut:
        """Create a group with the caller as its owner and first member."""
        name = name.strip()
        if not name:
            raise InvalidInputError("Group name is required.")
        group = Group(
            name=name,
            description=description.strip(),
            is_private=is_private,
            owner_id=owner.id,
        )
        try:
            db_session.add(group)
            await db_session.flush()
            db_session.add(GroupMembership(group_id=group.id, account_id=owner.id, role="owner"))
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("group_created", group_id=str(group.id), owner_id=str(owner.id))
        return await self.get_group_view(db_session, group.id, owner.id)

    async def list_groups(self, db_session: AsyncSession, viewer: Account) -> list[GroupOut]:
        """List public groups plus every group the viewer belongs to."""
        member_of = select(GroupMembership.group_id).where(
            GroupMembership.account_id == viewer.id
        )
        statement = (
            select(Group)
            .where(or_(Group.is_private.is_(False), Group.id.in_(member_of)))
            .order_by(Group.created_at.desc(), Group.id)
        )
        result = await db_session.execute(statement)
        groups = list(result.scalars().all())
        return await self._build_views(db_session, groups, viewer.id)

    async def get_group_view(
        self, db_session: AsyncSession, group_id: UUID, viewer_id: UUID
    ) -> GroupOut:
        """Fetch one group summary from the viewer's perspective."""
        group = await self._require_group(db_session, group_id)
        return (await self._build_views(db_session, [group], viewer_id))[0]

    async def join_group(self, db_session: AsyncSession, account: Account, group_id: UUID) -> GroupOut:
        """Join a public group, or a private one with a pending invitation."""
        group = await self._require_group(db_session, group_id)
        if await self.is_member(db_session, group_id, account.id):
            raise ConflictError("You are already a member of this group.")

        invitation = await self._pending_invitation(db_session, group_id, account.id)
        if group.is_private and invitation is None:
            raise ForbiddenError("This group is private and requires an invitation.")

        account_id = account.id
        display_name = account.display_name
        owner_id = group.owner_id
        db_session.add(GroupMembership(group_id=group_id, account_id=account_id, role="member"))
        if invitation is not None:
            invitation.status = "accepted"
            invitation.responded_at = utcnow()
        try:
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError("You are already a member of this group.") from exc
        await db_session.commit()
        logger.info("group_joined", group_id=str(group_id), account_id=str(account_id))
        self._push_hub.add_account_to_group(account_id, group_id)

        await self._notification_service.notify_unless_self(
            db_session,
            actor_id=account_id,
            recipient_id=owner_id,
            notification_type="group_join",
            message=f"{display_name} joined your group {group.name}",
            related_id=str(group_id),
        )
        return await self.get_group_view(db_session, group_id, account_id)

    async def leave_group(self, db_session: AsyncSession, account: Account, group_id: UUID) -> None:
        """Leave a group; the owner must delete it instead."""
        group = await self._require_group(db_session, group_id)
        if group.owner_id == account.id:
            raise InvalidInputError("The group owner cannot leave the group.")
        statement = delete(GroupMembership).where(
            GroupMembership.group_id == group_id, GroupMembership.account_id == account.id
        )
        try:
            result = await db_session.execute(statement)
        except Exception:
            await db_session.rollback()
            raise
        if not result.rowcount:
            await db_session.rollback()
            raise NotFoundError("You are not a member of this group.")
        await db_session.commit()
        logger.info("group_left", group_id=str(group_id), account_id=str(account.id))
        self._push_hub.remove_account_from_group(account.id, group_id)

    async def delete_group(self, db_session: AsyncSession, actor: Account, group_id: UUID) -> None:
        """Delete a group as its owner or an admin."""
        group = await self._require_group(db_session, group_id)
        if group.owner_id != actor.id and not role_satisfies(actor.role, "admin"):
            raise ForbiddenError("Only the group owner can delete this group.")
        try:
            await db_session.execute(delete(Group).where(Group.id == group_id))
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info("group_deleted", group_id=str(group_id), actor_id=str(actor.id))
        self._push_hub.close_group(group_id)

    async def invite(
        self,
        db_session: AsyncSession,
        inviter: Account,
        group_id: UUID,
        invitee_id: UUID,
    ) -> GroupInvitation:
        """Invite an account; private groups only accept mutual followers."""
        group = await self._require_group(db_session, group_id)
        if inviter.id == invitee_id:
            raise InvalidInputError("You cannot invite yourself.")
        if not await self.is_member(db_session, group_id, inviter.id):
            raise ForbiddenError("Only group members can send invitations.")
        if await db_session.get(Account, invitee_id) is None:
            raise NotFoundError("User not found.")
        if await self.is_member(db_session, group_id, invitee_id):
            raise ConflictError("User is already a member of this group.")
        if await self._pending_invitation(db_session, group_id, invitee_id) is not None:
            raise ConflictError("Invitation already sent.")
        if group.is_private:
            mutual = await self._follow_service.is_following(
                db_session, inviter.id, invitee_id
            ) and await self._follow_service.is_following(db_session, invitee_id, inviter.id)
            if not mutual:
                raise InvalidInputError("You can only invite mutual followers to a private group.")

        invitation = GroupInvitation(
            group_id=group_id,
            inviter_id=inviter.id,
            invitee_id=invitee_id,
            status="pending",
        )
        db_session.add(invitation)
        try:
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "group_invitation_sent",
            invitation_id=str(invitation.id),
            group_id=str(group_id),
            invitee_id=str(invitee_id),
        )
        await self._notification_service.create(
            db_session,
            recipient_id=invitee_id,
            notification_type="group_invite",
            message=f"{inviter.display_name} invited you to join {group.name}",
            related_id=str(invitation.id),
        )
        return invitation

    async def respond_to_invitation(
        self,
        db_session: AsyncSession,
        account: Account,
        invitation_id: UUID,
        action: str,
    ) -> GroupInvitation:
        """Accept or decline a pending invitation addressed to the caller."""
        invitation = await db_session.get(GroupInvitation, invitation_id)
        if invitation is None or invitation.invitee_id != account.id:
            raise NotFoundError("Invitation not found.")
        if invitation.status != "pending":
            raise ConflictError("Invitation has already been answered.")
        if action not in {"accept", "decline"}:
            raise InvalidInputError("Invalid action.")

        invitation.status = "accepted" if action == "accept" else "declined"
        invitation.responded_at = utcnow()
        if action == "accept" and not await self.is_member(
            db_session, invitation.group_id, account.id
        ):
            db_session.add(
                GroupMembership(group_id=invitation.group_id, account_id=account.id, role="member")
            )
        try:
            await db_session.flush()
        except Exception:
            await db_session.rollback()
            raise
        await db_session.commit()
        logger.info(
            "group_invitation_answered",
            invitation_id=str(invitation_id),
            status=invitation.status,
        )
        if invitation.status == "accepted":
            self._push_hub.add_account_to_group(account.id, invitation.group_id)
        return invitation

    async def list_invitations(
        self, db_session: AsyncSession, account: Account
    ) -> list[GroupInvitation]:
        """List the caller's pending invitations."""
        statement = (
            select(GroupInvitation)
            .where(GroupInvitation.invitee_id == account.id, GroupInvitation.status == "pending")
            .order_by(GroupInvitation.created_at.desc())
        )
        result = await db_session.execute(statement)
        return list(result.scalars().all())

    async def list_members(
        self, db_session: AsyncSession, viewer: Account, group_id: UUID
    ) -> list[GroupMemberOut]:
        """List members of a group; private groups are visible to members only."""
        group = await self._require_group(db_session, group_id)
        if group.is_private and not await self.is_member(db_session, group_id, viewer.id):
            raise ForbiddenError("This group is private.")
        statement = (
            select(Account, GroupMembership)
            .join(GroupMembership, GroupMembership.account_id == Account.id)
            .where(GroupMembership.group_id == group_id)
            .order_by(GroupMembership.joined_at)
        )
        result = await db_session.execute(statement)
        return [
            GroupMemberOut(
                id=member.id,
                username=member.username,
                display_name=member.display_name,
                avatar=member.avatar,
                role=membership.role,
                joined_at=membership.joined_at,
            )
            for member, membership in result.all()
        ]

    async def is_member(self, db_session: AsyncSession, group_id: UUID, account_id: UUID) -> bool:
        """Return whether an account belongs to a group."""
        return await db_session.get(GroupMembership, (group_id, account_id)) is not None

    async def group_ids_for(self, db_session: AsyncSession, account_id: UUID) -> list[str]:
        """Return the ids of every group an account belongs to."""
        result = await db_session.execute(
            select(GroupMembership.group_id).where(GroupMembership.account_id == account_id)
        )
        return [str(group_id) for group_id in result.scalars().all()]

    async def _require_group(self, db_session: AsyncSession, group_id: UUID) -> Group:
        group = await db_session.get(Group, group_id)
        if group is None:
            raise NotFoundError("Group not found.")
        return group

    async def _pending_invitation(
        self, db_session: AsyncSession, group_id: UUID, invitee_id: UUID
    ) -> GroupInvitation | None:
        result = await db_session.execute(
            select(GroupInvitation)
            .where(
                GroupInvitation.group_id == group_id,
                GroupInvitation.invitee_id == invitee_id,
                GroupInvitation.status == "pending",
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _build_views(
        self, db_session: AsyncSession, groups: list[Group], viewer_id: UUID
    ) -> list[GroupOut]:
        if not groups:
            return []
        group_ids = [group.id for group in groups]
        counts_result = await db_session.execute(
            select(GroupMembership.group_id, func.count())
            .where(GroupMembership.group_id.in_(group_ids))
            .group_by(GroupMembership.group_id)
        )
        counts = {group_id: int(count) for group_id, count in counts_result.all()}
        mine_result = await db_session.execute(
            select(GroupMembership.group_id).where(
                GroupMembership.group_id.in_(group_ids), GroupMembership.account_id == viewer_id
            )
        )
        mine = set(mine_result.scalars().all())
        return [
            GroupOut(
                id=group.id,
                name=group.name,
                description=group.description,
                is_private=group.is_private,
                owner_id=group.owner_id,
                member_count=counts.get(group.id, 0),
                is_member=group.id in mine,
                created_at=group.created_at,
            )
            for group in groups
        ]
