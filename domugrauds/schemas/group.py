"""Group, membership, and invitation schemas."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import Field

from domugrauds.models.group import GroupInvitation
from domugrauds.schemas.common import CamelModel, UTCDateTime


class GroupCreateRequest(CamelModel):
    """New group payload."""

    name: str = Field(max_length=100)
    description: str = Field(default="", max_length=1000)
    is_private: bool = False


class GroupJoinRequest(CamelModel):
    """Join a group by id."""

    group_id: UUID


class GroupInviteRequest(CamelModel):
    """Invite another account to a group."""

    group_id: UUID
    invitee_id: UUID


class InvitationRespondRequest(CamelModel):
    """Accept or decline a pending invitation."""

    invitation_id: UUID
    action: Literal["accept", "decline"]


class GroupOut(CamelModel):
    """Group summary with membership count."""

    id: UUID
    name: str
    description: str
    is_private: bool
    owner_id: UUID
    member_count: int
    is_member: bool
    created_at: UTCDateTime


class GroupMemberOut(CamelModel):
    """Group member summary."""

    id: UUID
    username: str
    display_name: str
    avatar: str | None = None
    role: str
    joined_at: UTCDateTime


class InvitationOut(CamelModel):
    """Group invitation view."""

    id: UUID
    group_id: UUID
    inviter_id: UUID
    invitee_id: UUID
    status: str
    created_at: UTCDateTime

    @classmethod
    def from_invitation(cls, invitation: GroupInvitation) -> InvitationOut:
        """Build the wire view of an invitation row."""
        return cls(
            id=invitation.id,
            group_id=invitation.group_id,
            inviter_id=invitation.inviter_id,
            invitee_id=invitation.invitee_id,
            status=invitation.status,
            created_at=invitation.created_at,
        )


class GroupResponse(CamelModel):
    """Single-group envelope."""

    success: Literal[True] = True
    group: GroupOut
    message: str | None = None


class GroupListResponse(CamelModel):
    """Group listing envelope."""

    success: Literal[True] = True
    groups: list[GroupOut]


class GroupMemberListResponse(CamelModel):
    """Group member listing envelope."""

    success: Literal[True] = True
    members: list[GroupMemberOut]


class InvitationResponse(CamelModel):
    """Single-invitation envelope."""

    success: Literal[True] = True
    invitation: InvitationOut
    message: str
