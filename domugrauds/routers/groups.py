"""Group, membership, invitation, and group chat routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from domugrauds.dependencies import CurrentAccount, DbSessionDep, ServicesDep
from domugrauds.schemas.chat import (
    GroupMessageCreateRequest,
    GroupMessageListResponse,
    GroupMessageSentResponse,
)
from domugrauds.schemas.common import SuccessResponse
from domugrauds.schemas.group import (
    GroupCreateRequest,
    GroupInviteRequest,
    GroupJoinRequest,
    GroupListResponse,
    GroupMemberListResponse,
    GroupResponse,
    InvitationOut,
    InvitationRespondRequest,
    InvitationResponse,
)

router = APIRouter(prefix="/api/groups", tags=["groups"])


@router.get("", response_model=GroupListResponse)
async def list_groups(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> GroupListResponse:
    """List public groups and the caller's groups."""
    return GroupListResponse(groups=await services.groups.list_groups(db_session, account))


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    payload: GroupCreateRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> GroupResponse:
    """Create a group owned by the caller."""
    group = await services.groups.create_group(
        db_session,
        account,
        name=payload.name,
        description=payload.description,
        is_private=payload.is_private,
    )
    return GroupResponse(group=group, message="Group created successfully")


@router.delete("", response_model=SuccessResponse)
async def delete_group(
    id: Annotated[UUID, Query()],
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> SuccessResponse:
    """Delete a group as its owner or an admin."""
    await services.groups.delete_group(db_session, account, id)
    return SuccessResponse(message="Group deleted successfully")


@router.post("/join", response_model=GroupResponse)
async def join_group(
    payload: GroupJoinRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> GroupResponse:
    """Join a group."""
    group = await services.groups.join_group(db_session, account, payload.group_id)
    return GroupResponse(group=group, message="Joined group successfully")


@router.delete("/join", response_model=SuccessResponse)
async def leave_group(
    group_id: Annotated[UUID, Query(alias="groupId")],
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> SuccessResponse:
    """Leave a group."""
    await services.groups.leave_group(db_session, account, group_id)
    return SuccessResponse(message="Left group successfully")


@router.get("/invite", response_model=list[InvitationOut])
async def list_invitations(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> list[InvitationOut]:
    """List the caller's pending invitations."""
    invitations = await services.groups.list_invitations(db_session, account)
    return [InvitationOut.from_invitation(item) for item in invitations]


@router.post("/invite", response_model=InvitationResponse, status_code=201)
async def invite(
    payload: GroupInviteRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> InvitationResponse:
    """Invite another account to a group."""
    invitation = await services.groups.invite(
        db_session, account, payload.group_id, payload.invitee_id
    )
    return InvitationResponse(
        invitation=InvitationOut.from_invitation(invitation),
        message="Invitation sent successfully",
    )


@router.put("/invite", response_model=InvitationResponse)
async def respond_to_invitation(
    payload: InvitationRespondRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> InvitationResponse:
    """Accept or decline an invitation."""
    invitation = await services.groups.respond_to_invitation(
        db_session, account, payload.invitation_id, payload.action
    )
    return InvitationResponse(
        invitation=InvitationOut.from_invitation(invitation),
        message=f"Invitation {invitation.status}",
    )


@router.get("/members", response_model=GroupMemberListResponse)
async def list_members(
    group_id: Annotated[UUID, Query(alias="groupId")],
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> GroupMemberListResponse:
    """List the members of a group."""
    members = await services.groups.list_members(db_session, account, group_id)
    return GroupMemberListResponse(members=members)


@router.get("/chat", response_model=GroupMessageListResponse)
async def list_group_messages(
    group_id: Annotated[UUID, Query(alias="groupId")],
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> GroupMessageListResponse:
    """List a group's chat messages, newest first."""
    messages = await services.chat.list_messages(
        db_session, account, group_id, limit=limit, offset=offset
    )
    return GroupMessageListResponse(messages=messages)


@router.post("/chat", response_model=GroupMessageSentResponse, status_code=201)
async def send_group_message(
    payload: GroupMessageCreateRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> GroupMessageSentResponse:
    """Post a chat message to a group."""
    chat_message = await services.chat.send_message(
        db_session,
        account,
        payload.group_id,
        content=payload.content,
        message_type=payload.message_type,
        attachment_url=payload.attachment_url,
    )
    return GroupMessageSentResponse(
        message="Message sent successfully",
        message_id=chat_message.id,
        chat_message=chat_message,
    )


@router.delete("/chat", response_model=SuccessResponse)
async def delete_group_message(
    message_id: Annotated[UUID, Query(alias="messageId")],
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> SuccessResponse:
    """Hide a chat message as its sender or the group owner."""
    await services.chat.delete_message(db_session, account, message_id)
    return SuccessResponse(message="Message deleted successfully")
