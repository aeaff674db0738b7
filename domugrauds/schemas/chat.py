"""Group chat request/response schemas."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import Field

from domugrauds.schemas.common import CamelModel, UTCDateTime

MessageType = Literal["text", "image", "file"]


class GroupMessageCreateRequest(CamelModel):
    """New chat message payload."""

    group_id: UUID
    content: str
    message_type: MessageType = "text"
    attachment_url: str | None = Field(default=None, max_length=500)


class GroupMessageOut(CamelModel):
    """Chat message with its sender summary."""

    id: UUID
    group_id: UUID
    sender_id: UUID
    sender_username: str
    sender_display_name: str
    sender_avatar: str | None = None
    content: str
    message_type: str
    attachment_url: str | None = None
    created_at: UTCDateTime
    updated_at: UTCDateTime


class GroupMessageListResponse(CamelModel):
    """Chat history envelope, newest first."""

    success: Literal[True] = True
    messages: list[GroupMessageOut]


class GroupMessageSentResponse(CamelModel):
    """Acknowledgement for a sent chat message."""

    success: Literal[True] = True
    message: str
    message_id: UUID
    chat_message: GroupMessageOut
