"""Thread request/response schemas."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import Field

from domugrauds.schemas.common import CamelModel, UTCDateTime

Visibility = Literal["public", "followers", "group"]
ReactionAction = Literal["like", "unlike", "dislike", "undislike"]


class ThreadCreateRequest(CamelModel):
    """New thread or reply payload."""

    content: str
    visibility: Visibility = "public"
    attachments: list[str] = Field(default_factory=list, max_length=10)
    parent_id: UUID | None = None
    group_id: UUID | None = None
    topic_day_id: UUID | None = None


class ThreadReactionRequest(CamelModel):
    """Like/dislike toggle payload."""

    thread_id: UUID
    action: ReactionAction


class ThreadOut(CamelModel):
    """Thread with its author summary and reaction sets."""

    id: UUID
    author_id: UUID
    author_username: str
    author_display_name: str
    author_avatar: str | None = None
    content: str
    visibility: str
    attachments: list[str]
    parent_id: UUID | None = None
    group_id: UUID | None = None
    topic_id: UUID | None = None
    likes: list[str]
    dislikes: list[str]
    reply_count: int = 0
    created_at: UTCDateTime
    updated_at: UTCDateTime


class ThreadResponse(CamelModel):
    """Single-thread envelope."""

    success: Literal[True] = True
    thread: ThreadOut
    message: str | None = None


class ThreadListResponse(CamelModel):
    """Thread listing envelope."""

    success: Literal[True] = True
    threads: list[ThreadOut]
