"""SDK data contract types."""

from __future__ import annotations

from typing import Any, Literal, TypedDict

PushEventType = Literal[
    "connection",
    "thread_created",
    "thread_updated",
    "thread_deleted",
    "notification_received",
    "follow_updated",
    "group_message_created",
    "group_message_deleted",
    "error",
]

ReactionAction = Literal["like", "unlike", "dislike", "undislike"]


class Account(TypedDict, total=False):
    """Public account payload."""

    id: str
    username: str
    displayName: str
    email: str
    avatar: str | None
    bio: str | None
    role: Literal["member", "admin"]
    following: list[str]
    followers: list[str]
    createdAt: str


class Notification(TypedDict):
    """Notification payload delivered by polling and by the push channel."""

    id: str
    userId: str
    type: str
    message: str
    relatedId: str | None
    read: bool
    createdAt: str


class Thread(TypedDict, total=False):
    """Thread payload."""

    id: str
    authorId: str
    authorUsername: str
    authorDisplayName: str
    content: str
    visibility: str
    attachments: list[str]
    parentId: str | None
    groupId: str | None
    likes: list[str]
    dislikes: list[str]
    replyCount: int
    createdAt: str
    updatedAt: str


class GroupMessage(TypedDict, total=False):
    """Group chat message payload."""

    id: str
    groupId: str
    senderId: str
    senderUsername: str
    senderDisplayName: str
    senderAvatar: str | None
    content: str
    messageType: Literal["text", "image", "file"]
    attachmentUrl: str | None
    createdAt: str
    updatedAt: str


class PushMessage(TypedDict):
    """Envelope of every server-to-client push event."""

    type: PushEventType
    data: Any
