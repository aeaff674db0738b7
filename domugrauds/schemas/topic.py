"""Daily topic request/response schemas."""

from __future__ import annotations

from datetime import date
from typing import Literal
from uuid import UUID

from pydantic import Field

from domugrauds.models.topic import DailyTopic
from domugrauds.schemas.common import CamelModel, UTCDateTime


class TopicCreateRequest(CamelModel):
    """New daily topic payload."""

    title: str = Field(max_length=200)
    description: str = ""
    is_active: bool = False
    scheduled_date: date | None = None


class TopicUpdateRequest(TopicCreateRequest):
    """Full replacement of an existing topic."""

    id: UUID


class TopicOut(CamelModel):
    """Daily topic view."""

    id: UUID
    title: str
    description: str
    is_active: bool
    scheduled_date: date | None = None
    created_by: UUID | None = None
    created_at: UTCDateTime

    @classmethod
    def from_topic(cls, topic: DailyTopic) -> TopicOut:
        """Build the wire view of a topic row."""
        return cls(
            id=topic.id,
            title=topic.title,
            description=topic.description,
            is_active=topic.is_active,
            scheduled_date=topic.scheduled_date,
            created_by=topic.created_by,
            created_at=topic.created_at,
        )


class TopicResponse(CamelModel):
    """Single-topic envelope; `topic` is null when nothing is scheduled or active."""

    success: Literal[True] = True
    topic: TopicOut | None
    message: str | None = None


class TopicListResponse(CamelModel):
    """Topic listing envelope."""

    success: Literal[True] = True
    topics: list[TopicOut]
