"""Daily topic routes: public current topic and admin management."""

from __future__ import annotations

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from domugrauds.dependencies import DbSessionDep, ServicesDep, require_role
from domugrauds.models.account import Account
from domugrauds.schemas.common import SuccessResponse
from domugrauds.schemas.topic import (
    TopicCreateRequest,
    TopicListResponse,
    TopicOut,
    TopicResponse,
    TopicUpdateRequest,
)

router = APIRouter(tags=["topics"])
AdminAccount = Annotated[Account, Depends(require_role("admin"))]


@router.get("/api/daily-topic", response_model=TopicResponse)
async def current_topic(
    services: ServicesDep,
    db_session: DbSessionDep,
    preview_date: Annotated[date | None, Query(alias="previewDate")] = None,
) -> TopicResponse:
    """Return today's scheduled topic, else the active one, else null."""
    topic = await services.topics.get_current_topic(db_session, on_date=preview_date)
    return TopicResponse(topic=TopicOut.from_topic(topic) if topic is not None else None)


@router.get("/api/admin/daily-topics", response_model=TopicListResponse)
async def list_topics(
    admin: AdminAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> TopicListResponse:
    """List every topic."""
    topics = await services.topics.list_topics(db_session)
    return TopicListResponse(topics=[TopicOut.from_topic(topic) for topic in topics])


@router.post("/api/admin/daily-topics", response_model=TopicResponse, status_code=201)
async def create_topic(
    payload: TopicCreateRequest,
    admin: AdminAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> TopicResponse:
    """Create a topic; activating it deactivates every other topic."""
    topic = await services.topics.create_topic(
        db_session,
        admin,
        title=payload.title,
        description=payload.description,
        is_active=payload.is_active,
        scheduled_date=payload.scheduled_date,
    )
    return TopicResponse(topic=TopicOut.from_topic(topic), message="Topic created successfully")


@router.put("/api/admin/daily-topics", response_model=TopicResponse)
async def update_topic(
    payload: TopicUpdateRequest,
    admin: AdminAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> TopicResponse:
    """Replace a topic's fields."""
    topic = await services.topics.update_topic(
        db_session,
        payload.id,
        title=payload.title,
        description=payload.description,
        is_active=payload.is_active,
        scheduled_date=payload.scheduled_date,
    )
    return TopicResponse(topic=TopicOut.from_topic(topic), message="Topic updated successfully")


@router.delete("/api/admin/daily-topics", response_model=SuccessResponse)
async def delete_topic(
    id: Annotated[UUID, Query()],
    admin: AdminAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> SuccessResponse:
    """Delete a topic."""
    await services.topics.delete_topic(db_session, id)
    return SuccessResponse(message="Topic deleted successfully")
