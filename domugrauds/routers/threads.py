"""Thread feed, posting, reaction, and deletion routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from domugrauds.dependencies import CurrentAccount, DbSessionDep, ServicesDep
from domugrauds.schemas.common import SuccessResponse
from domugrauds.schemas.thread import (
    ThreadCreateRequest,
    ThreadListResponse,
    ThreadReactionRequest,
    ThreadResponse,
)

router = APIRouter(prefix="/api/threads", tags=["threads"])


@router.get("", response_model=ThreadListResponse)
async def list_threads(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
    group_id: Annotated[UUID | None, Query(alias="groupId")] = None,
    parent_id: Annotated[UUID | None, Query(alias="parentId")] = None,
) -> ThreadListResponse:
    """List visible threads, optionally filtered by author, group, or parent."""
    threads = await services.threads.list_threads(
        db_session,
        account,
        limit=limit,
        offset=offset,
        author_id=user_id,
        group_id=group_id,
        parent_id=parent_id,
    )
    return ThreadListResponse(threads=threads)


@router.post("", response_model=ThreadResponse, status_code=201)
async def create_thread(
    payload: ThreadCreateRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> ThreadResponse:
    """Post a thread or a reply."""
    thread = await services.threads.create_thread(
        db_session,
        account,
        content=payload.content,
        visibility=payload.visibility,
        attachments=payload.attachments,
        parent_id=payload.parent_id,
        group_id=payload.group_id,
        topic_id=payload.topic_day_id,
    )
    return ThreadResponse(thread=thread, message="Thread created successfully")


@router.put("", response_model=ThreadResponse)
async def react_to_thread(
    payload: ThreadReactionRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> ThreadResponse:
    """Like, unlike, dislike, or undislike a thread."""
    thread = await services.threads.react(db_session, account, payload.thread_id, payload.action)
    return ThreadResponse(thread=thread)


@router.delete("", response_model=SuccessResponse)
async def delete_thread(
    id: Annotated[UUID, Query()],
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> SuccessResponse:
    """Delete a thread as its author or an admin."""
    await services.threads.delete_thread(db_session, account, id)
    return SuccessResponse(message="Thread deleted successfully")


@router.get("/search", response_model=ThreadListResponse)
async def search_threads(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    q: Annotated[str, Query(max_length=100)] = "",
) -> ThreadListResponse:
    """Search visible threads by content."""
    threads = await services.threads.search_threads(db_session, account, q)
    return ThreadListResponse(threads=threads)
