"""Profile, search, and follow routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query
from sqlalchemy.ext.asyncio import AsyncSession

from domugrauds.dependencies import CurrentAccount, DbSessionDep, Services, ServicesDep
from domugrauds.models.account import Account
from domugrauds.schemas.account import (
    AccountListResponse,
    AccountOut,
    AccountResponse,
    FollowListResponse,
    FollowRequest,
    FollowResponse,
    ProfileUpdateRequest,
)

router = APIRouter(prefix="/api/users", tags=["users"])


async def _account_view(
    services: Services, db_session: AsyncSession, account: Account
) -> AccountOut:
    following, followers = await services.accounts.get_relations(db_session, account.id)
    return AccountOut.from_account(account, following, followers)


@router.get("", response_model=AccountResponse)
async def get_profile(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    id: Annotated[UUID | None, Query()] = None,
) -> AccountResponse:
    """Return a profile by id, defaulting to the caller."""
    target = account if id is None else await services.accounts.require_account(db_session, id)
    return AccountResponse(user=await _account_view(services, db_session, target))


@router.put("", response_model=AccountResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> AccountResponse:
    """Update the caller's own profile."""
    updated = await services.accounts.update_profile(
        db_session,
        account,
        username=payload.username,
        display_name=payload.display_name,
        bio=payload.bio,
        avatar=payload.avatar,
    )
    return AccountResponse(
        user=await _account_view(services, db_session, updated),
        message="Profile updated successfully",
    )


@router.get("/search", response_model=AccountListResponse)
async def search_users(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    q: Annotated[str, Query(max_length=100)] = "",
) -> AccountListResponse:
    """Search accounts by username or display name."""
    accounts = await services.accounts.search_accounts(db_session, q)
    return AccountListResponse(users=[AccountOut.from_account(item) for item in accounts])


@router.post("/follow", response_model=FollowResponse)
async def follow(
    payload: FollowRequest,
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> FollowResponse:
    """Follow or unfollow another account; repeating an action is a no-op."""
    account_id = account.id
    if payload.action == "follow":
        await services.follows.follow(db_session, account, payload.user_id)
        message = "User followed successfully"
    else:
        await services.follows.unfollow(db_session, account, payload.user_id)
        message = "User unfollowed successfully"
    current = await services.accounts.require_account(db_session, account_id)
    target = await services.accounts.require_account(db_session, payload.user_id)
    return FollowResponse(
        current_user=await _account_view(services, db_session, current),
        target_user=await _account_view(services, db_session, target),
        message=message,
    )


@router.get("/followers", response_model=FollowListResponse)
async def followers(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> FollowListResponse:
    """List the followers of an account, defaulting to the caller."""
    target_id = user_id or account.id
    await services.accounts.require_account(db_session, target_id)
    accounts = await services.follows.list_followers(db_session, target_id)
    return FollowListResponse(users=[AccountOut.from_account(item) for item in accounts])


@router.get("/following", response_model=FollowListResponse)
async def following(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    user_id: Annotated[UUID | None, Query(alias="userId")] = None,
) -> FollowListResponse:
    """List the accounts followed by an account, defaulting to the caller."""
    target_id = user_id or account.id
    await services.accounts.require_account(db_session, target_id)
    accounts = await services.follows.list_following(db_session, target_id)
    return FollowListResponse(users=[AccountOut.from_account(item) for item in accounts])
