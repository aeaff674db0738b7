"""Administrative account management routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from domugrauds.dependencies import DbSessionDep, ServicesDep, require_role
from domugrauds.models.account import Account
from domugrauds.schemas.account import AccountListResponse, AccountOut
from domugrauds.schemas.common import SuccessResponse

router = APIRouter(prefix="/api/admin/users", tags=["admin"])
AdminAccount = Annotated[Account, Depends(require_role("admin"))]


@router.get("", response_model=AccountListResponse)
async def list_users(
    admin: AdminAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
    q: Annotated[str | None, Query(max_length=100)] = None,
) -> AccountListResponse:
    """List accounts, optionally filtered by username, display name, or email."""
    accounts = await services.accounts.list_accounts(db_session, query=q)
    return AccountListResponse(users=[AccountOut.from_account(item) for item in accounts])


@router.delete("", response_model=SuccessResponse)
async def delete_user(
    id: Annotated[UUID, Query()],
    admin: AdminAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> SuccessResponse:
    """Delete a member account; admins and the caller are protected."""
    await services.accounts.delete_account(db_session, admin, id)
    services.push_hub.unbind_account(id)
    return SuccessResponse(message="User deleted successfully")
