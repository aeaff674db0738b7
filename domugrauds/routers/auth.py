"""Authentication routes: register, login, logout, and current account."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from domugrauds.config import CookieSettings
from domugrauds.core.client_ip import extract_client_ip
from domugrauds.dependencies import (
    CurrentAccount,
    DbSessionDep,
    ServicesDep,
    get_session_token,
)
from domugrauds.schemas.account import AccountOut, AccountResponse, LoginRequest, RegisterRequest
from domugrauds.schemas.common import SuccessResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_session_cookie(
    response: Response, cookie: CookieSettings, token: str, max_age: int, secure: bool
) -> None:
    """Attach the session cookie; its lifetime matches the token's."""
    response.set_cookie(
        key=cookie.name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=secure,
        samesite=cookie.samesite,
        path="/",
    )


def _clear_session_cookie(response: Response, cookie: CookieSettings, secure: bool) -> None:
    response.delete_cookie(
        key=cookie.name, path="/", httponly=True, secure=secure, samesite=cookie.samesite
    )


@router.post("/register", response_model=AccountResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> AccountResponse:
    """Create a member account and sign it in."""
    account = await services.accounts.register(
        db_session,
        username=payload.username,
        display_name=payload.display_name,
        email=payload.email,
        password=payload.password,
        bio=payload.bio,
        avatar=payload.avatar,
    )
    issued = await services.auth.start_session(
        db_session,
        account,
        ip_address=extract_client_ip(request),
        user_agent=request.headers.get("user-agent", "unknown"),
    )
    _set_session_cookie(
        response,
        services.settings.cookie,
        issued.token,
        services.auth.session_ttl_seconds,
        secure=services.settings.app.environment == "production",
    )
    return AccountResponse(
        user=AccountOut.from_account(account),
        message="User registered successfully",
    )


@router.post("/login", response_model=AccountResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> AccountResponse:
    """Authenticate email/password credentials and start a session."""
    issued = await services.auth.login(
        db_session,
        email=payload.email,
        password=payload.password,
        ip_address=extract_client_ip(request),
        user_agent=request.headers.get("user-agent", "unknown"),
    )
    _set_session_cookie(
        response,
        services.settings.cookie,
        issued.token,
        services.auth.session_ttl_seconds,
        secure=services.settings.app.environment == "production",
    )
    following, followers = await services.accounts.get_relations(db_session, issued.account.id)
    return AccountResponse(
        user=AccountOut.from_account(issued.account, following, followers),
        message="Login successful",
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    response: Response,
    services: ServicesDep,
    db_session: DbSessionDep,
    token: Annotated[str | None, Depends(get_session_token)],
) -> SuccessResponse:
    """Revoke the current session; always succeeds and clears the cookie."""
    await services.auth.logout(db_session, token)
    if token:
        services.push_hub.unbind_session(services.sessions.hash_token(token))
    _clear_session_cookie(
        response,
        services.settings.cookie,
        secure=services.settings.app.environment == "production",
    )
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=AccountResponse)
async def me(
    account: CurrentAccount,
    services: ServicesDep,
    db_session: DbSessionDep,
) -> AccountResponse:
    """Return the authenticated account with its follow sets."""
    following, followers = await services.accounts.get_relations(db_session, account.id)
    return AccountResponse(user=AccountOut.from_account(account, following, followers))
