"""Shared FastAPI dependency helpers and the per-application service container."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from redis import asyncio as redis_async
from redis.asyncio.client import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from domugrauds.config import Settings
from domugrauds.core.jwt import JWTService, build_jwt_service
from domugrauds.core.realtime import PushHub
from domugrauds.core.sessions import SessionService
from domugrauds.db.session import Database
from domugrauds.errors import UnauthorizedError
from domugrauds.models.account import Account
from domugrauds.services.account_service import AccountService
from domugrauds.services.auth_service import AuthService
from domugrauds.services.chat_service import ChatService
from domugrauds.services.follow_service import FollowService
from domugrauds.services.group_service import GroupService
from domugrauds.services.notification_service import NotificationService
from domugrauds.services.thread_service import ThreadService
from domugrauds.services.topic_service import TopicService
from domugrauds.services.upload_service import UploadService


@dataclass
class Services:
    """Long-lived collaborators owned by one application instance."""

    settings: Settings
    database: Database
    redis: Redis
    push_hub: PushHub
    jwt: JWTService
    sessions: SessionService
    accounts: AccountService
    auth: AuthService
    notifications: NotificationService
    follows: FollowService
    threads: ThreadService
    topics: TopicService
    groups: GroupService
    chat: ChatService
    uploads: UploadService


def build_services(
    settings: Settings,
    database: Database | None = None,
    redis_client: Redis | None = None,
    bcrypt_rounds: int = 12,
) -> Services:
    """Wire every service from settings; collaborators may be injected for tests."""
    database = database or Database(settings.database)
    redis_client = redis_client or redis_async.from_url(settings.redis.url, decode_responses=True)
    push_hub = PushHub()
    jwt_service = build_jwt_service(settings)
    session_service = SessionService(session_ttl_seconds=settings.jwt.session_token_ttl_seconds)
    account_service = AccountService(bcrypt_rounds=bcrypt_rounds)
    notification_service = NotificationService(push_hub)
    follow_service = FollowService(notification_service, push_hub)
    return Services(
        settings=settings,
        database=database,
        redis=redis_client,
        push_hub=push_hub,
        jwt=jwt_service,
        sessions=session_service,
        accounts=account_service,
        auth=AuthService(account_service, jwt_service, session_service),
        notifications=notification_service,
        follows=follow_service,
        threads=ThreadService(notification_service, push_hub),
        topics=TopicService(),
        groups=GroupService(notification_service, follow_service, push_hub),
        chat=ChatService(notification_service, push_hub),
        uploads=UploadService(settings.uploads),
    )


def get_services(connection: HTTPConnection) -> Services:
    """Return the service container of the application serving this request."""
    return connection.app.state.services


async def get_database_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Expose the request-scoped async database session dependency."""
    async for session in get_services(request).database.session():
        yield session


ServicesDep = Annotated[Services, Depends(get_services)]
DbSessionDep = Annotated[AsyncSession, Depends(get_database_session)]


def extract_session_token(connection: HTTPConnection, cookie_name: str) -> str | None:
    """Read the session token from the auth cookie, then the bearer header."""
    cookie_token = connection.cookies.get(cookie_name, "").strip()
    if cookie_token:
        return cookie_token
    authorization = connection.headers.get("authorization", "").strip()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def get_session_token(request: Request, services: ServicesDep) -> str | None:
    """Provide the raw session token attached to the request, if any."""
    return extract_session_token(request, services.settings.cookie.name)


async def get_optional_account(
    request: Request,
    services: ServicesDep,
    db_session: DbSessionDep,
    token: Annotated[str | None, Depends(get_session_token)],
) -> Account | None:
    """Resolve the calling account, or None for anonymous requests."""
    account = await services.auth.authenticate(db_session, token)
    request.state.account = account
    return account


async def get_current_account(
    account: Annotated[Account | None, Depends(get_optional_account)],
) -> Account:
    """Require an authenticated account."""
    if account is None:
        raise UnauthorizedError("Authentication required.")
    return account


CurrentAccount = Annotated[Account, Depends(get_current_account)]


def require_role(required_role: str) -> Callable[..., Awaitable[Account]]:
    """Build a dependency enforcing a minimum account role."""

    async def dependency(account: CurrentAccount) -> Account:
        return AuthService.authorize(account, required_role)

    return dependency
