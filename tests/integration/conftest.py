"""Integration fixtures: a full application on a temporary SQLite database."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine

from domugrauds.config import (
    DatabaseSettings,
    JWTSettings,
    RateLimitSettings,
    Settings,
    UploadSettings,
)
from domugrauds.db.base import Base, import_model_modules
from domugrauds.dependencies import Services, build_services
from domugrauds.main import create_app


class FakeRedis:
    """In-memory stand-in for the Redis commands the app issues."""

    def __init__(self) -> None:
        self.sorted_sets: dict[str, dict[str, int]] = {}
        self.closed = False

    async def zremrangebyscore(self, key: str, min: str | int, max: int) -> int:
        bucket = self.sorted_sets.setdefault(key, {})
        stale = [member for member, score in bucket.items() if score <= max]
        for member in stale:
            del bucket[member]
        return len(stale)

    async def zcard(self, key: str) -> int:
        return len(self.sorted_sets.get(key, {}))

    async def zadd(self, key: str, mapping: dict[str, int]) -> int:
        self.sorted_sets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return True

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Create the schema in a fresh SQLite file and return its async URL."""
    path = tmp_path / "domugrauds.db"
    import_model_modules()
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def settings(rsa_keypair: tuple[str, str], database_url: str, tmp_path: Path) -> Settings:
    """Build isolated settings for one test."""
    private_pem, public_pem = rsa_keypair
    return Settings(
        jwt=JWTSettings(private_key_pem=private_pem, public_key_pem=public_pem),
        database=DatabaseSettings(url=database_url),
        rate_limit=RateLimitSettings(enabled=False),
        uploads=UploadSettings(directory=tmp_path / "uploads"),
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Provide an in-memory Redis double."""
    return FakeRedis()


@pytest.fixture
def services(settings: Settings, fake_redis: FakeRedis) -> Services:
    """Wire services with cheap password hashing."""
    return build_services(settings, redis_client=fake_redis, bcrypt_rounds=4)  # type: ignore[arg-type]


@pytest.fixture
def app(settings: Settings, services: Services) -> FastAPI:
    """Build the application under test."""
    return create_app(settings=settings, services=services)


@pytest.fixture
def api_client(
    app: FastAPI, services: Services
) -> Callable[[], AbstractAsyncContextManager[AsyncClient]]:
    """Return a factory opening an HTTP client bound to the app."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[AsyncClient]:
        try:
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://testserver"
            ) as client:
                yield client
        finally:
            await services.database.dispose()

    return _open


async def _register(
    client: AsyncClient,
    username: str,
    email: str,
    password: str = "secret1",
    display_name: str | None = None,
) -> tuple[dict[str, Any], str]:
    """Register an account and return its payload and session token."""
    response = await client.post(
        "/api/auth/register",
        json={
            "username": username,
            "displayName": display_name or username.title(),
            "email": email,
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    token = session_cookie(response)
    client.cookies.clear()
    return response.json()["user"], token


def session_cookie(response: Any) -> str:
    """Extract the auth-token value from a response's Set-Cookie headers."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() == "auth-token":
            return rest.split(";", 1)[0]
    raise AssertionError("response did not set the auth-token cookie")


@pytest.fixture
def register_account() -> Callable[..., Any]:
    """Provide the register-and-capture-token helper."""
    return _register


@pytest.fixture
def cookie_of() -> Callable[[Any], str]:
    """Provide the Set-Cookie session token extractor."""
    return session_cookie
