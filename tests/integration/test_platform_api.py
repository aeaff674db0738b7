"""Integration tests for health probes, uploads, correlation ids, and rate limiting."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from domugrauds.config import RateLimitSettings
from domugrauds.dependencies import build_services
from domugrauds.main import create_app
from domugrauds.routers.health import check_database_ready, check_redis_ready


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class UnavailableRedis:
    """Redis double whose every command fails like a dropped connection."""

    async def zremrangebyscore(self, *args, **kwargs):
        raise RedisConnectionError("redis down")

    async def ping(self) -> bool:
        raise RedisConnectionError("redis down")

    async def aclose(self) -> None:
        return None


@pytest.mark.asyncio
async def test_liveness_and_readiness(api_client) -> None:
    """Both probes succeed against a healthy database."""
    async with api_client() as client:
        live = await client.get("/health/live")
        ready = await client.get("/health/ready")

    assert live.json() == {"status": "live"}
    assert ready.status_code == 200
    assert ready.json() == {"status": "ready"}


@pytest.mark.asyncio
@pytest.mark.parametrize("dependency", [check_database_ready, check_redis_ready])
async def test_readiness_fails_when_a_dependency_is_down(app, api_client, dependency) -> None:
    """Readiness returns 503 in the failure envelope."""

    async def not_ready() -> bool:
        return False

    app.dependency_overrides[dependency] = not_ready
    async with api_client() as client:
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {
        "success": False,
        "error": "Service not ready.",
        "code": "service_unavailable",
    }


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(api_client) -> None:
    """Framework 404s are normalized to the failure envelope."""
    async with api_client() as client:
        response = await client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_correlation_id_is_echoed_or_generated(api_client) -> None:
    """Supplied correlation ids are echoed; missing ones are minted."""
    async with api_client() as client:
        supplied = await client.get("/health/live", headers={"X-Correlation-ID": "abc-123"})
        fallback = await client.get("/health/live", headers={"X-Request-ID": "req-9"})
        minted = await client.get("/health/live")

    assert supplied.headers["X-Correlation-ID"] == "abc-123"
    assert fallback.headers["X-Correlation-ID"] == "req-9"
    assert len(minted.headers["X-Correlation-ID"]) == 36


@pytest.mark.asyncio
async def test_upload_stores_file_and_serves_it(api_client, settings, register_account) -> None:
    """Uploaded chat files land on disk under a generated name and are served back."""
    async with api_client() as client:
        _, token = await register_account(client, "alice", "a@x.com")
        response = await client.post(
            "/api/upload/chat",
            files={"file": ("photo.PNG", b"\x89PNG-bytes", "image/png")},
            headers=_auth(token),
        )
        body = response.json()
        served = await client.get(body["url"])

    assert response.status_code == 200
    assert body["filename"].startswith("chat_")
    assert body["filename"].endswith(".png")
    assert body["url"] == f"/uploads/chat/{body['filename']}"
    assert (settings.uploads.directory / "chat" / body["filename"]).read_bytes() == b"\x89PNG-bytes"
    assert served.status_code == 200
    assert served.content == b"\x89PNG-bytes"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("filename", "content", "message"),
    [
        ("virus.exe", b"MZ", "File type not allowed."),
        ("noextension", b"data", "File must have an extension."),
        ("empty.png", b"", "Uploaded file is empty."),
        ("notes.txt", b"plain", "Avatar must be an image."),
        ("page.html", b"<script>alert(1)</script>", "File type not allowed."),
        ("logo.svg", b"<svg onload='alert(1)'/>", "File type not allowed."),
    ],
)
async def test_upload_rejects_bad_files(
    api_client, register_account, filename, content, message
) -> None:
    """Avatar uploads must be non-empty images with an extension."""
    async with api_client() as client:
        _, token = await register_account(client, "alice", "a@x.com")
        response = await client.post(
            "/api/upload/avatar",
            files={"file": (filename, content, "application/octet-stream")},
            headers=_auth(token),
        )

    assert response.status_code == 400
    assert response.json()["error"] == message


@pytest.mark.asyncio
@pytest.mark.parametrize("filename", ["page.html", "page.HTM", "doc.xhtml", "logo.svg"])
async def test_chat_upload_refuses_markup(api_client, register_account, filename) -> None:
    """Chat attachments may not be markup rendered from the site's origin."""
    async with api_client() as client:
        _, token = await register_account(client, "alice", "a@x.com")
        response = await client.post(
            "/api/upload/chat",
            files={"file": (filename, b"<script>alert(1)</script>", "text/html")},
            headers=_auth(token),
        )

    assert response.status_code == 400
    assert response.json()["error"] == "File type not allowed."


@pytest.mark.asyncio
async def test_upload_requires_authentication(api_client) -> None:
    """Anonymous uploads are refused."""
    async with api_client() as client:
        response = await client.post(
            "/api/upload/chat", files={"file": ("a.png", b"data", "image/png")}
        )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_is_rate_limited(settings, fake_redis) -> None:
    """The credential endpoint answers 429 once the per-minute budget is spent."""
    limited_settings = settings.model_copy(
        update={"rate_limit": RateLimitSettings(enabled=True, login_requests_per_minute=2)}
    )
    services = build_services(limited_settings, redis_client=fake_redis, bcrypt_rounds=4)
    app = create_app(settings=limited_settings, services=services)
    body = {"email": "nobody@x.com", "password": "secret1"}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        statuses = [(await client.post("/api/auth/login", json=body)).status_code for _ in range(2)]
        limited = await client.post("/api/auth/login", json=body)
        other_path = await client.get("/health/live")
    await services.database.dispose()

    assert statuses == [401, 401]
    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == "60"
    assert limited.json() == {
        "success": False,
        "error": "Too many requests. Please try again later.",
        "code": "rate_limited",
    }
    assert other_path.status_code == 200


@pytest.mark.asyncio
async def test_rate_limiter_fails_open_without_redis(settings) -> None:
    """A Redis outage lets requests through instead of failing them."""
    limited_settings = settings.model_copy(
        update={"rate_limit": RateLimitSettings(enabled=True, login_requests_per_minute=1)}
    )
    services = build_services(
        limited_settings, redis_client=UnavailableRedis(), bcrypt_rounds=4  # type: ignore[arg-type]
    )
    app = create_app(settings=limited_settings, services=services)
    body = {"email": "nobody@x.com", "password": "secret1"}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        responses = [await client.post("/api/auth/login", json=body) for _ in range(3)]
        ready = await client.get("/health/ready")
    await services.database.dispose()

    assert [response.status_code for response in responses] == [401, 401, 401]
    assert ready.status_code == 503
