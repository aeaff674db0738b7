"""Unit tests for the SDK HTTP client."""

from __future__ import annotations

import json

import httpx
import pytest

from domugrauds_sdk.client import DomuGraudsClient
from domugrauds_sdk.exceptions import APIResponseError, APIUnavailableError

BASE_URL = "http://api.local"
ACCOUNT = {"id": "acct-1", "username": "alice", "displayName": "Alice", "email": "a@x.com"}


def _login_response() -> httpx.Response:
    return httpx.Response(
        status_code=200,
        json={"success": True, "user": ACCOUNT, "message": "Login successful"},
        headers={"set-cookie": "auth-token=session-token-1; Path=/; HttpOnly; SameSite=lax"},
    )


@pytest.mark.asyncio
async def test_login_captures_session_token_and_replays_it_as_bearer() -> None:
    """The auth cookie is kept and sent as a bearer header afterwards."""
    seen_authorization: list[str | None] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/auth/login":
            return _login_response()
        seen_authorization.append(request.headers.get("authorization"))
        return httpx.Response(status_code=200, json={"success": True, "user": ACCOUNT})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, http_client=http_client)
        account = await client.login("a@x.com", "secret1")
        me = await client.me()

    assert account["username"] == "alice"
    assert client.token == "session-token-1"
    assert me["id"] == "acct-1"
    assert seen_authorization == ["Bearer session-token-1"]


@pytest.mark.asyncio
async def test_login_without_cookie_is_a_response_error() -> None:
    """An auth response lacking the session cookie is rejected."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json={"success": True, "user": ACCOUNT})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, http_client=http_client)
        with pytest.raises(APIResponseError):
            await client.login("a@x.com", "secret1")

    assert client.token is None


@pytest.mark.asyncio
async def test_client_errors_carry_message_and_code() -> None:
    """4xx envelopes map to APIResponseError with the server's error and code."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code=401,
            json={
                "success": False,
                "error": "Invalid email or password.",
                "code": "invalid_credentials",
            },
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, http_client=http_client)
        with pytest.raises(APIResponseError) as exc_info:
            await client.login("a@x.com", "wrong")

    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "invalid_credentials"
    assert exc_info.value.detail == "Invalid email or password."


@pytest.mark.asyncio
async def test_server_errors_map_to_unavailable() -> None:
    """5xx responses raise APIUnavailableError."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=503, json={"success": False})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, token="t", http_client=http_client)
        with pytest.raises(APIUnavailableError):
            await client.list_notifications()


@pytest.mark.asyncio
async def test_network_errors_map_to_unavailable() -> None:
    """Transport failures raise APIUnavailableError."""

    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, token="t", http_client=http_client)
        with pytest.raises(APIUnavailableError):
            await client.list_threads()


@pytest.mark.asyncio
async def test_logout_drops_local_session_even_on_failure() -> None:
    """The token is forgotten even when the logout call fails."""

    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, token="t", http_client=http_client)
        with pytest.raises(APIUnavailableError):
            await client.logout()

    assert client.token is None
    assert client.account is None


@pytest.mark.asyncio
async def test_requests_use_wire_field_names() -> None:
    """Reaction, listing, and read-flag calls send camelCase fields."""
    captured: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if request.url.path == "/api/threads" and request.method == "PUT":
            return httpx.Response(status_code=200, json={"success": True, "thread": {"id": "t1"}})
        if request.url.path == "/api/notifications" and request.method == "GET":
            return httpx.Response(
                status_code=200,
                json={"success": True, "notifications": [], "unreadCount": 0},
            )
        return httpx.Response(status_code=200, json={"success": True, "updated": 4})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, token="t", http_client=http_client)
        thread = await client.react("t1", "like")
        notifications = await client.list_notifications(limit=5)
        updated = await client.mark_all_notifications_read()

    assert thread == {"id": "t1"}
    assert notifications == []
    assert updated == 4
    assert json.loads(captured[0].read()) == {"threadId": "t1", "action": "like"}
    assert captured[1].url.params["limit"] == "5"
    assert json.loads(captured[2].read()) == {"all": True}


@pytest.mark.asyncio
async def test_missing_payload_key_is_a_response_error() -> None:
    """Unexpected response shapes raise APIResponseError."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json={"success": True})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, token="t", http_client=http_client)
        with pytest.raises(APIResponseError):
            await client.list_threads()


@pytest.mark.asyncio
async def test_group_chat_calls_use_camel_case_wire_names() -> None:
    """Chat helpers send camelCase bodies and unwrap the response envelopes."""
    captured: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if request.method == "POST":
            return httpx.Response(
                status_code=201,
                json={
                    "success": True,
                    "message": "Message sent successfully",
                    "messageId": "m1",
                    "chatMessage": {"id": "m1", "content": "hi"},
                },
            )
        if request.method == "GET":
            return httpx.Response(
                status_code=200, json={"success": True, "messages": [{"id": "m1"}]}
            )
        return httpx.Response(status_code=200, json={"success": True})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(base_url=BASE_URL, transport=transport) as http_client:
        client = DomuGraudsClient(base_url=BASE_URL, token="t", http_client=http_client)
        sent = await client.send_group_message("g1", "hi")
        history = await client.list_group_messages("g1", limit=10)
        await client.delete_group_message("m1")

    assert sent == {"id": "m1", "content": "hi"}
    assert history == [{"id": "m1"}]
    assert json.loads(captured[0].read()) == {
        "groupId": "g1",
        "content": "hi",
        "messageType": "text",
    }
    assert captured[1].url.params["groupId"] == "g1"
    assert captured[1].url.params["limit"] == "10"
    assert captured[2].method == "DELETE"
    assert captured[2].url.params["messageId"] == "m1"
