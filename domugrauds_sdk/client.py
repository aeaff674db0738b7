"""Async HTTP client for the DomuGrauds API."""

from __future__ import annotations

from typing import Any

import httpx

from domugrauds_sdk.exceptions import APIResponseError, APIUnavailableError
from domugrauds_sdk.types import Account, GroupMessage, Notification, ReactionAction, Thread

DEFAULT_TIMEOUT = httpx.Timeout(connect=2.0, read=5.0, write=5.0, pool=5.0)
SESSION_COOKIE = "auth-token"


class DomuGraudsClient:
    """Async client holding one signed-in session.

    The session token captured at login or registration is replayed as a
    bearer header, so the client works without a shared cookie jar.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: httpx.Timeout | float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create client with sane defaults and optional injected transport."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout or DEFAULT_TIMEOUT,
        )
        self._token = token
        self._account: Account | None = None

    @property
    def token(self) -> str | None:
        """Return the current session token, if signed in."""
        return self._token

    @property
    def account(self) -> Account | None:
        """Return the signed-in account payload, if known."""
        return self._account

    async def register(
        self,
        username: str,
        display_name: str,
        email: str,
        password: str,
        bio: str | None = None,
    ) -> Account:
        """Register a new account and keep its session."""
        response = await self._request(
            "POST",
            "/api/auth/register",
            json={
                "username": username,
                "displayName": display_name,
                "email": email,
                "password": password,
                "bio": bio,
            },
        )
        return self._start_session(response)

    async def login(self, email: str, password: str) -> Account:
        """Sign in with email and password."""
        response = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        return self._start_session(response)

    async def logout(self) -> None:
        """Sign out; the local session is dropped even if the call fails."""
        try:
            await self._request("POST", "/api/auth/logout")
        finally:
            self._token = None
            self._account = None

    async def me(self) -> Account:
        """Fetch the signed-in account."""
        payload = self._json_object(await self._request("GET", "/api/auth/me"))
        self._account = self._expect_object(payload, "user")
        return self._account

    async def follow(self, user_id: str, action: str = "follow") -> dict[str, Any]:
        """Follow or unfollow another account."""
        response = await self._request(
            "POST", "/api/users/follow", json={"userId": user_id, "action": action}
        )
        return self._json_object(response)

    async def list_threads(
        self,
        limit: int = 20,
        offset: int = 0,
        user_id: str | None = None,
        group_id: str | None = None,
    ) -> list[Thread]:
        """List visible threads."""
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if user_id:
            params["userId"] = user_id
        if group_id:
            params["groupId"] = group_id
        payload = self._json_object(await self._request("GET", "/api/threads", params=params))
        return self._expect_list(payload, "threads")

    async def create_thread(
        self,
        content: str,
        visibility: str = "public",
        parent_id: str | None = None,
        group_id: str | None = None,
    ) -> Thread:
        """Post a thread or reply."""
        body: dict[str, Any] = {"content": content, "visibility": visibility}
        if parent_id:
            body["parentId"] = parent_id
        if group_id:
            body["groupId"] = group_id
        payload = self._json_object(await self._request("POST", "/api/threads", json=body))
        return self._expect_object(payload, "thread")

    async def react(self, thread_id: str, action: ReactionAction) -> Thread:
        """Like, unlike, dislike, or undislike a thread."""
        payload = self._json_object(
            await self._request(
                "PUT", "/api/threads", json={"threadId": thread_id, "action": action}
            )
        )
        return self._expect_object(payload, "thread")

    async def list_group_messages(
        self, group_id: str, limit: int = 50, offset: int = 0
    ) -> list[GroupMessage]:
        """Fetch a group's chat history, newest first."""
        payload = self._json_object(
            await self._request(
                "GET",
                "/api/groups/chat",
                params={"groupId": group_id, "limit": limit, "offset": offset},
            )
        )
        return self._expect_list(payload, "messages")

    async def send_group_message(
        self,
        group_id: str,
        content: str,
        message_type: str = "text",
        attachment_url: str | None = None,
    ) -> GroupMessage:
        """Post a chat message to a group."""
        body: dict[str, Any] = {
            "groupId": group_id,
            "content": content,
            "messageType": message_type,
        }
        if attachment_url:
            body["attachmentUrl"] = attachment_url
        payload = self._json_object(await self._request("POST", "/api/groups/chat", json=body))
        return self._expect_object(payload, "chatMessage")

    async def delete_group_message(self, message_id: str) -> None:
        """Hide a chat message."""
        await self._request("DELETE", "/api/groups/chat", params={"messageId": message_id})

    async def list_notifications(self, limit: int = 20, offset: int = 0) -> list[Notification]:
        """Fetch the caller's notifications, newest first."""
        payload = self._json_object(
            await self._request(
                "GET", "/api/notifications", params={"limit": limit, "offset": offset}
            )
        )
        return self._expect_list(payload, "notifications")

    async def mark_notification_read(self, notification_id: str) -> None:
        """Mark one notification as read."""
        await self._request("PUT", "/api/notifications", json={"notificationId": notification_id})

    async def mark_all_notifications_read(self) -> int:
        """Mark every notification as read and return how many changed."""
        payload = self._json_object(
            await self._request("PUT", "/api/notifications", json={"all": True})
        )
        return int(payload.get("updated", 0))

    async def aclose(self) -> None:
        """Close underlying HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> DomuGraudsClient:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        """Exit async context manager and close managed resources."""
        del exc_type, exc, tb
        await self.aclose()

    def _start_session(self, response: httpx.Response) -> Account:
        """Capture the session cookie and account from an auth response."""
        token = response.cookies.get(SESSION_COOKIE)
        if not token:
            raise APIResponseError(
                "Auth response did not include a session cookie.", response.status_code
            )
        self._token = token
        self._account = self._expect_object(self._json_object(response), "user")
        return self._account

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Execute request and normalize upstream failures."""
        headers = dict(kwargs.pop("headers", None) or {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.RequestError as exc:
            raise APIUnavailableError("DomuGrauds API unavailable.") from exc

        if response.status_code >= 500:
            raise APIUnavailableError("DomuGrauds API unavailable.")
        if response.status_code >= 400:
            detail = f"Request failed with status {response.status_code}."
            code = None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = str(body.get("error", detail))
                code = str(body["code"]) if body.get("code") is not None else None
            raise APIResponseError(detail, response.status_code, code)
        return response

    @staticmethod
    def _json_object(response: httpx.Response) -> dict[str, Any]:
        """Return response JSON as object."""
        try:
            payload = response.json()
        except ValueError as exc:
            raise APIResponseError("API returned invalid JSON.", response.status_code) from exc
        if not isinstance(payload, dict):
            raise APIResponseError("API returned invalid JSON object.", response.status_code)
        return payload

    @staticmethod
    def _expect_object(payload: dict[str, Any], key: str) -> Any:
        value = payload.get(key)
        if not isinstance(value, dict):
            raise APIResponseError(f"Response is missing `{key}`.")
        return value

    @staticmethod
    def _expect_list(payload: dict[str, Any], key: str) -> Any:
        value = payload.get(key)
        if not isinstance(value, list):
            raise APIResponseError(f"Response is missing `{key}`.")
        return value
