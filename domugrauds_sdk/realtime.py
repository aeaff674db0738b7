"""Reconnecting WebSocket channel for server push events."""

from __future__ import annotations

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog
import websockets
from websockets.exceptions import WebSocketException

from domugrauds_sdk.types import PushMessage

logger = structlog.get_logger(__name__)

DEFAULT_RECONNECT_DELAY_SECONDS = 3.0

MessageHandler = Callable[[PushMessage], Awaitable[None] | None]
Connector = Callable[[str], Any]


class ChannelState(str, Enum):
    """Lifecycle state of a realtime channel."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class RealtimeChannel:
    """One push socket with a fixed-delay reconnect and account binding.

    Connection failures and handler errors are logged, never raised to the
    consumer. Messages that arrive while disconnected are lost; pair the
    channel with a `NotificationPoller` for at-least-once delivery.
    """

    def __init__(
        self,
        url: str,
        account_id: str | None = None,
        token: str | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY_SECONDS,
        connector: Connector | None = None,
    ) -> None:
        self._url = url
        self._account_id = account_id
        self._token = token
        self._reconnect_delay = reconnect_delay
        self._connector = connector or websockets.connect
        self._state = ChannelState.DISCONNECTED
        self._handlers: list[MessageHandler] = []
        self._socket: Any = None
        self._session_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._stopped = True

    @property
    def state(self) -> ChannelState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def account_id(self) -> str | None:
        """Return the account the channel authenticates as."""
        return self._account_id

    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        """Register a message handler and return a function that removes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def start(self) -> None:
        """Open the socket in the background; a no-op when already running."""
        if not self._stopped:
            return
        self._stopped = False
        self._open()

    async def stop(self) -> None:
        """Cancel any pending reconnect and close the socket."""
        self._stopped = True
        tasks = [task for task in (self._reconnect_task, self._session_task) if task is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None
        self._session_task = None
        self._socket = None
        self._state = ChannelState.DISCONNECTED

    async def set_account(self, account_id: str | None, token: str | None = None) -> None:
        """Change the bound account, re-authenticating when already connected.

        Clearing the account while connected tells the server to unbind the
        socket so events for the previous account stop arriving.
        """
        changed = account_id != self._account_id or token != self._token
        self._account_id = account_id
        self._token = token
        if changed and self._state is ChannelState.CONNECTED:
            await self._authenticate()

    async def send(self, event_type: str, data: dict[str, Any]) -> bool:
        """Send a client event; returns False when it could not be sent."""
        if self._socket is None or self._state is not ChannelState.CONNECTED:
            logger.warning("realtime_send_skipped", event_type=event_type, state=self._state.value)
            return False
        try:
            await self._socket.send(json.dumps({"type": event_type, "data": data}))
        except (OSError, WebSocketException) as exc:
            logger.warning("realtime_send_failed", event_type=event_type, error=str(exc))
            return False
        return True

    async def join_group(self, group_id: str) -> bool:
        """Subscribe to a group's thread and chat events."""
        return await self.send("join_group", {"groupId": group_id})

    async def leave_group(self, group_id: str) -> bool:
        """Unsubscribe from a group's thread and chat events."""
        return await self.send("leave_group", {"groupId": group_id})

    def _open(self) -> None:
        self._state = ChannelState.CONNECTING
        self._session_task = asyncio.get_running_loop().create_task(self._run_session())

    async def _run_session(self) -> None:
        """Hold one connection open and dispatch its messages until it ends."""
        try:
            async with self._connector(self._url) as socket:
                self._socket = socket
                self._state = ChannelState.CONNECTED
                logger.info("realtime_connected", url=self._url)
                if self._account_id:
                    await self._authenticate()
                async for raw_message in socket:
                    await self._dispatch(raw_message)
            logger.info("realtime_disconnected", url=self._url)
        except (OSError, WebSocketException) as exc:
            logger.warning("realtime_connection_failed", url=self._url, error=str(exc))
        finally:
            self._socket = None
            self._state = ChannelState.DISCONNECTED
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        """Arm the single reconnect timer unless stopped or already armed."""
        if self._stopped:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_later())

    async def _reconnect_later(self) -> None:
        await asyncio.sleep(self._reconnect_delay)
        if self._stopped:
            return
        logger.info("realtime_reconnecting", url=self._url)
        self._open()

    async def _authenticate(self) -> None:
        data: dict[str, Any] = {"userId": self._account_id}
        if self._token:
            data["token"] = self._token
        await self.send("authenticate", data)

    async def _dispatch(self, raw_message: str | bytes) -> None:
        """Decode one push event and hand it to every subscriber in order."""
        try:
            message = json.loads(raw_message)
        except ValueError:
            logger.warning("realtime_message_invalid")
            return
        if not isinstance(message, dict) or "type" not in message:
            logger.warning("realtime_message_invalid")
            return
        if message["type"] == "error":
            logger.warning("realtime_server_error", data=message.get("data"))
        for handler in list(self._handlers):
            try:
                result = handler(message)  # type: ignore[arg-type]
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("realtime_handler_failed", event_type=message["type"])
