"""Notification feed merging pushed and polled copies, plus the polling loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

import structlog

from domugrauds_sdk.client import DomuGraudsClient
from domugrauds_sdk.exceptions import SDKError
from domugrauds_sdk.realtime import RealtimeChannel
from domugrauds_sdk.types import Notification, PushMessage

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0
MIN_POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_INTERVAL_SECONDS = 5.0


class NotificationFeed:
    """Notifications keyed by id, so duplicates from push and poll collapse.

    A later copy of a known notification replaces the stored one, which is
    how a read flag set elsewhere propagates.
    """

    def __init__(self) -> None:
        self._items: dict[str, Notification] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._items

    @property
    def items(self) -> list[Notification]:
        """Return notifications newest first."""
        return sorted(self._items.values(), key=lambda item: item["createdAt"], reverse=True)

    @property
    def unread_count(self) -> int:
        """Return how many stored notifications are unread."""
        return sum(1 for item in self._items.values() if not item["read"])

    def merge(self, notifications: Iterable[Notification]) -> int:
        """Merge a batch by id; returns how many entries were added or changed."""
        changed = 0
        for notification in notifications:
            notification_id = str(notification["id"])
            if self._items.get(notification_id) != notification:
                self._items[notification_id] = notification
                changed += 1
        return changed

    def mark_read(self, notification_id: str) -> None:
        """Flip the local read flag ahead of the next poll."""
        existing = self._items.get(notification_id)
        if existing is not None:
            self._items[notification_id] = {**existing, "read": True}

    def handle_push(self, message: PushMessage) -> None:
        """Channel handler merging `notification_received` events."""
        if message["type"] == "notification_received" and isinstance(message["data"], dict):
            self.merge([message["data"]])

    def attach(self, channel: RealtimeChannel) -> Callable[[], None]:
        """Feed pushed notifications from a channel; returns the unsubscribe function."""
        return channel.subscribe(self.handle_push)


class NotificationPoller:
    """Periodically re-fetches notifications into a feed, whatever the socket state."""

    def __init__(
        self,
        client: DomuGraudsClient,
        feed: NotificationFeed,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        limit: int = 20,
    ) -> None:
        if not MIN_POLL_INTERVAL_SECONDS <= interval <= MAX_POLL_INTERVAL_SECONDS:
            raise ValueError(
                f"interval must be between {MIN_POLL_INTERVAL_SECONDS} "
                f"and {MAX_POLL_INTERVAL_SECONDS} seconds"
            )
        self._client = client
        self._feed = feed
        self._interval = interval
        self._limit = limit
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return whether the polling task is active."""
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> bool:
        """Fetch one page and merge it; failures are logged and reported as False."""
        try:
            notifications = await self._client.list_notifications(limit=self._limit)
        except SDKError as exc:
            logger.warning("notification_poll_failed", error=str(exc))
            return False
        changed = self._feed.merge(notifications)
        logger.debug("notification_poll_completed", fetched=len(notifications), changed=changed)
        return True

    def start(self) -> None:
        """Start polling in the background; a no-op when already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval)
