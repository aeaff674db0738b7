"""In-process push hub that fans server events out to connected sockets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol
from uuid import UUID, uuid4

import structlog

logger = structlog.get_logger(__name__)

PushEventType = Literal[
    "connection",
    "thread_created",
    "thread_updated",
    "thread_deleted",
    "notification_received",
    "follow_updated",
    "group_message_created",
    "group_message_deleted",
    "error",
]


class PushSocket(Protocol):
    """Subset of the Starlette WebSocket API used for delivery."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...


@dataclass(eq=False)
class PushConnection:
    """One live socket and the identity/rooms it is bound to."""

    socket: PushSocket
    id: str = field(default_factory=lambda: str(uuid4()))
    account_id: str | None = None
    session_hash: str | None = None
    groups: set[str] = field(default_factory=set)


def build_envelope(event_type: PushEventType, data: Any) -> dict[str, Any]:
    """Build the wire envelope shared by every push event."""
    return {"type": event_type, "data": data}


class PushHub:
    """Registry of live connections with account and group targeting.

    Delivery is best-effort: a failed send drops the connection and is
    logged, never raised to the caller that triggered the event.
    """

    def __init__(self) -> None:
        self._connections: dict[str, PushConnection] = {}

    @property
    def connection_count(self) -> int:
        """Return the number of registered connections."""
        return len(self._connections)

    def register(self, socket: PushSocket) -> PushConnection:
        """Track a newly accepted socket."""
        connection = PushConnection(socket=socket)
        self._connections[connection.id] = connection
        logger.info("push_connection_opened", connection_id=connection.id)
        return connection

    def unregister(self, connection: PushConnection) -> None:
        """Forget a closed socket."""
        if self._connections.pop(connection.id, None) is not None:
            logger.info(
                "push_connection_closed",
                connection_id=connection.id,
                account_id=connection.account_id,
            )

    def bind_account(
        self,
        connection: PushConnection,
        account_id: UUID | str,
        session_hash: str | None = None,
    ) -> None:
        """Bind a connection to an account so targeted events reach it.

        Rebinding drops every group room; callers re-join the rooms the new
        account may read.
        """
        connection.groups.clear()
        connection.account_id = str(account_id)
        connection.session_hash = session_hash
        logger.info(
            "push_connection_authenticated",
            connection_id=connection.id,
            account_id=connection.account_id,
        )

    def unbind(self, connection: PushConnection) -> None:
        """Return a connection to the anonymous state, leaving every room."""
        if connection.account_id is not None:
            logger.info(
                "push_connection_unbound",
                connection_id=connection.id,
                account_id=connection.account_id,
            )
        connection.account_id = None
        connection.session_hash = None
        connection.groups.clear()

    def unbind_session(self, session_hash: str) -> int:
        """Unbind every connection authenticated with one session."""
        connections = [
            conn for conn in self._connections.values() if conn.session_hash == session_hash
        ]
        for connection in connections:
            self.unbind(connection)
        return len(connections)

    def unbind_account(self, account_id: UUID | str) -> int:
        """Unbind every connection of an account."""
        connections = self.connections_for_account(account_id)
        for connection in connections:
            self.unbind(connection)
        return len(connections)

    def join_group(self, connection: PushConnection, group_id: UUID | str) -> None:
        """Subscribe a connection to a group room."""
        connection.groups.add(str(group_id))

    def leave_group(self, connection: PushConnection, group_id: UUID | str) -> None:
        """Unsubscribe a connection from a group room."""
        connection.groups.discard(str(group_id))

    def add_account_to_group(self, account_id: UUID | str, group_id: UUID | str) -> None:
        """Subscribe every connection of an account to a group room."""
        for connection in self.connections_for_account(account_id):
            self.join_group(connection, group_id)

    def remove_account_from_group(self, account_id: UUID | str, group_id: UUID | str) -> None:
        """Drop every connection of an account from a group room."""
        for connection in self.connections_for_account(account_id):
            self.leave_group(connection, group_id)

    def close_group(self, group_id: UUID | str) -> None:
        """Drop a group room from every connection."""
        target = str(group_id)
        for connection in self._connections.values():
            connection.groups.discard(target)

    def connections_for_account(self, account_id: UUID | str) -> list[PushConnection]:
        """Return connections bound to an account."""
        target = str(account_id)
        return [conn for conn in self._connections.values() if conn.account_id == target]

    async def send_to_account(
        self, account_id: UUID | str, event_type: PushEventType, data: Any
    ) -> int:
        """Push an event to every connection of one account."""
        return await self._deliver(self.connections_for_account(account_id), event_type, data)

    async def send_to_group(self, group_id: UUID | str, event_type: PushEventType, data: Any) -> int:
        """Push an event to every connection in a group room."""
        target = str(group_id)
        connections = [conn for conn in self._connections.values() if target in conn.groups]
        return await self._deliver(connections, event_type, data)

    async def broadcast(self, event_type: PushEventType, data: Any) -> int:
        """Push an event to every connection."""
        return await self._deliver(list(self._connections.values()), event_type, data)

    async def send(self, connection: PushConnection, event_type: PushEventType, data: Any) -> bool:
        """Push an event to a single connection."""
        return bool(await self._deliver([connection], event_type, data))

    async def _deliver(
        self,
        connections: list[PushConnection],
        event_type: PushEventType,
        data: Any,
    ) -> int:
        """Send an envelope to each connection, dropping the ones that fail."""
        envelope = build_envelope(event_type, data)
        delivered = 0
        for connection in connections:
            try:
                await connection.socket.send_json(envelope)
            except Exception as exc:
                logger.warning(
                    "push_delivery_failed",
                    connection_id=connection.id,
                    event_type=event_type,
                    error=str(exc),
                )
                self.unregister(connection)
                continue
            delivered += 1
        logger.debug("push_delivered", event_type=event_type, delivered=delivered)
        return delivered
