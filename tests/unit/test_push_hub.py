"""Unit tests for push hub targeting and delivery failure handling."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest

from domugrauds.core.realtime import PushHub, build_envelope


class _FakeSocket:
    """Socket stub recording every JSON payload it is sent."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[Any] = []
        self.fail = fail

    async def send_json(self, data: Any, mode: str = "text") -> None:
        """Record payload or fail like a closed socket."""
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


def test_build_envelope_shape() -> None:
    """Every event is wrapped as {type, data}."""
    assert build_envelope("thread_created", {"id": "t1"}) == {
        "type": "thread_created",
        "data": {"id": "t1"},
    }


@pytest.mark.asyncio
async def test_send_to_account_reaches_only_that_accounts_connections() -> None:
    """Account-targeted events skip unbound and other accounts' sockets."""
    hub = PushHub()
    account_id = uuid4()
    first, second, other, anonymous = (_FakeSocket() for _ in range(4))
    for socket in (first, second):
        hub.bind_account(hub.register(socket), account_id)
    hub.bind_account(hub.register(other), uuid4())
    hub.register(anonymous)

    delivered = await hub.send_to_account(account_id, "notification_received", {"id": "n1"})

    assert delivered == 2
    expected = [{"type": "notification_received", "data": {"id": "n1"}}]
    assert first.sent == expected
    assert second.sent == expected
    assert other.sent == []
    assert anonymous.sent == []


@pytest.mark.asyncio
async def test_group_room_membership_controls_delivery() -> None:
    """Group events reach joined connections until they leave."""
    hub = PushHub()
    group_id = uuid4()
    member_socket, outsider_socket = _FakeSocket(), _FakeSocket()
    member = hub.register(member_socket)
    hub.register(outsider_socket)
    hub.join_group(member, group_id)

    assert await hub.send_to_group(group_id, "thread_created", {"id": "t1"}) == 1
    hub.leave_group(member, str(group_id))
    assert await hub.send_to_group(group_id, "thread_created", {"id": "t2"}) == 0

    assert [message["data"]["id"] for message in member_socket.sent] == ["t1"]
    assert outsider_socket.sent == []


@pytest.mark.asyncio
async def test_broadcast_reaches_everyone() -> None:
    """Broadcast ignores account binding."""
    hub = PushHub()
    sockets = [_FakeSocket() for _ in range(3)]
    for socket in sockets:
        hub.register(socket)

    assert await hub.broadcast("thread_deleted", {"id": "t1"}) == 3
    assert all(len(socket.sent) == 1 for socket in sockets)


@pytest.mark.asyncio
async def test_failed_send_drops_connection_without_raising() -> None:
    """A broken socket is unregistered and healthy ones still receive the event."""
    hub = PushHub()
    healthy, broken = _FakeSocket(), _FakeSocket(fail=True)
    hub.register(healthy)
    hub.register(broken)

    delivered = await hub.broadcast("thread_created", {"id": "t1"})

    assert delivered == 1
    assert hub.connection_count == 1
    assert len(healthy.sent) == 1


@pytest.mark.asyncio
async def test_unregister_is_idempotent() -> None:
    """Unregistering twice is harmless."""
    hub = PushHub()
    connection = hub.register(_FakeSocket())

    hub.unregister(connection)
    hub.unregister(connection)

    assert hub.connection_count == 0
    assert hub.connections_for_account(uuid4()) == []


@pytest.mark.asyncio
async def test_unbind_session_stops_account_targeting() -> None:
    """Connections bound with a revoked session fall back to anonymous."""
    hub = PushHub()
    account_id, group_id = uuid4(), uuid4()
    revoked_socket, other_device_socket = _FakeSocket(), _FakeSocket()
    revoked = hub.register(revoked_socket)
    other_device = hub.register(other_device_socket)
    hub.bind_account(revoked, account_id, session_hash="hash-1")
    hub.bind_account(other_device, account_id, session_hash="hash-2")
    hub.join_group(revoked, group_id)

    assert hub.unbind_session("hash-1") == 1
    delivered = await hub.send_to_account(account_id, "notification_received", {"id": "n1"})
    in_room = await hub.send_to_group(group_id, "thread_created", {"id": "t1"})

    assert delivered == 1
    assert in_room == 0
    assert revoked.account_id is None
    assert revoked.groups == set()
    assert revoked_socket.sent == []
    assert len(other_device_socket.sent) == 1


def test_unbind_account_and_rebind_reset_rooms() -> None:
    """Unbinding an account clears every connection; rebinding starts with no rooms."""
    hub = PushHub()
    account_id, group_id = uuid4(), uuid4()
    connection = hub.register(_FakeSocket())
    hub.bind_account(connection, account_id)
    hub.join_group(connection, group_id)

    hub.bind_account(connection, uuid4())
    assert connection.groups == set()

    hub.bind_account(connection, account_id)
    assert hub.unbind_account(account_id) == 1
    assert hub.unbind_account(account_id) == 0
    assert hub.connections_for_account(account_id) == []


@pytest.mark.asyncio
async def test_account_room_helpers_follow_membership_changes() -> None:
    """Membership changes add, remove, and close rooms for live connections."""
    hub = PushHub()
    member_id, other_id, group_id = uuid4(), uuid4(), uuid4()
    member_socket, other_socket = _FakeSocket(), _FakeSocket()
    member = hub.register(member_socket)
    other = hub.register(other_socket)
    hub.bind_account(member, member_id)
    hub.bind_account(other, other_id)

    hub.add_account_to_group(member_id, group_id)
    hub.add_account_to_group(other_id, group_id)
    assert await hub.send_to_group(group_id, "thread_created", {"id": "t1"}) == 2

    hub.remove_account_from_group(member_id, group_id)
    assert await hub.send_to_group(group_id, "thread_created", {"id": "t2"}) == 1

    hub.close_group(group_id)
    assert await hub.send_to_group(group_id, "thread_created", {"id": "t3"}) == 0
    assert [message["data"]["id"] for message in member_socket.sent] == ["t1"]
    assert [message["data"]["id"] for message in other_socket.sent] == ["t1", "t2"]
