"""WebSocket endpoint feeding the in-process push hub."""

from __future__ import annotations

import json
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from domugrauds.core.realtime import PushConnection, PushHub
from domugrauds.core.sessions import SessionService
from domugrauds.dependencies import Services, extract_session_token, get_services
from domugrauds.models.group import Group

router = APIRouter(tags=["realtime"])
logger = structlog.get_logger(__name__)


def _socket_token(websocket: WebSocket, data: dict[str, Any], cookie_name: str) -> str | None:
    """Prefer an explicit token in the event, then the cookie/bearer, then `?token=`."""
    token = data.get("token")
    if isinstance(token, str) and token.strip():
        return token.strip()
    header_token = extract_session_token(websocket, cookie_name)
    if header_token:
        return header_token
    query_token = websocket.query_params.get("token", "").strip()
    return query_token or None


def _parse_uuid(value: Any) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


async def _authenticate(
    websocket: WebSocket,
    services: Services,
    connection: PushConnection,
    data: dict[str, Any],
) -> None:
    """Bind the connection to an account after checking its session token.

    A null `userId` signs the connection out. A rejected attempt also leaves
    the connection unbound, so a stale identity never keeps receiving events.
    """
    hub = services.push_hub
    if data.get("userId") is None:
        hub.unbind(connection)
        await hub.send(connection, "connection", {"message": "Unauthenticated"})
        return
    claimed_id = _parse_uuid(data.get("userId"))
    token = _socket_token(websocket, data, services.settings.cookie.name)
    account = None
    group_ids: list[str] = []
    if claimed_id is not None:
        async with services.database.session_factory() as db_session:
            account = await services.auth.authenticate(db_session, token)
            if account is not None:
                group_ids = await services.groups.group_ids_for(db_session, account.id)
    if account is None or account.id != claimed_id:
        hub.unbind(connection)
        logger.warning(
            "push_authenticate_rejected",
            connection_id=connection.id,
            claimed_account_id=str(data.get("userId")),
        )
        await hub.send(connection, "error", {"message": "Authentication failed."})
        return
    hub.bind_account(connection, account.id, session_hash=SessionService.hash_token(token))
    for group_id in group_ids:
        hub.join_group(connection, group_id)
    await hub.send(connection, "connection", {"message": "Authenticated", "userId": str(account.id)})


async def _join_group(
    services: Services, connection: PushConnection, data: dict[str, Any]
) -> None:
    """Subscribe an authenticated connection to a group room it may read."""
    hub = services.push_hub
    group_id = _parse_uuid(data.get("groupId"))
    if group_id is None:
        await hub.send(connection, "error", {"message": "groupId is required."})
        return
    if connection.account_id is None:
        await hub.send(connection, "error", {"message": "Authenticate before joining groups."})
        return
    async with services.database.session_factory() as db_session:
        group = await db_session.get(Group, group_id)
        allowed = group is not None and (
            not group.is_private
            or await services.groups.is_member(db_session, group_id, UUID(connection.account_id))
        )
    if not allowed:
        await hub.send(connection, "error", {"message": "Cannot join this group."})
        return
    hub.join_group(connection, group_id)


async def _handle_event(
    websocket: WebSocket,
    services: Services,
    connection: PushConnection,
    raw_message: str,
) -> None:
    """Dispatch one client event; malformed input yields an `error` event."""
    hub: PushHub = services.push_hub
    try:
        message = json.loads(raw_message)
    except json.JSONDecodeError:
        await hub.send(connection, "error", {"message": "Invalid JSON."})
        return
    if not isinstance(message, dict):
        await hub.send(connection, "error", {"message": "Invalid message."})
        return
    event_type = message.get("type")
    data = message.get("data") if isinstance(message.get("data"), dict) else {}

    if event_type == "authenticate":
        await _authenticate(websocket, services, connection, data)
    elif event_type == "join_group":
        await _join_group(services, connection, data)
    elif event_type == "leave_group":
        group_id = _parse_uuid(data.get("groupId"))
        if group_id is not None:
            hub.leave_group(connection, group_id)
    else:
        await hub.send(connection, "error", {"message": f"Unknown event type: {event_type}"})


@router.websocket("/ws")
async def push_channel(websocket: WebSocket) -> None:
    """Accept a push connection and serve client events until it closes."""
    services = get_services(websocket)
    hub = services.push_hub
    await websocket.accept()
    connection = hub.register(websocket)
    try:
        await hub.send(connection, "connection", {"message": "Connected to real-time updates"})
        while True:
            raw_message = await websocket.receive_text()
            await _handle_event(websocket, services, connection, raw_message)
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(connection)
