"""
Real-time channel.

The bearer token passed as ?token= is checked before the socket is
accepted. Frames are JSON objects {"event": ..., "data": ...}; any event
whose data carries a user_id other than the token's identity is refused.
Database work runs in the threadpool with its own session.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.deps import get_registry, user_from_token
from app.db.database import SessionLocal
from app.db.models.users import Users
from app.schemas.messages import LobbyMessageResponse
from app.services.chat import lobby, rooms
from app.services.errors import DomainError, ValidationError
from app.services.realtime import ConnectionRegistry, WebSocketHandle
from app.services.realtime import events

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

Handler = Callable[[Session, ConnectionRegistry, WebSocketHandle, Users, Dict[str, Any]], None]


def _identity(token: Optional[str]) -> Optional[int]:
    if not token:
        return None
    with SessionLocal() as db:
        user = user_from_token(db, token)
        return user.id if user else None


def _schedule_id(data: Dict[str, Any]) -> int:
    try:
        return int(data["schedule_id"])
    except (KeyError, TypeError, ValueError):
        raise ValidationError("schedule_id is required")


def _lobby_payload(message) -> dict:
    return LobbyMessageResponse.model_validate(message).model_dump(mode="json")


def _join_chat(db, registry, handle, user, data) -> None:
    count = registry.join_chat(handle)
    handle.send(events.CHAT_HISTORY, [_lobby_payload(m) for m in lobby.recent_messages(db)])
    registry.broadcast(events.ONLINE_USERS, {"count": count})


def _send_message(db, registry, handle, user, data) -> None:
    message = lobby.post_lobby_message(db, user.id, data.get("message"))
    registry.broadcast(events.CHAT_MESSAGE, _lobby_payload(message))


def _join_schedule_chat(db, registry, handle, user, data) -> None:
    schedule_id = _schedule_id(data)
    room = rooms.get_or_create_room(db, schedule_id, user)
    room_name = events.schedule_room(schedule_id)
    registry.join_room(room_name, handle)
    handle.send(events.SCHEDULE_CHAT_HISTORY, {"schedule_id": schedule_id, "messages": rooms.history(room)})
    registry.emit_to_room(
        room_name, events.USER_JOINED_SCHEDULE_CHAT,
        {"schedule_id": schedule_id, "user_id": user.id}, exclude=handle,
    )


def _leave_schedule_chat(db, registry, handle, user, data) -> None:
    schedule_id = _schedule_id(data)
    room_name = events.schedule_room(schedule_id)
    registry.leave_room(room_name, handle)
    registry.emit_to_room(room_name, events.USER_LEFT_SCHEDULE_CHAT, {"schedule_id": schedule_id, "user_id": user.id})


def _send_schedule_message(db, registry, handle, user, data) -> None:
    rooms.post_message(db, registry, _schedule_id(data), user, data.get("message"))


HANDLERS: Dict[str, Handler] = {
    events.JOIN_CHAT: _join_chat,
    events.SEND_MESSAGE: _send_message,
    events.JOIN_SCHEDULE_CHAT: _join_schedule_chat,
    events.LEAVE_SCHEDULE_CHAT: _leave_schedule_chat,
    events.SEND_SCHEDULE_MESSAGE: _send_schedule_message,
}


def _claims_other_user(data: Dict[str, Any], identity: int) -> bool:
    claimed = data.get("user_id")
    if claimed is None:
        return False
    try:
        return int(claimed) != identity
    except (TypeError, ValueError):
        return True


def dispatch(
    registry: ConnectionRegistry,
    handle: WebSocketHandle,
    identity: int,
    event: Optional[str],
    data: Dict[str, Any],
) -> None:
    if _claims_other_user(data, identity):
        logger.warning("Session of user %s sent %s claiming user %s", identity, event, data.get("user_id"))
        handle.send(events.ERROR, {"event": event, "message": "User id does not match this session"})
        return

    if event == events.AUTHENTICATE:
        if data.get("user_id") is None:
            handle.send(events.ERROR, {"event": event, "message": "user_id is required"})
            return
        registry.register(identity, handle)
        handle.send(events.AUTHENTICATED, {"user_id": identity})
        return

    handler = HANDLERS.get(event)
    if handler is None:
        handle.send(events.ERROR, {"event": event, "message": f"Unknown event: {event}"})
        return

    with SessionLocal() as db:
        user = db.get(Users, identity)
        if user is None or not user.is_active:
            handle.send(events.ERROR, {"event": event, "message": "User not found"})
            return
        try:
            handler(db, registry, handle, user, data)
        except DomainError as exc:
            handle.send(events.ERROR, {"event": event, "message": exc.message})


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    token: Optional[str] = None,
    registry: ConnectionRegistry = Depends(get_registry),
):
    identity = await run_in_threadpool(_identity, token)
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    handle = WebSocketHandle(websocket, asyncio.get_running_loop())
    handle.user_id = identity
    registry.connect(handle)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                frame = json.loads(text)
            except ValueError:
                handle.send(events.ERROR, {"message": "Frames must be JSON"})
                continue
            if not isinstance(frame, dict):
                handle.send(events.ERROR, {"message": "Frames must be JSON objects"})
                continue
            data = frame.get("data")
            await run_in_threadpool(
                dispatch, registry, handle, identity, frame.get("event"), data if isinstance(data, dict) else {},
            )
    except WebSocketDisconnect:
        pass
    finally:
        was_in_chat = registry.in_chat(handle)
        registry.unregister(handle)
        if was_in_chat:
            registry.broadcast(events.ONLINE_USERS, {"count": registry.chat_user_count()})
        logger.info("Real-time session of user %s closed", identity)
