"""
Process-local registry of live real-time sessions.

Nothing here is durable: a restart empties it and clients re-authenticate.
Handles are held weakly, so a handle dropped by its connection after a
disconnect disappears from every index without an explicit unregister.
"""

import asyncio
import logging
import threading
import weakref
from abc import ABC, abstractmethod
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocket


logger = logging.getLogger(__name__)


class SessionHandle(ABC):
    """One live client connection."""

    @abstractmethod
    def send(self, event: str, data: Any = None) -> None:
        """Queue a frame for the client. Must not block the caller."""
        ...


class WebSocketHandle(SessionHandle):
    """Handle for a Starlette WebSocket, safe to call from worker threads."""

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop):
        self.websocket = websocket
        self.loop = loop
        self.user_id: Optional[int] = None

    def send(self, event: str, data: Any = None) -> None:
        frame = {"event": event, "data": jsonable_encoder(data)}
        future = asyncio.run_coroutine_threadsafe(self.websocket.send_json(frame), self.loop)
        future.add_done_callback(self._log_failure)

    def _log_failure(self, future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Dropping frame for user %s: %s", self.user_id, exc)


class ConnectionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connected: "weakref.WeakSet[SessionHandle]" = weakref.WeakSet()
        self._by_user: dict[int, "weakref.WeakSet[SessionHandle]"] = {}
        self._rooms: dict[str, "weakref.WeakSet[SessionHandle]"] = {}
        self._chat_users: "weakref.WeakSet[SessionHandle]" = weakref.WeakSet()

    # -- lifecycle --

    def connect(self, handle: SessionHandle) -> None:
        with self._lock:
            self._connected.add(handle)

    def register(self, user_id: int, handle: SessionHandle) -> None:
        """Bind an already-authenticated handle to its user id."""
        with self._lock:
            self._connected.add(handle)
            self._by_user.setdefault(user_id, weakref.WeakSet()).add(handle)
        logger.info("User %s registered for real-time delivery", user_id)

    def unregister(self, handle: SessionHandle) -> None:
        with self._lock:
            self._connected.discard(handle)
            self._chat_users.discard(handle)
            for user_id in [uid for uid, handles in self._by_user.items() if handle in handles]:
                self._by_user[user_id].discard(handle)
                if not self._by_user[user_id]:
                    del self._by_user[user_id]
            for room in [name for name, handles in self._rooms.items() if handle in handles]:
                self._rooms[room].discard(handle)
                if not self._rooms[room]:
                    del self._rooms[room]

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._by_user.get(user_id))

    # -- delivery --

    def send_to(self, user_id: int, event: str, data: Any = None) -> bool:
        """Point-to-point delivery. Returns False when the user has no live session."""
        with self._lock:
            handles = list(self._by_user.get(user_id, ()))
        for handle in handles:
            self._safe_send(handle, event, data)
        return bool(handles)

    def broadcast(self, event: str, data: Any = None) -> int:
        with self._lock:
            handles = list(self._connected)
        for handle in handles:
            self._safe_send(handle, event, data)
        logger.debug("Broadcast %s to %d sessions", event, len(handles))
        return len(handles)

    # -- rooms --

    def join_room(self, room: str, handle: SessionHandle) -> None:
        with self._lock:
            self._rooms.setdefault(room, weakref.WeakSet()).add(handle)

    def leave_room(self, room: str, handle: SessionHandle) -> None:
        with self._lock:
            handles = self._rooms.get(room)
            if handles is not None:
                handles.discard(handle)
                if not handles:
                    del self._rooms[room]

    def emit_to_room(
        self,
        room: str,
        event: str,
        data: Any = None,
        exclude: Optional[SessionHandle] = None,
    ) -> int:
        with self._lock:
            handles = [h for h in self._rooms.get(room, ()) if h is not exclude]
        for handle in handles:
            self._safe_send(handle, event, data)
        return len(handles)

    # -- global chat presence --

    def join_chat(self, handle: SessionHandle) -> int:
        with self._lock:
            self._chat_users.add(handle)
            return len(self._chat_users)

    def in_chat(self, handle: SessionHandle) -> bool:
        with self._lock:
            return handle in self._chat_users

    def chat_user_count(self) -> int:
        with self._lock:
            return len(self._chat_users)

    def _safe_send(self, handle: SessionHandle, event: str, data: Any) -> None:
        try:
            handle.send(event, data)
        except Exception:
            logger.exception("Real-time send of %s failed", event)


registry = ConnectionRegistry()


def get_registry() -> ConnectionRegistry:
    return registry
