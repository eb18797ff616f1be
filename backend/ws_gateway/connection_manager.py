"""
WebSocket connection manager.
Tracks active chat connections by user and by room.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from shared.config.constants import user_room
from shared.config.settings import settings
from ws_gateway.components.core.constants import WSCloseCode, WSConstants
from ws_gateway.components.core.context import WebSocketContext

logger = logging.getLogger(__name__)


def _is_ws_connected(ws: WebSocket) -> bool:
    """True when the socket is accepted on both sides and still open."""
    return ws.client_state == WebSocketState.CONNECTED and ws.application_state == WebSocketState.CONNECTED


def event_frame(event: str, data: Any) -> dict[str, Any]:
    return {"event": event, "data": data}


class ConnectionManager:
    """
    Registry of live chat connections.

    Connections are indexed by:
    - user_id: every socket a user has open (one per tab/device)
    - room: chat rooms joined, including the automatic `user_<id>` room

    Index mutations happen under one asyncio.Lock; sends work on snapshots
    so a slow peer never holds the lock.
    """

    def __init__(self, max_connections_per_user: int | None = None):
        self.max_connections_per_user = max_connections_per_user or settings.ws_max_connections_per_user
        self._shutdown = False
        self.by_user: dict[int, set[WebSocket]] = {}
        self.by_room: dict[str, set[WebSocket]] = {}
        self._ws_to_context: dict[WebSocket, WebSocketContext] = {}
        self._ws_to_rooms: dict[WebSocket, set[str]] = {}
        self._lock = asyncio.Lock()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(
        self,
        websocket: WebSocket,
        context: WebSocketContext,
        timeout: float = WSConstants.WS_ACCEPT_TIMEOUT,
    ) -> None:
        """
        Accept the socket, register it, and join the user's personal room.

        Raises:
            ConnectionError: shutting down, accept timed out, or the user
                already has the maximum number of connections
        """
        if self._shutdown:
            raise ConnectionError("Server is shutting down")

        try:
            await asyncio.wait_for(websocket.accept(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionError("WebSocket accept timed out") from None

        if len(self.by_user.get(context.user_id, ())) >= self.max_connections_per_user:
            await websocket.close(code=WSCloseCode.POLICY_VIOLATION, reason="Too many connections")
            raise ConnectionError(
                f"User {context.user_id} exceeded max connections ({self.max_connections_per_user})"
            )

        async with self._lock:
            self.by_user.setdefault(context.user_id, set()).add(websocket)
            self._ws_to_context[websocket] = context
            self._ws_to_rooms[websocket] = set()
            self._join_locked(websocket, user_room(context.user_id))

    async def disconnect(self, websocket: WebSocket) -> WebSocketContext | None:
        """
        Remove a socket from every index.

        Returns:
            The socket's context, or None if it was not registered.
        """
        async with self._lock:
            context = self._ws_to_context.pop(websocket, None)
            for room in self._ws_to_rooms.pop(websocket, set()):
                self._discard(self.by_room, room, websocket)
            if context is not None:
                self._discard(self.by_user, context.user_id, websocket)
            return context

    @staticmethod
    def _discard(index: dict, key: Any, websocket: WebSocket) -> None:
        members = index.get(key)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del index[key]

    # =========================================================================
    # Rooms
    # =========================================================================

    def _join_locked(self, websocket: WebSocket, room: str) -> None:
        self.by_room.setdefault(room, set()).add(websocket)
        self._ws_to_rooms.setdefault(websocket, set()).add(room)

    async def join(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            if websocket not in self._ws_to_context:
                return
            self._join_locked(websocket, room)

    async def leave(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            self._discard(self.by_room, room, websocket)
            rooms = self._ws_to_rooms.get(websocket)
            if rooms is not None:
                rooms.discard(room)

    def rooms_of(self, websocket: WebSocket) -> set[str]:
        return set(self._ws_to_rooms.get(websocket, ()))

    def is_user_connected(self, user_id: int) -> bool:
        return bool(self.by_user.get(user_id))

    # =========================================================================
    # Sending
    # =========================================================================

    async def _send_many(self, connections: list[WebSocket], payload: dict[str, Any]) -> int:
        sent = 0
        for ws in connections:
            if await self.send(ws, payload):
                sent += 1
        return sent

    async def send(self, websocket: WebSocket, payload: dict[str, Any]) -> bool:
        """Send to one socket. Closed sockets and send failures return False."""
        if not _is_ws_connected(websocket):
            logger.debug("Skipping send to disconnected socket")
            return False
        try:
            await websocket.send_json(payload)
            return True
        except (RuntimeError, OSError) as e:
            logger.warning("Failed to send WebSocket message: %s", str(e))
            return False

    async def send_to_room(
        self,
        room: str,
        payload: dict[str, Any],
        exclude: WebSocket | None = None,
    ) -> int:
        """
        Send to every socket in a room, optionally skipping one.

        Returns:
            Number of connections that received the message.
        """
        connections = [ws for ws in self.by_room.get(room, ()) if ws is not exclude]
        return await self._send_many(connections, payload)

    async def broadcast(self, payload: dict[str, Any]) -> int:
        """Send to every connected socket."""
        return await self._send_many(list(self._ws_to_context), payload)

    # =========================================================================
    # Introspection / shutdown
    # =========================================================================

    @property
    def total_connections(self) -> int:
        return len(self._ws_to_context)

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_connections": self.total_connections,
            "users_connected": len(self.by_user),
            "rooms_with_connections": len(self.by_room),
        }

    async def shutdown(self) -> int:
        """
        Close every connection and refuse new ones.

        Returns:
            Number of connections closed.
        """
        self._shutdown = True
        async with self._lock:
            connections = list(self._ws_to_context)

        closed = 0
        for ws in connections:
            if _is_ws_connected(ws):
                try:
                    await ws.close(code=WSCloseCode.GOING_AWAY, reason="Server shutdown")
                    closed += 1
                except (RuntimeError, OSError) as e:
                    logger.warning("Failed to close connection during shutdown: %s", str(e))
            await self.disconnect(ws)

        logger.info("WebSocket shutdown complete. Closed %d connections.", closed)
        return closed

    def is_shutting_down(self) -> bool:
        return self._shutdown
