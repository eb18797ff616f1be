"""
Chat endpoint: authentication, presence, and the chat event handlers.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from fastapi import WebSocket
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from rest_api.models import User
from rest_api.services.domain import ChatService, UserService
from shared.config.constants import Cookies
from shared.config.logging import audit_ws_connection
from shared.config.logging import ws_gateway_logger as logger
from shared.security.auth import extract_token, resolve_user
from shared.utils.exceptions import AppException, AuthenticationError
from shared.utils.schemas import MessageOutput
from shared.utils.validators import validate_room_id
from ws_gateway.components.core.constants import ClientEvent, ServerEvent, WSCloseCode
from ws_gateway.components.core.context import WebSocketContext, sanitize_log_data
from ws_gateway.components.endpoints.base import WebSocketEndpointBase
from ws_gateway.connection_manager import event_frame

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager


class ChatEndpoint(WebSocketEndpointBase):
    """
    /ws/chat

    The token comes from the `token` query parameter, else the
    Authorization bearer header, else the access token cookie. Database work
    runs in the threadpool with one short session per unit of work.
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        session_factory: sessionmaker,
        token: str | None = None,
        allowed_origins: list[str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(websocket, manager, endpoint_name="/ws/chat", **kwargs)
        self.session_factory = session_factory
        self.token = token
        self.allowed_origins = allowed_origins
        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            ClientEvent.JOIN_ROOM: self._on_join_room,
            ClientEvent.LEAVE_ROOM: self._on_leave_room,
            ClientEvent.SEND_MESSAGE: self._on_send_message,
            ClientEvent.TYPING: self._on_typing,
            ClientEvent.MARK_READ: self._on_mark_read,
            ClientEvent.PING: self._on_ping,
        }

    # =========================================================================
    # Authentication and lifecycle
    # =========================================================================

    def _load_user(self, token: str) -> WebSocketContext:
        with self.session_factory() as db:
            user = resolve_user(db, token)
            return WebSocketContext(
                user_id=user.id,
                name=user.name,
                role=user.role,
                endpoint=self.endpoint_name,
                origin=self.websocket.headers.get("origin"),
            )

    async def _reject(self, code: WSCloseCode, reason: str, audit_reason: str) -> None:
        audit_ws_connection(
            event_type="AUTH_FAILED",
            endpoint=self.endpoint_name,
            origin=self.websocket.headers.get("origin"),
            reason=audit_reason,
        )
        await self.websocket.close(code=code, reason=reason)

    async def validate_auth(self) -> WebSocketContext | None:
        origin = self.websocket.headers.get("origin")
        if origin and self.allowed_origins is not None and origin not in self.allowed_origins:
            logger.warning("WebSocket connection rejected - invalid origin", origin=origin)
            await self._reject(WSCloseCode.FORBIDDEN, "Origin not allowed", "invalid_origin")
            return None

        token = self.token or extract_token(
            self.websocket.headers.get("authorization"),
            self.websocket.cookies.get(Cookies.ACCESS_TOKEN),
        )
        if not token:
            await self._reject(WSCloseCode.AUTH_FAILED, "Authentication error: no token", "no_token")
            return None

        try:
            return await run_in_threadpool(self._load_user, token)
        except AuthenticationError as e:
            await self._reject(WSCloseCode.AUTH_FAILED, "Authentication error: invalid token", str(e.detail))
            return None

    async def create_context(self, auth_data: WebSocketContext) -> WebSocketContext:
        return auth_data

    def _set_online(self, user_id: int, online: bool) -> None:
        with self.session_factory() as db:
            UserService(db).set_online(user_id, online)

    async def register_connection(self, context: WebSocketContext) -> None:
        await self.manager.connect(self.websocket, context)
        try:
            await run_in_threadpool(self._set_online, context.user_id, True)
        except SQLAlchemyError:
            logger.error("Failed to persist online status", user_id=context.user_id, exc_info=True)
        await self.manager.broadcast(
            event_frame(ServerEvent.USER_ONLINE, {"userId": context.user_id, "name": context.name})
        )

    async def unregister_connection(self, context: WebSocketContext) -> None:
        await self.manager.disconnect(self.websocket)
        # Other tabs keep the user online
        if self.manager.is_user_connected(context.user_id):
            return
        try:
            await run_in_threadpool(self._set_online, context.user_id, False)
        except SQLAlchemyError:
            logger.error("Failed to persist offline status", user_id=context.user_id, exc_info=True)
        await self.manager.broadcast(event_frame(ServerEvent.USER_OFFLINE, {"userId": context.user_id}))

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _emit_error(self, message: str) -> None:
        await self.manager.send(self.websocket, event_frame(ServerEvent.ERROR, {"message": message}))

    async def handle_message(self, data: str) -> None:
        try:
            frame = json.loads(data)
        except json.JSONDecodeError:
            await self._emit_error("Invalid message format")
            return

        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self._emit_error("Invalid message format")
            return

        event = frame["event"]
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(
                "Unknown event received",
                identifier=self.context.identifier if self.context else "unknown",
                event=sanitize_log_data(event),
            )
            await self._emit_error(f"Unknown event: {sanitize_log_data(event, max_length=50)}")
            return

        try:
            await handler(frame.get("data"))
        except ValueError as e:
            await self._emit_error(str(e))
        except AppException as e:
            await self._emit_error(str(e.detail))

    @staticmethod
    def _room_from(payload: Any) -> str:
        """Room id from a bare string or a {"roomId": ...} object."""
        if isinstance(payload, dict):
            payload = payload.get("roomId")
        return validate_room_id(payload)

    # =========================================================================
    # Event handlers
    # =========================================================================

    async def _on_join_room(self, payload: Any) -> None:
        room_id = self._room_from(payload)
        await self.manager.join(self.websocket, room_id)
        logger.debug("Joined room", identifier=self.context.identifier, room_id=room_id)

    async def _on_leave_room(self, payload: Any) -> None:
        await self.manager.leave(self.websocket, self._room_from(payload))

    def _persist_message(self, room_id: str, content: str, receiver_id: int | None) -> dict[str, Any]:
        with self.session_factory() as db:
            sender = db.get(User, self.context.user_id)
            if sender is None:
                raise AuthenticationError("Not authorized, user not found")
            message = ChatService(db).send(sender, room_id, content, receiver_id)
            return MessageOutput.model_validate(message).model_dump(mode="json", by_alias=True)

    async def _on_send_message(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            raise ValueError("Room ID is required")
        room_id = self._room_from(payload)
        content = payload.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Message content is required")

        receiver_id = payload.get("receiverId")
        if receiver_id is not None and (isinstance(receiver_id, bool) or not isinstance(receiver_id, int)):
            raise ValueError("Invalid receiver ID")

        try:
            message = await run_in_threadpool(self._persist_message, room_id, content, receiver_id)
        except SQLAlchemyError:
            logger.error("sendMessage failed", room_id=room_id, user_id=self.context.user_id, exc_info=True)
            await self._emit_error("Failed to send message")
            return

        await self.manager.send_to_room(room_id, event_frame(ServerEvent.RECEIVE_MESSAGE, message))

    async def _on_typing(self, payload: Any) -> None:
        room_id = self._room_from(payload)
        is_typing = bool(payload.get("isTyping")) if isinstance(payload, dict) else False
        await self.manager.send_to_room(
            room_id,
            event_frame(
                ServerEvent.USER_TYPING,
                {"userId": self.context.user_id, "name": self.context.name, "isTyping": is_typing},
            ),
            exclude=self.websocket,
        )

    def _mark_read(self, room_id: str) -> int:
        with self.session_factory() as db:
            return ChatService(db).mark_read(room_id, self.context.user_id)

    async def _on_mark_read(self, payload: Any) -> None:
        room_id = self._room_from(payload)
        try:
            await run_in_threadpool(self._mark_read, room_id)
        except SQLAlchemyError:
            logger.error("markRead failed", room_id=room_id, user_id=self.context.user_id, exc_info=True)
            await self._emit_error("Failed to mark messages as read")
            return

        await self.manager.send_to_room(
            room_id,
            event_frame(ServerEvent.MESSAGES_READ, {"roomId": room_id, "readBy": self.context.user_id}),
        )

    async def _on_ping(self, payload: Any) -> None:
        await self.manager.send(self.websocket, event_frame(ServerEvent.PONG, payload))
