"""
WebSocket Endpoint Base Class.

Owns the connection lifecycle so concrete endpoints only implement
authentication, registration and message handling.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, WebSocketDisconnect

from shared.config.logging import ws_gateway_logger as logger
from shared.config.settings import settings
from ws_gateway.components.core.constants import WSCloseCode, WSConstants
from ws_gateway.components.core.context import WebSocketContext

if TYPE_CHECKING:
    from ws_gateway.connection_manager import ConnectionManager


class WebSocketEndpointBase(ABC):
    """
    Base class for WebSocket endpoints.

    Lifecycle (see run()):
    1. validate_auth() closes the socket itself and returns None on failure
    2. create_context() builds the connection identity
    3. register_connection() accepts and indexes the socket
    4. message loop: receive with timeout, size check, handle_message()
    5. unregister_connection() always runs once registered
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str,
        receive_timeout: float = WSConstants.WS_RECEIVE_TIMEOUT,
        max_message_size: int | None = None,
    ):
        self.websocket = websocket
        self.manager = manager
        self.endpoint_name = endpoint_name
        self.receive_timeout = receive_timeout
        self.max_message_size = max_message_size or settings.ws_max_message_size

        self.context: WebSocketContext | None = None
        self._is_running = False

    @abstractmethod
    async def validate_auth(self) -> Any | None:
        """Return auth data, or close the socket and return None."""

    @abstractmethod
    async def create_context(self, auth_data: Any) -> WebSocketContext:
        """Build the connection context from validate_auth()'s result."""

    @abstractmethod
    async def register_connection(self, context: WebSocketContext) -> None:
        """
        Raises:
            ConnectionError: registration refused
        """

    @abstractmethod
    async def unregister_connection(self, context: WebSocketContext) -> None:
        """Undo register_connection(); runs on every exit path."""

    @abstractmethod
    async def handle_message(self, data: str) -> None:
        """Process one text frame."""

    async def run(self) -> None:
        auth_data = await self.validate_auth()
        if auth_data is None:
            return

        self.context = await self.create_context(auth_data)

        try:
            await self.register_connection(self.context)
        except ConnectionError as e:
            logger.warning(
                "WebSocket connection rejected",
                endpoint=self.endpoint_name,
                identifier=self.context.identifier,
                reason=str(e),
            )
            self.context.audit("CONNECT_REJECTED", reason=str(e))
            return

        self.context.audit("CONNECT")
        self._is_running = True
        try:
            await self._message_loop()
        except WebSocketDisconnect as e:
            self.context.audit("DISCONNECT", reason="client_disconnect", code=e.code)
        finally:
            self._is_running = False
            await self.unregister_connection(self.context)

    async def _message_loop(self) -> None:
        while self._is_running:
            data = await self._receive_with_timeout()
            if data is None:
                logger.info(
                    "Connection timed out (no messages)",
                    endpoint=self.endpoint_name,
                    identifier=self.context.identifier if self.context else "unknown",
                    timeout=self.receive_timeout,
                )
                await self.websocket.close(code=WSCloseCode.NORMAL, reason="Connection timeout")
                break

            if len(data) > self.max_message_size:
                logger.warning(
                    "Message too large",
                    endpoint=self.endpoint_name,
                    identifier=self.context.identifier if self.context else "unknown",
                    size=len(data),
                )
                await self.websocket.close(code=WSCloseCode.MESSAGE_TOO_BIG, reason="Message too large")
                break

            await self.handle_message(data)

    async def _receive_with_timeout(self) -> str | None:
        try:
            return await asyncio.wait_for(self.websocket.receive_text(), timeout=self.receive_timeout)
        except asyncio.TimeoutError:
            return None
