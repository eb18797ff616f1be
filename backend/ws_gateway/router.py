"""
WebSocket routes mounted on the main application.
"""

from fastapi import APIRouter, Depends, Query, WebSocket
from sqlalchemy.orm import sessionmaker

from rest_api.core.cors import get_cors_origins
from shared.infrastructure.db import get_session_factory
from ws_gateway.components.endpoints import ChatEndpoint
from ws_gateway.connection_manager import ConnectionManager

# Global connection manager
manager = ConnectionManager()

router = APIRouter(tags=["chat"])


def get_connection_manager() -> ConnectionManager:
    return manager


@router.websocket("/ws/chat")
async def chat_websocket(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """
    Real-time chat.

    Frames are JSON {"event": str, "data": any}. Client events: joinRoom,
    leaveRoom, sendMessage, typing, markRead, ping.
    """
    endpoint = ChatEndpoint(
        websocket,
        connections,
        session_factory=session_factory,
        token=token,
        allowed_origins=get_cors_origins(),
    )
    await endpoint.run()
