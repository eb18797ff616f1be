"""
WebSocket Gateway Constants.

Close codes, operational limits and event names of the chat protocol.
Every frame in either direction is JSON: {"event": <name>, "data": <payload>}.
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "ClientEvent",
    "ServerEvent",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    Custom codes (4000-4999) for application-specific errors.
    """

    # Standard codes (RFC 6455)
    NORMAL = 1000  # Normal closure
    GOING_AWAY = 1001  # Server shutting down
    POLICY_VIOLATION = 1008  # Too many connections for one user
    MESSAGE_TOO_BIG = 1009  # Frame larger than ws_max_message_size
    SERVER_ERROR = 1011  # Unexpected server error

    # Custom application codes
    AUTH_FAILED = 4001  # Missing, invalid or expired token, or unknown user
    FORBIDDEN = 4003  # Origin not allowed


class WSConstants:
    """Operational constants. Per-user limits and frame size come from settings."""

    # Longer than the client heartbeat interval (25-30s) with room for jitter
    WS_RECEIVE_TIMEOUT: Final[float] = 90.0

    WS_ACCEPT_TIMEOUT: Final[float] = 5.0

    # Max characters of client data echoed into logs
    LOG_DATA_MAX_LENGTH: Final[int] = 100


class ClientEvent:
    """Events accepted from clients."""

    JOIN_ROOM: Final[str] = "joinRoom"
    LEAVE_ROOM: Final[str] = "leaveRoom"
    SEND_MESSAGE: Final[str] = "sendMessage"
    TYPING: Final[str] = "typing"
    MARK_READ: Final[str] = "markRead"
    PING: Final[str] = "ping"


class ServerEvent:
    """Events emitted by the gateway."""

    USER_ONLINE: Final[str] = "userOnline"
    USER_OFFLINE: Final[str] = "userOffline"
    RECEIVE_MESSAGE: Final[str] = "receiveMessage"
    USER_TYPING: Final[str] = "userTyping"
    MESSAGES_READ: Final[str] = "messagesRead"
    PONG: Final[str] = "pong"
    ERROR: Final[str] = "error"
