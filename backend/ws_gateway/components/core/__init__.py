from .constants import ClientEvent, ServerEvent, WSCloseCode, WSConstants
from .context import WebSocketContext, sanitize_log_data

__all__ = [
    "ClientEvent",
    "ServerEvent",
    "WSCloseCode",
    "WSConstants",
    "WebSocketContext",
    "sanitize_log_data",
]
