from .base import WebSocketEndpointBase
from .handlers import ChatEndpoint

__all__ = ["WebSocketEndpointBase", "ChatEndpoint"]
