"""
WebSocket connection context.

Identity of the authenticated peer plus what audit logging needs about the
connection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from shared.config.logging import audit_ws_connection
from ws_gateway.components.core.constants import WSConstants

# ASCII control characters, zero-width marks and bidi overrides
_CONTROL_CHAR_PATTERN = re.compile(
    r"[\x00-\x1f\x7f-\x9f\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff]"
)


def sanitize_log_data(data: str, max_length: int = WSConstants.LOG_DATA_MAX_LENGTH) -> str:
    """
    Make client-supplied text safe to put in a log record.

    Truncates first, so escaping can never split an escape sequence, then
    strips control characters and escapes quotes and backslashes.
    """
    was_truncated = len(data) > max_length
    sanitized = _CONTROL_CHAR_PATTERN.sub("", data[:max_length])
    sanitized = sanitized.replace("\\", "\\\\").replace('"', '\\"')
    return sanitized + "..." if was_truncated else sanitized


@dataclass
class WebSocketContext:
    """
    Authenticated connection.

    Usage:
        ctx = WebSocketContext(user_id=7, name="Ana", role="user", endpoint="/ws/chat")
        ctx.audit("CONNECT")
    """

    user_id: int
    name: str
    role: str
    endpoint: str
    origin: str | None = None

    @property
    def identifier(self) -> str:
        return f"user:{self.user_id}"

    def audit(self, event_type: str, reason: str | None = None, **extra) -> None:
        audit_ws_connection(
            event_type=event_type,
            endpoint=self.endpoint,
            user_id=self.user_id,
            origin=self.origin,
            reason=reason,
            role=self.role,
            **extra,
        )
