"""
Bounded, process-local conversation history for the assistant.
"""

import threading
from collections import OrderedDict, deque

from fastapi import Request


class ConversationHistoryStore:
    """
    Per-user conversation turns with two bounds:

    - each user keeps at most `max_messages` turns (oldest dropped first)
    - at most `max_sessions` users are tracked (least recently used evicted)

    Turns are {"role": "user" | "model", "content": str}.
    """

    def __init__(self, max_messages: int = 20, max_sessions: int = 1000):
        if max_messages < 1 or max_sessions < 1:
            raise ValueError("history bounds must be positive")
        self.max_messages = max_messages
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[int, deque[dict[str, str]]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._sessions

    def get(self, user_id: int) -> list[dict[str, str]]:
        """Copy of the user's turns, oldest first. Marks the user as recently used."""
        with self._lock:
            turns = self._sessions.get(user_id)
            if turns is None:
                return []
            self._sessions.move_to_end(user_id)
            return list(turns)

    def append_exchange(self, user_id: int, user_message: str, model_reply: str) -> None:
        with self._lock:
            turns = self._sessions.get(user_id)
            if turns is None:
                turns = deque(maxlen=self.max_messages)
                self._sessions[user_id] = turns
            else:
                self._sessions.move_to_end(user_id)

            turns.append({"role": "user", "content": user_message})
            turns.append({"role": "model", "content": model_reply})

            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)

    def clear(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)


def get_history_store(request: Request) -> ConversationHistoryStore:
    """FastAPI dependency: the store owned by the running application."""
    return request.app.state.chat_history
