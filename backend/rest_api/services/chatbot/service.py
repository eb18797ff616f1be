"""
Assistant orchestration: platform context, AI call, history, fallback.
"""

from dataclasses import dataclass

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.services.chatbot.client import AssistantError, GeminiClient
from rest_api.services.chatbot.fallback import fallback_reply
from rest_api.services.chatbot.history import ConversationHistoryStore
from rest_api.services.domain import CategoryService, CompetitionService
from shared.config.constants import Limits
from shared.config.logging import chatbot_logger as logger
from shared.utils.exceptions import ValidationError

SYSTEM_PROMPT = """You are Taakra AI Assistant, a helpful chatbot for the Taakra Competition Platform.
You help users with:
- Finding and understanding competitions
- Registration processes and deadlines
- Platform navigation and features
- General questions about competition categories and rules

Keep responses concise, friendly, and helpful. Use emojis sparingly.
If you don't know something specific about a competition, suggest the user check the competition details page.
Always be encouraging about participation in competitions."""

SOURCE_AI = "ai"
SOURCE_FALLBACK = "fallback"


@dataclass
class ChatbotReply:
    response: str
    source: str


class ChatbotService:
    """
    Answers a user's message.

    With an API key the assistant is called with the user's history and the
    exchange is recorded; without one, or when the call fails, a rule-based
    reply is returned instead and history is left untouched.
    """

    def __init__(self, db: Session, history: ConversationHistoryStore, client: GeminiClient):
        self._db = db
        self._history = history
        self._client = client

    def build_context(self) -> str:
        """Newest active competitions and all category names, as prompt text."""
        try:
            competitions = CompetitionService(self._db).newest_active(Limits.CHATBOT_CONTEXT_COMPETITIONS)
            categories = CategoryService(self._db).names()
        except SQLAlchemyError:
            logger.warning("Could not load platform context for assistant", exc_info=True)
            return "Could not fetch current platform data."

        listed = "; ".join(
            f'"{c.title}" ({c.category.name if c.category else "General"}, '
            f"starts {c.start_date:%Y-%m-%d}, deadline {c.registration_deadline:%Y-%m-%d}, "
            f"{c.registration_count} registered)"
            for c in competitions
        )
        return (
            "Current platform data:\n"
            f"- Active competitions: {listed or 'none'}\n"
            f"- Categories: {', '.join(categories) or 'none'}\n"
        )

    async def reply(self, user_id: int, message: str) -> ChatbotReply:
        """
        Raises:
            ValidationError: blank message
        """
        message = (message or "").strip()
        if not message:
            raise ValidationError("Message is required")

        if not self._client.configured:
            return ChatbotReply(fallback_reply(message), SOURCE_FALLBACK)

        system_instruction = f"{SYSTEM_PROMPT}\n\n{self.build_context()}"
        try:
            text = await self._client.generate(message, self._history.get(user_id), system_instruction)
        except (httpx.HTTPError, AssistantError, ValueError, KeyError) as e:
            logger.error("Assistant call failed, using fallback", user_id=user_id, error=str(e))
            return ChatbotReply(fallback_reply(message), SOURCE_FALLBACK)

        self._history.append_exchange(user_id, message, text)
        return ChatbotReply(text, SOURCE_AI)

    def clear_history(self, user_id: int) -> None:
        self._history.clear(user_id)
        logger.info("Assistant history cleared", user_id=user_id)
