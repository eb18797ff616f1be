"""
AI assistant services.

Provides:
- ChatbotService: context building, AI call, rule-based fallback
- GeminiClient: generateContent REST client (httpx)
- ConversationHistoryStore: bounded per-user history held on app.state
"""

from .client import AssistantError, GeminiClient, close_gemini_client, gemini_client, get_assistant_client
from .fallback import fallback_reply
from .history import ConversationHistoryStore, get_history_store
from .service import SOURCE_AI, SOURCE_FALLBACK, SYSTEM_PROMPT, ChatbotReply, ChatbotService

__all__ = [
    "AssistantError",
    "GeminiClient",
    "close_gemini_client",
    "gemini_client",
    "get_assistant_client",
    "fallback_reply",
    "ConversationHistoryStore",
    "get_history_store",
    "SOURCE_AI",
    "SOURCE_FALLBACK",
    "SYSTEM_PROMPT",
    "ChatbotReply",
    "ChatbotService",
]
