"""
Rule-based replies used when the AI assistant is unavailable.
"""

import re

_GREETING = re.compile(r"\b(hello|hi|hey)\b")

GREETING_REPLY = (
    "👋 Hello! Welcome to Taakra! I'm your AI assistant. I can help you find competitions, "
    "understand registration processes, and navigate the platform. What would you like to know?"
)
BROWSE_REPLY = (
    "🔍 You can browse all competitions from your Dashboard! Use the search bar to find specific "
    "competitions, filter by category, or sort by newest/popular/trending. Check out the Calendar "
    "view for a timeline perspective!"
)
REGISTER_REPLY = (
    "📝 To register for a competition:\n"
    "1. Browse competitions from the Dashboard\n"
    "2. Click on a competition to view details\n"
    "3. Click the 'Register' button\n"
    "4. Your registration will be pending until an admin confirms it\n\n"
    "Make sure to register before the deadline!"
)
DEADLINE_REPLY = (
    "⏰ Each competition has its own registration deadline. You can find the exact date on the "
    "competition details page. Check the Calendar view for a visual overview of all upcoming deadlines!"
)
CATEGORY_REPLY = (
    "📂 Competitions are organized by categories. You can filter competitions by category using the "
    "filter bar on the Dashboard. Categories include various fields and topics!"
)
SUPPORT_REPLY = (
    "🆘 I'm here to help! You can:\n"
    "• Ask me about competitions and registration\n"
    "• Use the Chat feature to talk to support staff\n"
    "• Browse the FAQ on the website\n\n"
    "What specific help do you need?"
)
PROFILE_REPLY = (
    "👤 You can manage your profile from the Profile page! There you can update your name, avatar, "
    "and change your password. Check 'My Competitions' to see all your registrations and their status."
)
DEFAULT_REPLY = (
    "🤖 I'm Taakra AI Assistant! I can help you with:\n"
    "• Finding competitions\n"
    "• Registration process\n"
    "• Understanding deadlines\n"
    "• Platform navigation\n\n"
    "Please ask me a specific question and I'll do my best to help!"
)


def _has_any(text: str, *words: str) -> bool:
    return any(word in text for word in words)


def fallback_reply(message: str) -> str:
    """Pick a canned reply; first matching rule wins."""
    text = (message or "").lower()

    if _GREETING.search(text):
        return GREETING_REPLY
    if "competition" in text and _has_any(text, "find", "search", "browse"):
        return BROWSE_REPLY
    if _has_any(text, "register", "sign up", "join"):
        return REGISTER_REPLY
    if _has_any(text, "deadline", "when"):
        return DEADLINE_REPLY
    if "category" in text or "categories" in text:
        return CATEGORY_REPLY
    if _has_any(text, "help", "support"):
        return SUPPORT_REPLY
    if _has_any(text, "profile", "account"):
        return PROFILE_REPLY
    return DEFAULT_REPLY
