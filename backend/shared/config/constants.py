"""
Centralized constants for the backend application.
Avoids magic strings and repeated literals across routers and services.

Usage:
    from shared.config.constants import UserRole, RegistrationStatus

    if user.role == UserRole.ADMIN:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class UserRole(str, Enum):
    """Closed set of account roles. Stored as the lower-case value."""

    USER = "user"
    ADMIN = "admin"
    SUPPORT = "support"

    @classmethod
    def values(cls) -> list[str]:
        return [role.value for role in cls]


# Roles allowed to browse every chat room
CHAT_STAFF_ROLES: Final[frozenset[str]] = frozenset({UserRole.ADMIN.value, UserRole.SUPPORT.value})


# =============================================================================
# Entity Status Constants
# =============================================================================


class RegistrationStatus(str, Enum):
    """Status of a participant within a competition."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]


class CompetitionSort(str, Enum):
    """Sort keys accepted by the public competition listing."""

    NEWEST = "newest"
    POPULAR = "popular"
    TRENDING = "trending"


class OAuthProvider:
    GOOGLE: Final[str] = "google"


# =============================================================================
# Cookie names / paths
# =============================================================================


class Cookies:
    ACCESS_TOKEN: Final[str] = "accessToken"
    REFRESH_TOKEN: Final[str] = "refreshToken"
    OAUTH_STATE: Final[str] = "oauthState"

    ACCESS_TOKEN_PATH: Final[str] = "/"
    REFRESH_TOKEN_PATH: Final[str] = "/api/auth/refresh-token"
    OAUTH_STATE_PATH: Final[str] = "/api/auth/google"
    OAUTH_STATE_MAX_AGE: Final[int] = 10 * 60


# =============================================================================
# Validation / pagination limits
# =============================================================================


class Limits:
    PASSWORD_MIN_LENGTH: Final[int] = 8
    NAME_MAX_LENGTH: Final[int] = 100
    TITLE_MAX_LENGTH: Final[int] = 200
    CATEGORY_NAME_MAX_LENGTH: Final[int] = 100
    MESSAGE_MAX_LENGTH: Final[int] = 5000
    CHATBOT_MESSAGE_MAX_LENGTH: Final[int] = 2000

    COMPETITIONS_PAGE_DEFAULT: Final[int] = 10
    COMPETITIONS_PAGE_MAX: Final[int] = 100
    MESSAGES_PAGE_DEFAULT: Final[int] = 50
    MESSAGES_PAGE_MAX: Final[int] = 200

    CHATBOT_CONTEXT_COMPETITIONS: Final[int] = 10


def user_room(user_id: int) -> str:
    """Personal chat room every connection joins on connect."""
    return f"user_{user_id}"
