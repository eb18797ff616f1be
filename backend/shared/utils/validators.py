"""
Shared validators for input sanitization.
Used both by pydantic field validators and by services.
"""

import re
from urllib.parse import urlparse

from shared.config.constants import Limits

_PASSWORD_UPPER = re.compile(r"[A-Z]")
_PASSWORD_LOWER = re.compile(r"[a-z]")
_PASSWORD_DIGIT = re.compile(r"[0-9]")

# Room ids are free-form but must stay printable and short
_ROOM_ID_PATTERN = re.compile(r"^[\w\-:.@]{1,100}$")

ALLOWED_AVATAR_SCHEMES = {"http", "https"}


def password_policy_violations(password: str) -> list[str]:
    """
    Return the list of password policy violations (empty when the password is acceptable).

    Policy: at least 8 characters with an uppercase letter, a lowercase letter
    and a digit.
    """
    problems: list[str] = []
    if len(password) < Limits.PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {Limits.PASSWORD_MIN_LENGTH} characters")
    if not _PASSWORD_UPPER.search(password):
        problems.append("Password must contain an uppercase letter")
    if not _PASSWORD_LOWER.search(password):
        problems.append("Password must contain a lowercase letter")
    if not _PASSWORD_DIGIT.search(password):
        problems.append("Password must contain a number")
    return problems


def validate_password_strength(password: str) -> str:
    """
    Raises:
        ValueError: with every violated rule, joined.
    """
    problems = password_policy_violations(password)
    if problems:
        raise ValueError("; ".join(problems))
    return password


def validate_avatar_url(url: str | None) -> str | None:
    """
    Validate an avatar URL. Blank values pass through as "" (left unchanged by profile updates).

    Raises:
        ValueError: If the URL is not http(s) or is too long
    """
    if url is None:
        return None

    url = url.strip()
    if not url:
        return ""

    if len(url) > 2048:
        raise ValueError("Avatar URL is too long (max 2048 characters)")

    parsed = urlparse(url)
    if parsed.scheme.lower() not in ALLOWED_AVATAR_SCHEMES or not parsed.netloc:
        raise ValueError("Avatar must be an http(s) URL")

    return url


def validate_room_id(room_id: object) -> str:
    """
    Normalise a chat room id.

    Raises:
        ValueError: If the room id is missing or contains unsupported characters
    """
    if not isinstance(room_id, str) or not room_id.strip():
        raise ValueError("Room ID is required")
    room_id = room_id.strip()
    if not _ROOM_ID_PATTERN.match(room_id):
        raise ValueError("Invalid room ID")
    return room_id


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards; a search for "100%" must match the
    literal text. Use together with `escape="\\"` on the ilike call.
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str | None, max_length: int = 100) -> str:
    """Trim, truncate, and strip control characters from a search term."""
    if not term:
        return ""

    term = term.strip()[:max_length]
    return re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)
