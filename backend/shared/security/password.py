"""
Password hashing utilities using bcrypt.

Hashing is always an explicit call made by the service that persists the
user; models never hash on save.
"""

import bcrypt

from shared.config.logging import get_logger

logger = get_logger(__name__)

BCRYPT_ROUNDS = 12
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash.

    Returns:
        Hashed password string (includes salt and cost factor), e.g. "$2b$12$...".
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Verify a password against its hash in constant time.

    A missing hash (OAuth-only account) or a value that is not a bcrypt hash
    never verifies.
    """
    if not hashed_password:
        return False

    if not hashed_password.startswith(_BCRYPT_PREFIXES):
        logger.warning("SECURITY: non-bcrypt password hash encountered during verification")
        return False

    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
