"""
Utilities module: Exceptions, validators, schemas, datetime helpers.
"""

from shared.utils.exceptions import (
    AppException,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from shared.utils.validators import (
    escape_like_pattern,
    validate_password_strength,
    validate_room_id,
)
from shared.utils.datetime_utils import as_utc, utcnow
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "AppException",
    "AuthenticationError",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
    # validators
    "escape_like_pattern",
    "validate_password_strength",
    "validate_room_id",
    # datetime
    "as_utc",
    "utcnow",
    # schemas
    "ErrorResponse",
]
