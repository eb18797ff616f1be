"""
SQLAlchemy ORM Models Package.

- base: Base class, TimestampMixin, datetime helpers
- user: User
- category: Category
- competition: Competition, CompetitionParticipant, user_registered_competition
- message: Message
"""

from .base import Base, BigIntPK, TimestampMixin, as_utc, utcnow
from .user import User
from .category import Category
from .competition import Competition, CompetitionParticipant, user_registered_competition
from .message import Message

__all__ = [
    "Base",
    "BigIntPK",
    "TimestampMixin",
    "as_utc",
    "utcnow",
    "User",
    "Category",
    "Competition",
    "CompetitionParticipant",
    "user_registered_competition",
    "Message",
]
