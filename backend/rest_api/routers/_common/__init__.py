"""
Common utilities shared across routers.
"""

from .pagination import (
    Pagination,
    get_competition_pagination,
    get_message_pagination,
)

__all__ = [
    "Pagination",
    "get_competition_pagination",
    "get_message_pagination",
]
