"""
Standardized page-based pagination for list endpoints.

Usage:
    from rest_api.routers._common.pagination import Pagination, get_competition_pagination

    @router.get("")
    def list_items(pagination: Pagination = Depends(get_competition_pagination)):
        stmt = stmt.offset(pagination.offset).limit(pagination.limit)
        return {"items": items, "totalPages": pagination.total_pages(total)}
"""

import math
from dataclasses import dataclass

from fastapi import Query

from shared.config.constants import Limits


@dataclass
class Pagination:
    """
    Page/limit pair (1-indexed pages).

    Attributes:
        page: Current page, at least 1
        limit: Items per page (1 to max_limit)
        max_limit: Upper bound for limit
    """

    page: int = 1
    limit: int = Limits.COMPETITIONS_PAGE_DEFAULT
    max_limit: int = Limits.COMPETITIONS_PAGE_MAX

    def __post_init__(self):
        self.page = max(1, self.page)
        self.limit = min(max(1, self.limit), self.max_limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        """ceil(total / limit); zero when there are no items."""
        return math.ceil(total / self.limit)


def get_competition_pagination(
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(
        default=Limits.COMPETITIONS_PAGE_DEFAULT,
        ge=1,
        le=Limits.COMPETITIONS_PAGE_MAX,
        description="Items per page",
    ),
) -> Pagination:
    """FastAPI dependency for the competition listing."""
    return Pagination(page=page, limit=limit)


def get_message_pagination(
    page: int = Query(default=1, ge=1, description="Page number, 1 is the newest"),
    limit: int = Query(
        default=Limits.MESSAGES_PAGE_DEFAULT,
        ge=1,
        le=Limits.MESSAGES_PAGE_MAX,
        description="Messages per page",
    ),
) -> Pagination:
    """FastAPI dependency for chat history."""
    return Pagination(page=page, limit=limit, max_limit=Limits.MESSAGES_PAGE_MAX)
