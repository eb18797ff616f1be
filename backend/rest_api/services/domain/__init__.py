"""
Domain Services.

Structure:
    Router (thin controller)
        |
    Service (business logic, queries)
        |
    Model (entity)

Usage:
    from rest_api.services.domain import CompetitionService

    service = CompetitionService(db)
    participant = service.register(competition_id, user)
"""

from .category_service import CategoryService
from .chat_service import ChatService, RoomInfo
from .competition_service import CompetitionFilters, CompetitionService, check_schedule
from .user_service import OAuthProfile, UserService

__all__ = [
    "CategoryService",
    "ChatService",
    "RoomInfo",
    "CompetitionFilters",
    "CompetitionService",
    "check_schedule",
    "OAuthProfile",
    "UserService",
]
