"""
Chat router - /api/chat/*
HTTP access to chat history; live messaging goes through /ws/chat.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.routers._common import Pagination, get_message_pagination
from rest_api.services.domain import ChatService
from shared.config.constants import CHAT_STAFF_ROLES
from shared.infrastructure.db import get_db
from shared.security.auth import current_user, require_roles
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import (
    ChatHistoryResponse,
    MessageOutput,
    RoomListResponse,
    RoomSummary,
    UserPublic,
)
from shared.utils.validators import validate_room_id

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.get("/rooms", response_model=RoomListResponse)
def list_rooms(
    staff: User = Depends(require_roles(*CHAT_STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> RoomListResponse:
    """Support inbox: every room with its latest message, most recent first."""
    rooms = ChatService(db).rooms()
    return RoomListResponse(
        rooms=[
            RoomSummary(
                room_id=room.room_id,
                last_message=room.last_message.content,
                last_message_at=room.last_message_at,
                sender=UserPublic.model_validate(room.last_message.sender) if room.last_message.sender else None,
                unread_count=room.unread_count,
            )
            for room in rooms
        ]
    )


@router.get("/{room_id}", response_model=ChatHistoryResponse)
def get_room_history(
    room_id: str,
    pagination: Pagination = Depends(get_message_pagination),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> ChatHistoryResponse:
    """Page 1 holds the newest messages; each page is in chronological order."""
    try:
        room_id = validate_room_id(room_id)
    except ValueError as e:
        raise ValidationError(str(e)) from None

    messages, total = ChatService(db).history(room_id, pagination.offset, pagination.limit)
    return ChatHistoryResponse(
        messages=[MessageOutput.model_validate(m) for m in messages],
        total_pages=pagination.total_pages(total),
        current_page=pagination.page,
    )
