"""
Chat Service - message persistence and room queries.

Shared by the HTTP history endpoints and the WebSocket gateway.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Message, User
from rest_api.services.base_service import BaseService
from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundError, ValidationError

logger = get_logger(__name__)


@dataclass
class RoomInfo:
    room_id: str
    last_message: Message
    unread_count: int

    @property
    def last_message_at(self) -> datetime:
        return self.last_message.created_at


class ChatService(BaseService[Message]):
    """
    Business rules:
    - Content is trimmed and must not be blank
    - `read` only flips False -> True, and never for the reader's own messages
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=Message, entity_name="Message")

    # =========================================================================
    # Query Methods
    # =========================================================================

    def history(self, room_id: str, offset: int, limit: int) -> tuple[list[Message], int]:
        """
        One page of a room's history.

        Pages are counted from the newest message; each page is returned in
        chronological order.
        """
        total = self.db.scalar(
            select(func.count(Message.id)).where(Message.chat_room == room_id)
        ) or 0

        newest_first = list(
            self.db.scalars(
                select(Message)
                .where(Message.chat_room == room_id)
                .options(selectinload(Message.sender), selectinload(Message.receiver))
                .order_by(Message.created_at.desc(), Message.id.desc())
                .offset(offset)
                .limit(limit)
            )
        )
        newest_first.reverse()
        return newest_first, total

    def rooms(self) -> list[RoomInfo]:
        """Every room with its latest message and unread count, most recent first."""
        rows = self.db.execute(
            select(
                Message.chat_room,
                func.max(Message.id).label("last_id"),
                func.sum(case((Message.read.is_(False), 1), else_=0)).label("unread"),
            ).group_by(Message.chat_room)
        ).all()
        if not rows:
            return []

        last_messages = {
            message.id: message
            for message in self.db.scalars(
                select(Message)
                .where(Message.id.in_([row.last_id for row in rows]))
                .options(selectinload(Message.sender))
            )
        }

        rooms = [
            RoomInfo(room_id=row.chat_room, last_message=last_messages[row.last_id], unread_count=int(row.unread or 0))
            for row in rows
        ]
        rooms.sort(key=lambda room: (room.last_message_at, room.last_message.id), reverse=True)
        return rooms

    # =========================================================================
    # Command Methods
    # =========================================================================

    def send(self, sender: User, room_id: str, content: str, receiver_id: int | None = None) -> Message:
        """
        Persist a message.

        Raises:
            ValidationError: blank or oversized content
            NotFoundError: receiver_id given but no such user
        """
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content is required", room_id=room_id)
        if len(content) > Limits.MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Message is too long (max {Limits.MESSAGE_MAX_LENGTH} characters)",
                room_id=room_id,
            )

        receiver = None
        if receiver_id is not None:
            receiver = self.db.get(User, receiver_id)
            if receiver is None:
                raise NotFoundError("Receiver", receiver_id)

        message = Message(
            sender_id=sender.id,
            receiver_id=receiver.id if receiver else None,
            chat_room=room_id,
            content=content,
        )
        self.db.add(message)
        self.commit(message)
        return message

    def mark_read(self, room_id: str, reader_id: int) -> int:
        """
        Mark unread messages in the room as read, except the reader's own.
        Idempotent; returns the number of rows flipped.
        """
        result = self.db.execute(
            update(Message)
            .where(
                Message.chat_room == room_id,
                Message.read.is_(False),
                or_(Message.sender_id.is_(None), Message.sender_id != reader_id),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        self.commit()
        return result.rowcount or 0
