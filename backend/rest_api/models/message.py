"""
Chat message model.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, utcnow

if TYPE_CHECKING:
    from .user import User


class Message(Base):
    """
    A message posted in a chat room.

    Rooms are free-form string keys (e.g. "user_12", "support-general").
    `read` only ever moves from False to True.
    """

    __tablename__ = "message"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sender_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    receiver_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    chat_room: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_message_room_created", "chat_room", "created_at"),
    )

    sender: Mapped[Optional["User"]] = relationship(foreign_keys=[sender_id])
    receiver: Mapped[Optional["User"]] = relationship(foreign_keys=[receiver_id])

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, room='{self.chat_room}', sender_id={self.sender_id})>"
