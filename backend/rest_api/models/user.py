"""
User account model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import UserRole

from .base import Base, BigIntPK, TimestampMixin

if TYPE_CHECKING:
    from .competition import Competition, CompetitionParticipant


class User(TimestampMixin, Base):
    """
    A platform account, local (password) or OAuth-linked.

    `password` holds the bcrypt hash and is NULL for OAuth-only accounts.
    Emails are stored lower-case.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    oauth_provider: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    oauth_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER.value)
    avatar: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'admin', 'support')",
            name="ck_user_role",
        ),
        CheckConstraint(
            "password IS NOT NULL OR oauth_provider IS NOT NULL",
            name="ck_user_credentials",
        ),
    )

    # Relationships
    registered_competitions: Mapped[list["Competition"]] = relationship(
        secondary="user_registered_competition",
        back_populates="registered_users",
        order_by="Competition.start_date",
    )
    participations: Mapped[list["CompetitionParticipant"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_oauth_only(self) -> bool:
        return self.password is None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
