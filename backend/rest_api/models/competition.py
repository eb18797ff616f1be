"""
Competition and registration models.

- Competition: a listed event with its schedule and counters
- CompetitionParticipant: one registration (user, status, registeredAt)
- user_registered_competition: the user's registered-competitions list
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import RegistrationStatus

from .base import Base, BigIntPK, TimestampMixin, utcnow

if TYPE_CHECKING:
    from .category import Category
    from .user import User


user_registered_competition = Table(
    "user_registered_competition",
    Base.metadata,
    Column("user_id", BigInteger, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "competition_id",
        BigInteger,
        ForeignKey("competition.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Competition(TimestampMixin, Base):
    """
    A competition users can register for.

    Invariants kept by the service layer:
    - end_date > start_date and registration_deadline < start_date
    - registration_count == number of participant rows
    """

    __tablename__ = "competition"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("category.id"), nullable=False, index=True
    )
    rules: Mapped[str] = mapped_column(Text, nullable=False)
    prizes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_participants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    registration_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_by_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        CheckConstraint("registration_count >= 0", name="ck_competition_registration_count"),
        CheckConstraint("views >= 0", name="ck_competition_views"),
    )

    # Relationships
    category: Mapped["Category"] = relationship(back_populates="competitions")
    created_by: Mapped[Optional["User"]] = relationship(foreign_keys=[created_by_id])
    participants: Mapped[list["CompetitionParticipant"]] = relationship(
        back_populates="competition",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CompetitionParticipant.registered_at",
    )
    registered_users: Mapped[list["User"]] = relationship(
        secondary=user_registered_competition,
        back_populates="registered_competitions",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Competition(id={self.id}, title='{self.title}')>"


class CompetitionParticipant(Base):
    """
    A user's registration in a competition.
    The (competition_id, user_id) pair is unique.
    """

    __tablename__ = "competition_participant"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    competition_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("competition.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RegistrationStatus.PENDING.value
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("competition_id", "user_id", name="uq_participant_competition_user"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected')",
            name="ck_participant_status",
        ),
        Index("ix_participant_competition", "competition_id"),
    )

    competition: Mapped["Competition"] = relationship(back_populates="participants")
    user: Mapped["User"] = relationship(back_populates="participations")

    def __repr__(self) -> str:
        return (
            f"<CompetitionParticipant(competition_id={self.competition_id}, "
            f"user_id={self.user_id}, status='{self.status}')>"
        )
