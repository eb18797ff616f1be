"""
Competition Service.

Handles listing/search, view counting, the registration workflow, and admin
CRUD with date-invariant checks.

Usage:
    from rest_api.services.domain import CompetitionService

    service = CompetitionService(db)
    items, total = service.list_public(filters, offset=0, limit=10)
    service.register(competition_id, user)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Category, Competition, CompetitionParticipant, User, as_utc, utcnow
from rest_api.services.base_service import BaseService
from shared.config.constants import CompetitionSort, RegistrationStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.schemas import CompetitionCreate, CompetitionUpdate
from shared.utils.validators import escape_like_pattern, sanitize_search_term

logger = get_logger(__name__)


@dataclass
class CompetitionFilters:
    """Public listing filters. Dates bound the competition start date (inclusive)."""

    search: str | None = None
    category_id: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    sort: CompetitionSort = CompetitionSort.NEWEST


def check_schedule(start_date: datetime, end_date: datetime, registration_deadline: datetime) -> None:
    """
    Raises:
        ValidationError: end_date <= start_date, or registration_deadline >= start_date
    """
    start, end, deadline = as_utc(start_date), as_utc(end_date), as_utc(registration_deadline)
    if end <= start:
        raise ValidationError("End date must be after start date")
    if deadline >= start:
        raise ValidationError("Registration deadline must be before start date")


_SORT_ORDER = {
    CompetitionSort.NEWEST: (Competition.created_at.desc(), Competition.id.desc()),
    CompetitionSort.POPULAR: (Competition.registration_count.desc(), Competition.created_at.desc()),
    CompetitionSort.TRENDING: (Competition.views.desc(), Competition.created_at.desc()),
}

# Columns an update may change but never clear (wire name by attribute)
_REQUIRED_ON_UPDATE = {
    "title": "title",
    "description": "description",
    "category_id": "category",
    "rules": "rules",
    "start_date": "startDate",
    "end_date": "endDate",
    "registration_deadline": "registrationDeadline",
    "is_active": "isActive",
}


class CompetitionService(BaseService[Competition]):
    """
    Business rules:
    - Public listing only shows active competitions
    - Registration: deadline first, then capacity, then duplicate check
    - registration_count always equals the number of participant rows
    - end_date > start_date and registration_deadline < start_date
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=Competition, entity_name="Competition")

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_public(
        self,
        filters: CompetitionFilters,
        offset: int,
        limit: int,
    ) -> tuple[list[Competition], int]:
        """Return one page of active competitions and the total match count."""
        conditions: list[Any] = [Competition.is_active.is_(True)]

        search = sanitize_search_term(filters.search)
        if search:
            pattern = f"%{escape_like_pattern(search)}%"
            conditions.append(
                or_(
                    Competition.title.ilike(pattern, escape="\\"),
                    Competition.description.ilike(pattern, escape="\\"),
                )
            )

        if filters.category_id is not None:
            conditions.append(Competition.category_id == filters.category_id)
        if filters.start_date is not None:
            conditions.append(Competition.start_date >= as_utc(filters.start_date))
        if filters.end_date is not None:
            conditions.append(Competition.start_date <= as_utc(filters.end_date))

        total = self.db.scalar(select(func.count(Competition.id)).where(*conditions)) or 0

        stmt = (
            select(Competition)
            .where(*conditions)
            .options(selectinload(Competition.category), selectinload(Competition.participants))
            .order_by(*_SORT_ORDER[filters.sort])
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.scalars(stmt)), total

    def get_and_count_view(self, competition_id: int) -> Competition:
        """Fetch a competition and bump its view counter (no per-viewer dedup)."""
        competition = self.get_or_404(competition_id)
        # Atomic increment, no read-modify-write
        self.db.execute(
            update(Competition)
            .where(Competition.id == competition_id)
            .values(views=Competition.views + 1)
            .execution_options(synchronize_session=False)
        )
        self.commit(competition)
        return competition

    def registrations(self, competition_id: int) -> Competition:
        competition = self.db.scalar(
            select(Competition)
            .where(Competition.id == competition_id)
            .options(selectinload(Competition.participants).selectinload(CompetitionParticipant.user))
        )
        if competition is None:
            raise NotFoundError("Competition", competition_id)
        return competition

    def for_participant(self, user_id: int) -> list[tuple[Competition, CompetitionParticipant]]:
        """Competitions the user registered for, with the user's participant row."""
        rows = self.db.execute(
            select(Competition, CompetitionParticipant)
            .join(CompetitionParticipant, CompetitionParticipant.competition_id == Competition.id)
            .where(CompetitionParticipant.user_id == user_id)
            .options(selectinload(Competition.category))
            .order_by(CompetitionParticipant.registered_at.desc())
        ).all()
        return [(competition, participant) for competition, participant in rows]

    def newest_active(self, limit: int) -> list[Competition]:
        return list(
            self.db.scalars(
                select(Competition)
                .where(Competition.is_active.is_(True))
                .options(selectinload(Competition.category))
                .order_by(Competition.created_at.desc(), Competition.id.desc())
                .limit(limit)
            )
        )

    def _participant_count(self, competition_id: int) -> int:
        return self.db.scalar(
            select(func.count(CompetitionParticipant.id)).where(
                CompetitionParticipant.competition_id == competition_id
            )
        ) or 0

    def sync_registration_counts(self, competition_ids: list[int]) -> None:
        """Recompute registration_count from the participant rows (caller commits)."""
        if not competition_ids:
            return
        competitions = self.db.scalars(select(Competition).where(Competition.id.in_(competition_ids))).all()
        for competition in competitions:
            self.db.expire(competition, ["participants"])
            competition.registration_count = self._participant_count(competition.id)

    def _find_participant(self, competition_id: int, user_id: int) -> CompetitionParticipant | None:
        return self.db.scalar(
            select(CompetitionParticipant).where(
                CompetitionParticipant.competition_id == competition_id,
                CompetitionParticipant.user_id == user_id,
            )
        )

    # =========================================================================
    # Registration workflow
    # =========================================================================

    def register(self, competition_id: int, user: User) -> CompetitionParticipant:
        """
        Register `user` as a pending participant.

        Raises:
            NotFoundError: competition does not exist
            ValidationError: deadline passed / competition full / already registered
        """
        competition = self.get_or_404(competition_id)

        if utcnow() > as_utc(competition.registration_deadline):
            raise ValidationError("Registration deadline has passed", competition_id=competition_id)

        count = self._participant_count(competition.id)
        if competition.max_participants and count >= competition.max_participants:
            raise ValidationError("Competition is full", competition_id=competition_id)

        if self._find_participant(competition.id, user.id) is not None:
            raise ValidationError("User already registered", competition_id=competition_id, user_id=user.id)

        participant = CompetitionParticipant(
            competition_id=competition.id,
            user_id=user.id,
            status=RegistrationStatus.PENDING.value,
        )
        self.db.add(participant)
        try:
            self.db.flush()
        except IntegrityError:
            # A concurrent request inserted the same (competition, user) pair
            self.db.rollback()
            raise ValidationError("User already registered", competition_id=competition_id, user_id=user.id)

        competition.registration_count = self._participant_count(competition.id)
        if competition not in user.registered_competitions:
            user.registered_competitions.append(competition)

        self.commit(participant)
        logger.info(
            "Competition registration",
            competition_id=competition.id,
            user_id=user.id,
            registration_count=competition.registration_count,
        )
        return participant

    def update_registration_status(
        self,
        competition_id: int,
        user_id: int,
        status: RegistrationStatus,
    ) -> CompetitionParticipant:
        """Any transition between pending/confirmed/rejected is allowed."""
        competition = self.get_or_404(competition_id)
        participant = self._find_participant(competition.id, user_id)
        if participant is None:
            raise NotFoundError("Participant", user_id, competition_id=competition_id)

        previous = participant.status
        participant.status = status.value
        self.commit(participant)
        logger.info(
            "Registration status changed",
            competition_id=competition_id,
            user_id=user_id,
            from_status=previous,
            to_status=participant.status,
        )
        return participant

    # =========================================================================
    # Admin CRUD
    # =========================================================================

    def _require_category(self, category_id: int) -> None:
        if self.db.get(Category, category_id) is None:
            raise ValidationError("Category not found", category_id=category_id)

    def create(self, body: CompetitionCreate, creator: User) -> Competition:
        check_schedule(body.start_date, body.end_date, body.registration_deadline)
        self._require_category(body.category_id)

        competition = Competition(
            title=body.title,
            description=body.description,
            category_id=body.category_id,
            rules=body.rules,
            prizes=body.prizes,
            start_date=body.start_date,
            end_date=body.end_date,
            registration_deadline=body.registration_deadline,
            max_participants=body.max_participants,
            is_active=body.is_active,
            created_by_id=creator.id,
        )
        self.db.add(competition)
        self.commit(competition)
        logger.info("Competition created", competition_id=competition.id, created_by=creator.id)
        return competition

    def update(self, competition_id: int, body: CompetitionUpdate) -> Competition:
        competition = self.get_or_404(competition_id)
        changes = body.model_dump(exclude_unset=True)
        cleared = [wire for field, wire in _REQUIRED_ON_UPDATE.items() if field in changes and changes[field] is None]
        if cleared:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": wire, "message": "Field cannot be null"} for wire in cleared],
                competition_id=competition_id,
            )

        check_schedule(
            changes.get("start_date", competition.start_date),
            changes.get("end_date", competition.end_date),
            changes.get("registration_deadline", competition.registration_deadline),
        )
        if "category_id" in changes:
            self._require_category(changes["category_id"])

        for field, value in changes.items():
            setattr(competition, field, value)

        self.commit(competition)
        logger.info("Competition updated", competition_id=competition.id, fields=sorted(changes))
        return competition

    def delete(self, competition_id: int) -> None:
        competition = self.get_or_404(competition_id)
        self.db.delete(competition)
        self.commit()
        logger.info("Competition deleted", competition_id=competition_id)
