"""
Competitions router - /api/competitions/*

Public listing and detail, authenticated registration, and admin management
of competitions and their registrations.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.routers._common import Pagination, get_competition_pagination
from rest_api.services.domain import CompetitionFilters, CompetitionService
from shared.config.constants import CompetitionSort, UserRole
from shared.infrastructure.db import get_db
from shared.security.auth import current_user, require_roles
from shared.utils.schemas import (
    CompetitionCreate,
    CompetitionDetailOutput,
    CompetitionListResponse,
    CompetitionOutput,
    CompetitionUpdate,
    MessageResponse,
    RegistrationListResponse,
    RegistrationOutput,
    RegistrationStatusResponse,
    RegistrationStatusUpdate,
)

router = APIRouter(prefix="/api/competitions", tags=["competitions"])

require_admin = require_roles(UserRole.ADMIN)


# =============================================================================
# Public
# =============================================================================


@router.get("", response_model=CompetitionListResponse)
def list_competitions(
    search: str | None = Query(default=None, max_length=200),
    category: int | None = Query(default=None, description="Category id"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    sort: CompetitionSort = Query(default=CompetitionSort.NEWEST),
    pagination: Pagination = Depends(get_competition_pagination),
    db: Session = Depends(get_db),
) -> CompetitionListResponse:
    """
    Active competitions, filtered and paginated.

    `startDate`/`endDate` bound the competition start date, inclusive.
    Sorts: newest (creation time), popular (registrations), trending (views).
    """
    filters = CompetitionFilters(
        search=search,
        category_id=category,
        start_date=start_date,
        end_date=end_date,
        sort=sort,
    )
    items, total = CompetitionService(db).list_public(filters, pagination.offset, pagination.limit)
    return CompetitionListResponse(
        competitions=[CompetitionOutput.model_validate(c) for c in items],
        total_pages=pagination.total_pages(total),
        current_page=pagination.page,
        total_competitions=total,
    )


@router.get("/{competition_id}", response_model=CompetitionDetailOutput)
def get_competition(competition_id: int, db: Session = Depends(get_db)) -> CompetitionDetailOutput:
    """Competition detail. Every call counts as a view."""
    competition = CompetitionService(db).get_and_count_view(competition_id)
    return CompetitionDetailOutput.model_validate(competition)


# =============================================================================
# Authenticated
# =============================================================================


@router.post("/{competition_id}/register", response_model=MessageResponse)
def register_for_competition(
    competition_id: int,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    CompetitionService(db).register(competition_id, user)
    return MessageResponse(message="Registration successful, pending confirmation")


# =============================================================================
# Admin
# =============================================================================


@router.post("", response_model=CompetitionOutput, status_code=status.HTTP_201_CREATED)
def create_competition(
    body: CompetitionCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CompetitionOutput:
    competition = CompetitionService(db).create(body, admin)
    return CompetitionOutput.model_validate(competition)


@router.put("/{competition_id}", response_model=CompetitionOutput)
def update_competition(
    competition_id: int,
    body: CompetitionUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CompetitionOutput:
    """Partial update; date rules are re-checked against the merged values."""
    competition = CompetitionService(db).update(competition_id, body)
    return CompetitionOutput.model_validate(competition)


@router.delete("/{competition_id}", response_model=MessageResponse)
def delete_competition(
    competition_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    CompetitionService(db).delete(competition_id)
    return MessageResponse(message="Competition deleted")


@router.get("/{competition_id}/registrations", response_model=RegistrationListResponse)
def list_registrations(
    competition_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RegistrationListResponse:
    competition = CompetitionService(db).registrations(competition_id)
    return RegistrationListResponse(
        competition_title=competition.title,
        participants=[RegistrationOutput.model_validate(p) for p in competition.participants],
    )


@router.patch("/{competition_id}/registrations/{user_id}", response_model=RegistrationStatusResponse)
def update_registration_status(
    competition_id: int,
    user_id: int,
    body: RegistrationStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> RegistrationStatusResponse:
    """Set a participant's status; any transition is allowed."""
    participant = CompetitionService(db).update_registration_status(competition_id, user_id, body.status)
    return RegistrationStatusResponse(
        message=f"Registration {participant.status}",
        participant=RegistrationOutput.model_validate(participant),
    )
