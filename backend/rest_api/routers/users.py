"""
Users router - /api/users/*

Self-service (my competitions, profile, password) for any authenticated
user; listing, role changes and deletion for admins. Static paths are
declared before `/{user_id}`.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.services.domain import CompetitionService, UserService
from shared.config.constants import UserRole
from shared.infrastructure.db import get_db
from shared.security.auth import current_user, require_roles
from shared.utils.schemas import (
    CategoryRef,
    ChangePasswordRequest,
    MyCompetitionOutput,
    MyCompetitionsResponse,
    ProfileResponse,
    ProfileUpdate,
    RoleUpdate,
    SuccessResponse,
    UserListResponse,
    UserOutput,
    UserResponse,
)

router = APIRouter(prefix="/api/users", tags=["users"])

require_admin = require_roles(UserRole.ADMIN)


# =============================================================================
# Self-service
# =============================================================================


@router.get("/my-competitions", response_model=MyCompetitionsResponse)
def my_competitions(
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> MyCompetitionsResponse:
    """Competitions the caller registered for, with their registration status."""
    rows = CompetitionService(db).for_participant(user.id)
    return MyCompetitionsResponse(
        competitions=[
            MyCompetitionOutput(
                id=competition.id,
                title=competition.title,
                description=competition.description,
                category=CategoryRef.model_validate(competition.category) if competition.category else None,
                start_date=competition.start_date,
                end_date=competition.end_date,
                registration_status=participant.status,
                registered_at=participant.registered_at,
            )
            for competition, participant in rows
        ]
    )


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdate,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    updated = UserService(db).update_profile(user, body)
    return ProfileResponse(user=UserOutput.model_validate(updated))


@router.put("/change-password", response_model=SuccessResponse)
def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    UserService(db).change_password(user, body)
    return SuccessResponse(message="Password updated successfully")


# =============================================================================
# Admin
# =============================================================================


@router.get("", response_model=UserListResponse)
def list_users(
    role: UserRole | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserListResponse:
    """All users, newest first. `search` matches name or email, case-insensitively."""
    users = UserService(db).list_users(role=role, search=search)
    return UserListResponse(users=[UserOutput.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserResponse:
    return UserResponse(user=UserOutput.model_validate(UserService(db).get_or_404(user_id)))


@router.put("/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    body: RoleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserResponse:
    user = UserService(db).update_role(user_id, body.role)
    return UserResponse(user=UserOutput.model_validate(user))


@router.delete("/{user_id}", response_model=SuccessResponse)
def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    UserService(db).delete_user(user_id, acting_user=admin)
    return SuccessResponse(message="User deleted")
