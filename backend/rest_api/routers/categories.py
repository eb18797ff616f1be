"""
Categories router - /api/categories/*
Public reads, admin writes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.services.domain import CategoryService
from shared.config.constants import UserRole
from shared.infrastructure.db import get_db
from shared.security.auth import require_roles
from shared.utils.schemas import CategoryCreate, CategoryOutput, CategoryUpdate, MessageResponse

router = APIRouter(prefix="/api/categories", tags=["categories"])

require_admin = require_roles(UserRole.ADMIN)


@router.get("", response_model=list[CategoryOutput])
def list_categories(db: Session = Depends(get_db)) -> list[CategoryOutput]:
    return [CategoryOutput.model_validate(c) for c in CategoryService(db).list_all()]


@router.get("/{category_id}", response_model=CategoryOutput)
def get_category(category_id: int, db: Session = Depends(get_db)) -> CategoryOutput:
    return CategoryOutput.model_validate(CategoryService(db).get_or_404(category_id))


@router.post("", response_model=CategoryOutput, status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CategoryOutput:
    return CategoryOutput.model_validate(CategoryService(db).create(body))


@router.put("/{category_id}", response_model=CategoryOutput)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CategoryOutput:
    return CategoryOutput.model_validate(CategoryService(db).update(category_id, body))


@router.delete("/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Categories still referenced by competitions cannot be deleted (409)."""
    CategoryService(db).delete(category_id)
    return MessageResponse(message="Category deleted")
