"""
Category Service.

Usage:
    from rest_api.services.domain import CategoryService

    service = CategoryService(db)
    categories = service.list_all()
    category = service.create(body)
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rest_api.models import Category, Competition
from rest_api.services.base_service import BaseService
from shared.config.logging import get_logger
from shared.utils.exceptions import ConflictError
from shared.utils.schemas import CategoryCreate, CategoryUpdate

logger = get_logger(__name__)


class CategoryService(BaseService[Category]):
    """
    Business rules:
    - Category names are unique (case-sensitive, as stored)
    - A category referenced by any competition cannot be deleted
    """

    def __init__(self, db: Session):
        super().__init__(db=db, model=Category, entity_name="Category")

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_all(self) -> list[Category]:
        return list(self.db.scalars(select(Category).order_by(Category.name)))

    def name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        stmt = select(Category.id).where(Category.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        return self.db.scalar(stmt) is not None

    def names(self) -> list[str]:
        return list(self.db.scalars(select(Category.name).order_by(Category.name)))

    # =========================================================================
    # Command Methods
    # =========================================================================

    def create(self, body: CategoryCreate) -> Category:
        if self.name_taken(body.name):
            raise ConflictError("Category already exists", name=body.name)

        category = Category(name=body.name, description=body.description)
        self.db.add(category)
        self._commit_unique(category)
        logger.info("Category created", category_id=category.id, name=category.name)
        return category

    def update(self, category_id: int, body: CategoryUpdate) -> Category:
        category = self.get_or_404(category_id)
        changes = body.model_dump(exclude_unset=True)

        new_name = changes.get("name")
        if new_name and new_name != category.name and self.name_taken(new_name, exclude_id=category.id):
            raise ConflictError("Category already exists", name=new_name)

        for field, value in changes.items():
            if field == "name" and value is None:
                continue
            setattr(category, field, value)

        self._commit_unique(category)
        return category

    def _commit_unique(self, category: Category) -> None:
        """Commit, reporting a concurrent duplicate name as a conflict."""
        name = category.name
        try:
            self.commit(category)
        except IntegrityError:
            raise ConflictError("Category already exists", name=name)

    def delete(self, category_id: int) -> None:
        category = self.get_or_404(category_id)

        in_use = self.db.scalar(
            select(func.count()).select_from(Competition).where(Competition.category_id == category.id)
        )
        if in_use:
            raise ConflictError(
                "Category is in use by existing competitions",
                category_id=category.id,
                competitions=in_use,
            )

        self.db.delete(category)
        self.commit()
        logger.info("Category deleted", category_id=category_id)
