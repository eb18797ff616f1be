"""
Base Service Class.

Architecture:
    Router (thin) -> Service (business rules, queries) -> Model

Usage:
    from rest_api.services.base_service import BaseService

    class CategoryService(BaseService[Category]):
        def __init__(self, db: Session):
            super().__init__(db=db, model=Category, entity_name="Category")
"""

from __future__ import annotations

from typing import Generic, Type, TypeVar

from sqlalchemy.orm import Session

from rest_api.models import Base
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import NotFoundError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class BaseService(Generic[ModelT]):
    """
    Common plumbing for domain services: session access, lookup-or-404,
    commit with rollback.
    """

    def __init__(self, db: Session, model: Type[ModelT], entity_name: str):
        self._db = db
        self._model = model
        self._entity_name = entity_name

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    @property
    def entity_name(self) -> str:
        return self._entity_name

    def get(self, entity_id: int) -> ModelT | None:
        return self._db.get(self._model, entity_id)

    def get_or_404(self, entity_id: int) -> ModelT:
        """
        Raises:
            NotFoundError: If no row has this primary key.
        """
        entity = self._db.get(self._model, entity_id)
        if entity is None:
            raise NotFoundError(self._entity_name, entity_id)
        return entity

    def commit(self, *refresh: Base) -> None:
        safe_commit(self._db)
        for entity in refresh:
            self._db.refresh(entity)
