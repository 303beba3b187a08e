"""Base repository with shared get-by-ID and pagination patterns.

Subclasses set ``model_class`` and ``resource_name``; the base provides
lookups that raise ``NotFoundError`` and a paginated fetch. Override
``_base_query()`` to apply default filters.
"""

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import NotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:   The SQLAlchemy model (e.g., Project)
        resource_name: Name used in NotFound messages (e.g., "Project")
    """

    model_class: Type[ModelT]
    resource_name: str = "Resource"

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def get_by_id(self, entity_id: int) -> ModelT:
        """Get entity by primary key. Raises NotFoundError if missing."""
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise NotFoundError(self.resource_name, entity_id)
        return entity

    def get_by_id_optional(self, entity_id: int) -> Optional[ModelT]:
        return self._base_query().filter(self.model_class.id == entity_id).first()

    def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        self.db.flush()
        self.db.refresh(entity)
        return entity

    def delete(self, entity: ModelT) -> None:
        self.db.delete(entity)
        self.db.flush()

    @staticmethod
    def paginate(query: Query, page: int, limit: int) -> tuple[list, int]:
        """Return ``(items, total)`` for a 1-based page of *query*."""
        total = query.order_by(None).count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return items, total
