"""
Repository base: data access over a caller-owned Session.

Repositories flush but never commit; services decide transaction boundaries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TypeVar, Generic, Any, Sequence

from sqlalchemy.orm import Session
from sqlalchemy import Select, select, func

from shared.config.constants import Limits


ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Paging window, clamped to [1, MAX_PAGE_SIZE]."""

    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        self.limit = max(1, min(self.limit, Limits.MAX_PAGE_SIZE))
        self.offset = max(self.offset, 0)


class BaseRepository(ABC, Generic[ModelT]):
    """Subclasses name their `model` and a default ordered `_base_query()`."""

    def __init__(self, db: Session):
        self._db = db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        ...

    @abstractmethod
    def _base_query(self) -> Select:
        ...

    def find_all(self, filters: RepositoryFilters | None = None) -> Sequence[ModelT]:
        window = filters or RepositoryFilters()
        query = self._base_query().offset(window.offset).limit(window.limit)
        return self._db.execute(query).scalars().unique().all()

    def find_by_id(self, entity_id: Any) -> ModelT | None:
        return self._db.get(self.model, entity_id)

    def count(self, *criteria: Any) -> int:
        query = select(func.count()).select_from(self.model).where(*criteria)
        return self._db.scalar(query) or 0

    def save(self, entity: ModelT) -> ModelT:
        self._db.add(entity)
        self._db.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        self._db.delete(entity)
        self._db.flush()
