"""Generic repository interfaces (Dependency Inversion Principle).

``IRepository[T]`` is the base contract every domain repository extends.
``ISoftDeleteRepository[T]`` adds the look-ups needed by aggregates built
on ``SoftDeleteModel``: a row-locked read for read-modify-write use cases
and access to soft-deleted rows for restoration.  Service-layer code
depends on these abstractions, never on the Django ORM directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

from django.db import models

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Queryable(Protocol[T_co]):
    def filter(self, **kwargs: Any) -> models.QuerySet: ...


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Missing rows are reported as ``None``; raising is left to the service.
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve a live entity by its primary key."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> Queryable[T]:
        """List live entities with optional filters."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete an entity; ``False`` when nothing was deleted."""


class ISoftDeleteRepository(IRepository[T]):
    """Repository for soft-deletable aggregates written under row locks."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[T]:
        """Retrieve a live entity with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic``.
        """

    @abstractmethod
    def get_deleted(self, id: str) -> Optional[T]:
        """Retrieve a soft-deleted entity, locked, for restoration."""
