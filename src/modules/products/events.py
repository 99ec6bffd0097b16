"""Domain events for the Catalogue bounded context.

Produced by ``modules.products.lifecycle`` and published by the service
layer once the product write has committed.  ``aggregate_id`` is always
the product id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class ProductStockUpdated(DomainEvent):
    """Raised whenever ``stock_quantity`` actually changes."""

    old_stock: int
    new_stock: int
    operation: str = "set"
    reason: Optional[str] = None

    @property
    def difference(self) -> int:
        return self.new_stock - self.old_stock

    @property
    def went_out_of_stock(self) -> bool:
        return self.old_stock > 0 and self.new_stock == 0

    @property
    def came_back_in_stock(self) -> bool:
        return self.old_stock == 0 and self.new_stock > 0

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload.update(
            difference=self.difference,
            went_out_of_stock=self.went_out_of_stock,
            came_back_in_stock=self.came_back_in_stock,
        )
        return payload


@dataclass(frozen=True, kw_only=True)
class ProductOutOfStock(DomainEvent):
    """Raised when stock drops from a positive value to zero."""

    previous_stock: int
    reason: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class ProductBackInStock(DomainEvent):
    """Raised when stock rises from zero to a positive value."""

    new_stock: int
    previous_stock: int = 0


@dataclass(frozen=True, kw_only=True)
class ProductStatusChanged(DomainEvent):
    """Raised when the product ``status`` changes."""

    old_status: str
    new_status: str


@dataclass(frozen=True, kw_only=True)
class PreorderEnabled(DomainEvent):
    """Raised when preorders open, automatically or by an administrator."""

    is_automatic: bool
    availability_date: Optional[date] = None
    reason: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class PreorderDisabled(DomainEvent):
    """Raised when preorders close."""

    is_automatic: bool
    reason: Optional[str] = None


CATALOGUE_EVENTS: tuple[type[DomainEvent], ...] = (
    ProductStockUpdated,
    ProductOutOfStock,
    ProductBackInStock,
    ProductStatusChanged,
    PreorderEnabled,
    PreorderDisabled,
)
