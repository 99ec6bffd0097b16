"""Product repository interface.

Extends ``ISoftDeleteRepository[Product]`` with the look-ups the catalogue
needs: unique SKU checks and the scans used by the low-stock listing and
the batch preorder job.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import ISoftDeleteRepository, Queryable

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(ISoftDeleteRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> Queryable[Product]:
        """List live (not soft-deleted) products with optional filters."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def list_low_stock(self) -> List[Product]:
        """Tracked products with ``0 < stock <= low_stock_threshold``."""

    @abstractmethod
    def list_auto_preorder_candidates(self) -> List[Product]:
        """Tracked, zero-stock products with preorder disabled."""

    @abstractmethod
    def list_preorder_enabled(self) -> List[Product]:
        """Products currently accepting preorders."""
