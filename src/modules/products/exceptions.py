"""Catalogue domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class ProductDomainError(Exception):
    """Base class for catalogue business-rule violations."""


class ProductAlreadyExists(ProductDomainError):
    """A product with the same SKU already exists."""


class ProductNotFound(ProductDomainError):
    """The requested product does not exist or has been soft-deleted."""


class IdentifierGenerationFailed(ProductDomainError):
    """No free slug / SKU / barcode was found within the retry limit."""


class InventoryNotTracked(ProductDomainError):
    """Stock was adjusted on a product with ``track_inventory=False``."""


class InvalidStockAdjustment(ProductDomainError):
    """The adjustment would leave the stock quantity negative."""


class PreorderError(ProductDomainError):
    """Base class for preorder business-rule violations."""


class PreorderNotEnabled(PreorderError):
    """Preorder was disabled on a product that does not have it enabled."""


class PreorderNotAllowed(PreorderError):
    """Preorders are globally disabled or the product status forbids them."""


class PreorderUnavailable(PreorderError):
    """The product does not currently accept preorder reservations."""


class PreorderLimitReached(PreorderError):
    """The reservation would exceed ``preorder_limit``."""
