"""Catalogue DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF views) and the
Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateProductDTO`` / ``UpdateProductDTO``: product writes.
- ``AdjustStockDTO`` / ``AdjustStockItemDTO``: stock adjustments.
- ``EnablePreorderDTO``: manual preorder configuration.
- ``PreorderInfoDTO``: preorder read model.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Optional
from uuid import UUID

from django.utils import timezone
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from modules.products.constants import ProductStatus, StockOperation, StockReason

if TYPE_CHECKING:
    from modules.products.models import Product


def _positive_price(v: Decimal) -> Decimal:
    if v <= 0:
        raise ValueError("Price must be greater than zero.")
    return v


def _non_negative_amount(v: Decimal) -> Decimal:
    if v < 0:
        raise ValueError("Amount cannot be negative.")
    return v


def _non_negative_stock(v: int) -> int:
    if v < 0:
        raise ValueError("Stock quantity cannot be negative.")
    return v


Price = Annotated[Decimal, AfterValidator(_positive_price)]
Amount = Annotated[Decimal, AfterValidator(_non_negative_amount)]
StockQuantity = Annotated[int, AfterValidator(_non_negative_stock)]


# ---------------------------------------------------------------------------
# Product input DTOs
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    ``sku`` is optional: a ``PROD-XXXXXXXX`` code is generated when it is
    omitted.  A product created with zero tracked stock starts out of stock
    with automatic preorder.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    price: Price
    sku: Optional[str] = None
    description: str = ""
    short_description: str = ""
    compare_price: Optional[Amount] = None
    cost_price: Optional[Amount] = None
    stock_quantity: StockQuantity = 0
    low_stock_threshold: Optional[StockQuantity] = None
    track_inventory: bool = True
    is_featured: bool = False
    status: ProductStatus = ProductStatus.ACTIVE

    @field_validator("sku")
    @classmethod
    def normalise_sku(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        if not v:
            raise ValueError("SKU must not be empty.")
        return v

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()


class UpdateProductDTO(BaseModel):
    """Immutable DTO for product update requests.

    All fields are optional: only supplied fields will be updated.
    A new ``stock_quantity`` runs the stock reactor; a new ``status`` runs
    the status reaction.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    price: Optional[Price] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    compare_price: Optional[Amount] = None
    cost_price: Optional[Amount] = None
    stock_quantity: Optional[StockQuantity] = None
    low_stock_threshold: Optional[StockQuantity] = None
    track_inventory: Optional[bool] = None
    is_featured: Optional[bool] = None
    status: Optional[ProductStatus] = None


# ---------------------------------------------------------------------------
# Stock DTOs
# ---------------------------------------------------------------------------


class AdjustStockDTO(BaseModel):
    """A single stock adjustment: ``set`` to, ``add`` or ``sub`` quantity."""

    model_config = ConfigDict(frozen=True)

    quantity: int
    operation: StockOperation = StockOperation.SET
    reason: StockReason = StockReason.ADJUSTMENT
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Quantity cannot be negative.")
        return v


class AdjustStockItemDTO(AdjustStockDTO):
    """An adjustment addressed to a product, used by bulk adjustments."""

    product_id: UUID


# ---------------------------------------------------------------------------
# Preorder DTOs
# ---------------------------------------------------------------------------


class EnablePreorderDTO(BaseModel):
    """Manual preorder configuration supplied by an administrator."""

    model_config = ConfigDict(frozen=True)

    available_date: Optional[date] = None
    limit: Optional[int] = None
    message: str = Field(default="", max_length=1000)
    terms: str = Field(default="", max_length=2000)

    @field_validator("limit")
    @classmethod
    def limit_must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Preorder limit must be at least 1.")
        return v

    @model_validator(mode="after")
    def available_date_not_in_past(self) -> EnablePreorderDTO:
        today = timezone.localdate()
        if self.available_date is not None and self.available_date < today:
            raise ValueError("Available date cannot be in the past.")
        return self


class PreorderInfoDTO(BaseModel):
    """Read model describing a product's preorder state."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    is_preorder_enabled: bool
    is_automatic: bool
    available_date: Optional[date]
    limit: Optional[int]
    current_count: int
    spots_remaining: Optional[int]
    can_preorder: bool
    message: str
    terms: str

    @classmethod
    def from_entity(cls, product: Product) -> PreorderInfoDTO:
        return cls(
            product_id=product.id,
            is_preorder_enabled=product.is_preorder_enabled,
            is_automatic=product.preorder_auto_enabled,
            available_date=product.preorder_available_date,
            limit=product.preorder_limit,
            current_count=product.preorder_count,
            spots_remaining=product.preorder_spots_remaining,
            can_preorder=product.can_preorder(),
            message=product.preorder_message,
            terms=product.preorder_terms,
        )

