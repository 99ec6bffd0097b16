"""Catalogue product model.

Business rules implemented:
- SKU, slug and barcode are unique in the catalogue.
- Price must be greater than zero; compare / cost prices are non-negative.
- Stock quantity and preorder counters cannot be negative.
- ``preorder_auto_enabled`` implies ``is_preorder_enabled``.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).

Status and preorder transitions are *not* triggered by this model: the
service layer runs ``modules.products.lifecycle`` explicitly before saving.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel
from modules.products.constants import (
    PREORDER_ELIGIBLE_STATUSES,
    PURCHASABLE_STATUSES,
    VISIBLE_STATUSES,
    ProductStatus,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Product(DomainEventMixin, SoftDeleteModel):
    """Product aggregate root.

    ``sku`` is normalised to uppercase on save to prevent visual duplicates
    (e.g. "prod-01" vs "PROD-01").  Lifecycle events produced by the
    service are collected with ``add_domain_event`` and written to the
    outbox by the repository on save.
    """

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    sku = models.CharField(max_length=64, unique=True, blank=True)
    barcode = models.CharField(max_length=32, unique=True, null=True, blank=True)
    short_description = models.CharField(max_length=500, blank=True, default="")
    description = models.TextField(blank=True, default="")
    is_featured = models.BooleanField(default=False)

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    compare_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    cost_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    track_inventory = models.BooleanField(default=True)
    stock_quantity = models.PositiveIntegerField(default=0)
    low_stock_threshold = models.PositiveIntegerField(default=10)

    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    is_preorder_enabled = models.BooleanField(default=False)
    preorder_auto_enabled = models.BooleanField(default=False)
    preorder_available_date = models.DateField(null=True, blank=True)
    preorder_limit = models.PositiveIntegerField(null=True, blank=True)
    preorder_count = models.PositiveIntegerField(default=0)
    preorder_message = models.TextField(blank=True, default="")
    preorder_terms = models.TextField(blank=True, default="")
    preorder_enabled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
            models.Index(
                fields=["is_preorder_enabled"], name="products_preorder_idx"
            ),
            models.Index(
                fields=["is_preorder_enabled", "preorder_available_date"],
                name="products_preorder_date_idx",
            ),
            models.Index(
                fields=["track_inventory", "stock_quantity"],
                name="products_inventory_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(preorder_auto_enabled=False)
                | models.Q(is_preorder_enabled=True),
                name="products_auto_preorder_requires_enabled",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})
        if self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValidationError(
                {"stock_quantity": "Stock quantity cannot be negative."}
            )
        if self.preorder_auto_enabled and not self.is_preorder_enabled:
            raise ValidationError(
                {
                    "preorder_auto_enabled": (
                        "Automatic preorder requires preorder to be enabled."
                    )
                }
            )
        if self.preorder_limit is not None and self.preorder_limit < 1:
            raise ValidationError(
                {"preorder_limit": "Preorder limit must be at least 1."}
            )

    # ------------------------------------------------------------------
    # Stock helpers
    # ------------------------------------------------------------------

    @property
    def is_in_stock(self) -> bool:
        return self.stock_quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return 0 < self.stock_quantity <= self.low_stock_threshold

    @property
    def discount_percentage(self) -> Optional[Decimal]:
        """Percentage off ``compare_price``, or ``None`` when not on sale."""
        if self.compare_price and self.compare_price > self.price:
            ratio = (self.compare_price - self.price) / self.compare_price
            return round(ratio * 100, 2)
        return None

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    @property
    def is_available_for_purchase(self) -> bool:
        return self.status in PURCHASABLE_STATUSES

    @property
    def is_visible(self) -> bool:
        return self.status in VISIBLE_STATUSES

    @property
    def can_enable_preorder(self) -> bool:
        return self.status in PREORDER_ELIGIBLE_STATUSES

    # ------------------------------------------------------------------
    # Preorder helpers
    # ------------------------------------------------------------------

    @property
    def preorder_spots_remaining(self) -> Optional[int]:
        if self.preorder_limit is None:
            return None
        return max(self.preorder_limit - self.preorder_count, 0)

    def can_preorder(self) -> bool:
        from modules.products.lifecycle import can_preorder

        return can_preorder(self)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.sku:
            self.sku = self.sku.strip().upper()
        if is_new:
            from modules.products.identifiers import assign_missing_identifiers

            assign_missing_identifiers(self)
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                sku=self.sku,
                slug=self.slug,
                status=self.status,
            )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"
