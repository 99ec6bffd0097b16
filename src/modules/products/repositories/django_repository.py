"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Missing rows are reported as ``None``; the Service Layer decides how to
translate a missing entity into a domain exception.

``save`` also writes the product's pending domain events to the outbox
in the same transaction, then clears them from the instance.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet

from modules.core.models import OutboxEvent
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "catalogue"


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a live product by primary key.

        Returns ``None`` for non-existent, soft-deleted or invalid IDs.
        """
        try:
            return Product.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_deleted(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().dead().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        """List live products with optional Django ORM look-ups.

        Returns a QuerySet so the API layer can filter, order and paginate.

        Examples of valid filters::

            {"status": "active"}
            {"name__icontains": "shirt"}
        """
        queryset = Product.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU (soft-deleted rows included: SKUs stay reserved)."""
        return Product.objects.filter(sku=sku.strip().upper()).first()

    def list_low_stock(self) -> List[Product]:
        return list(
            Product.objects.alive()
            .filter(
                track_inventory=True,
                stock_quantity__gt=0,
                stock_quantity__lte=F("low_stock_threshold"),
            )
            .order_by("stock_quantity", "name")
        )

    def list_auto_preorder_candidates(self) -> List[Product]:
        return list(
            Product.objects.alive()
            .select_for_update()
            .filter(
                track_inventory=True,
                stock_quantity=0,
                is_preorder_enabled=False,
            )
            .order_by("id")
        )

    def list_preorder_enabled(self) -> List[Product]:
        return list(
            Product.objects.alive()
            .filter(is_preorder_enabled=True)
            .order_by("preorder_available_date", "name")
        )

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product and its pending events."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()

        logger.info(
            "product.saved",
            product_id=str(entity.id),
            sku=entity.sku,
            event_count=len(events),
        )
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete a product by ID.

        Returns ``True`` if the product was found and soft-deleted,
        ``False`` if no live product exists with the given ID.
        """
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True
