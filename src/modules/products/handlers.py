"""Event handlers for Catalogue domain events.

Subscribed on the in-process bus in ``ProductsConfig.ready``.  They run
after the product write has committed.
"""

from __future__ import annotations

import structlog

from modules.products.events import (
    PreorderDisabled,
    PreorderEnabled,
    ProductBackInStock,
    ProductOutOfStock,
    ProductStatusChanged,
    ProductStockUpdated,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class ProductStockUpdatedHandler(IEventHandler[ProductStockUpdated]):
    def handle(self, event: ProductStockUpdated) -> None:
        logger.info(
            "catalogue.stock_updated",
            product_id=str(event.aggregate_id),
            old_stock=event.old_stock,
            new_stock=event.new_stock,
            difference=event.difference,
            operation=event.operation,
            reason=event.reason,
        )


class ProductOutOfStockHandler(IEventHandler[ProductOutOfStock]):
    def handle(self, event: ProductOutOfStock) -> None:
        logger.warning(
            "catalogue.out_of_stock",
            product_id=str(event.aggregate_id),
            previous_stock=event.previous_stock,
        )


class ProductBackInStockHandler(IEventHandler[ProductBackInStock]):
    def handle(self, event: ProductBackInStock) -> None:
        logger.info(
            "catalogue.back_in_stock",
            product_id=str(event.aggregate_id),
            new_stock=event.new_stock,
        )


class ProductStatusChangedHandler(IEventHandler[ProductStatusChanged]):
    def handle(self, event: ProductStatusChanged) -> None:
        logger.info(
            "catalogue.status_changed",
            product_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class PreorderEnabledHandler(IEventHandler[PreorderEnabled]):
    def handle(self, event: PreorderEnabled) -> None:
        logger.info(
            "catalogue.preorder_enabled",
            product_id=str(event.aggregate_id),
            is_automatic=event.is_automatic,
            availability_date=(
                event.availability_date.isoformat()
                if event.availability_date
                else None
            ),
            reason=event.reason,
        )


class PreorderDisabledHandler(IEventHandler[PreorderDisabled]):
    def handle(self, event: PreorderDisabled) -> None:
        logger.info(
            "catalogue.preorder_disabled",
            product_id=str(event.aggregate_id),
            is_automatic=event.is_automatic,
            reason=event.reason,
        )


stock_updated_handler = ProductStockUpdatedHandler()
out_of_stock_handler = ProductOutOfStockHandler()
back_in_stock_handler = ProductBackInStockHandler()
status_changed_handler = ProductStatusChangedHandler()
preorder_enabled_handler = PreorderEnabledHandler()
preorder_disabled_handler = PreorderDisabledHandler()
