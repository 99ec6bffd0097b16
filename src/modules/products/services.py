"""Catalogue service layer (Use Cases).

Orchestrates business logic for the Product aggregate, delegating
persistence to the injected ``IProductRepository`` and the stock /
preorder rules to ``modules.products.lifecycle``.

Every write follows the same path:

1. Load the product (row-locked when stock or preorder counters change).
2. Run the lifecycle rules, which mutate the instance and return events.
3. ``repository.save`` persists the product and writes the events to the
   outbox in the same transaction.
4. The events are published on the in-process bus once the transaction
   commits; nothing is published for a rolled-back write.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.products import lifecycle
from modules.products.constants import (
    REASON_MANUAL,
    StockOperation,
    StockReason,
)
from modules.products.dtos import PreorderInfoDTO
from modules.products.events import PreorderDisabled, PreorderEnabled
from modules.products.exceptions import (
    InvalidStockAdjustment,
    InventoryNotTracked,
    PreorderLimitReached,
    PreorderNotAllowed,
    PreorderNotEnabled,
    PreorderUnavailable,
    ProductAlreadyExists,
    ProductNotFound,
)
from modules.products.models import Product
from shared.infrastructure.bus import event_bus as default_event_bus

if TYPE_CHECKING:
    from modules.products.dtos import (
        AdjustStockDTO,
        AdjustStockItemDTO,
        CreateProductDTO,
        EnablePreorderDTO,
        UpdateProductDTO,
    )
    from modules.products.lifecycle import PreorderPolicy
    from modules.products.repositories.interfaces import IProductRepository
    from shared.domain.bus import IEventBus
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class _CatalogueService:
    """Shared plumbing: policy resolution, persistence and publication."""

    def __init__(
        self,
        repository: IProductRepository,
        event_bus: Optional[IEventBus] = None,
        policy: Optional[PreorderPolicy] = None,
    ) -> None:
        self._repo = repository
        self._bus = event_bus or default_event_bus
        self._policy = policy

    @property
    def policy(self) -> PreorderPolicy:
        return self._policy or lifecycle.PreorderPolicy.from_settings()

    def _get_or_raise(self, id: str, *, lock: bool = False) -> Product:
        product = self._repo.get_for_update(id) if lock else self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def _persist(self, product: Product, events: Iterable[DomainEvent]) -> Product:
        events = list(events)
        product.add_domain_events(events)
        saved = self._repo.save(product)
        if events:
            bus = self._bus
            transaction.on_commit(lambda: bus.publish_all(events))
        return saved


class ProductService(_CatalogueService):
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a new product after enforcing uniqueness rules.

        A product created with no tracked stock starts ``out_of_stock``
        with automatic preorder.

        Raises:
            ProductAlreadyExists: if SKU is already taken.
        """
        log = logger.bind(sku=dto.sku)

        if dto.sku and self._repo.get_by_sku(dto.sku):
            log.warning("product.duplicate_sku")
            raise ProductAlreadyExists(f"SKU '{dto.sku}' already registered.")

        threshold = dto.low_stock_threshold
        if threshold is None:
            threshold = getattr(settings, "PRODUCT_LOW_STOCK_THRESHOLD", 10)

        product = Product(
            sku=dto.sku or "",
            name=dto.name,
            price=dto.price,
            description=dto.description,
            short_description=dto.short_description,
            compare_price=dto.compare_price,
            cost_price=dto.cost_price,
            stock_quantity=dto.stock_quantity,
            low_stock_threshold=threshold,
            track_inventory=dto.track_inventory,
            is_featured=dto.is_featured,
            status=dto.status,
        )
        events = lifecycle.prepare_new_product(product, self.policy)
        product = self._persist(product, events)

        log.info(
            "product.created",
            product_id=str(product.id),
            sku=product.sku,
            status=product.status,
            preorder_enabled=product.is_preorder_enabled,
        )
        return product

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Update an existing product with the supplied fields.

        A new stock quantity runs the stock reactor first; an explicit
        status then goes through the status reaction, so the requested
        status is the one that sticks.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._get_or_raise(id, lock=True)
        log = logger.bind(product_id=str(id))

        data = dto.model_dump(exclude_none=True)
        new_stock = data.pop("stock_quantity", None)
        new_status = data.pop("status", None)
        stored_status = product.status

        for field, value in data.items():
            setattr(product, field, value)

        events: List[DomainEvent] = []
        if new_stock is not None:
            events += lifecycle.reconcile_stock_state(
                product,
                product.stock_quantity,
                new_stock,
                operation=StockOperation.SET,
                reason=StockReason.ADJUSTMENT,
                policy=self.policy,
            )
        # Echoing back the stored status is not a status change.
        if new_status is not None and new_status != stored_status:
            events += lifecycle.reconcile_status_change(
                product, new_status, self.policy
            )

        product = self._persist(product, events)
        log.info(
            "product.updated",
            fields=sorted(dto.model_dump(exclude_none=True)),
            event_count=len(events),
        )
        return product

    @transaction.atomic
    def adjust_stock(self, id: str, dto: AdjustStockDTO) -> Product:
        """Apply a ``set`` / ``add`` / ``sub`` stock adjustment.

        Acquires a row-level lock (``SELECT FOR UPDATE``) so the reactor
        sees the committed quantity.

        Raises:
            ProductNotFound: product does not exist.
            InventoryNotTracked: product does not track inventory.
            InvalidStockAdjustment: result would be negative.
        """
        product = self._get_or_raise(id, lock=True)
        return self._apply_adjustment(product, dto)

    @transaction.atomic
    def bulk_adjust_stock(self, items: List[AdjustStockItemDTO]) -> List[Product]:
        """Apply several adjustments all-or-nothing.

        Products are locked in primary-key order to prevent deadlocks
        between concurrent bulk adjustments.
        """
        results = []
        for item in sorted(items, key=lambda i: i.product_id):
            product = self._get_or_raise(str(item.product_id), lock=True)
            results.append(self._apply_adjustment(product, item))
        logger.info("product.bulk_stock_adjusted", count=len(results))
        return results

    def _apply_adjustment(self, product: Product, dto: AdjustStockDTO) -> Product:
        log = logger.bind(
            product_id=str(product.id),
            operation=str(dto.operation),
            quantity=dto.quantity,
            reason=str(dto.reason),
        )

        if not product.track_inventory:
            log.warning("product.stock_not_tracked")
            raise InventoryNotTracked(
                f"Product {product.sku} does not track inventory."
            )

        old_stock = product.stock_quantity
        if dto.operation == StockOperation.ADD:
            new_stock = old_stock + dto.quantity
        elif dto.operation == StockOperation.SUB:
            new_stock = old_stock - dto.quantity
        else:
            new_stock = dto.quantity

        if new_stock < 0:
            log.warning("product.stock_adjustment_rejected", current=old_stock)
            raise InvalidStockAdjustment(
                f"Product {product.sku}: cannot remove {dto.quantity}, "
                f"only {old_stock} in stock."
            )

        events = lifecycle.reconcile_stock_state(
            product,
            old_stock,
            new_stock,
            operation=dto.operation,
            reason=dto.reason,
            policy=self.policy,
        )
        product = self._persist(product, events)

        log.info(
            "product.stock_adjusted",
            old_stock=old_stock,
            new_stock=new_stock,
            notes=dto.notes,
            status=product.status,
        )
        return product

    @transaction.atomic
    def delete_product(self, id: str) -> None:
        """Soft-delete a product, closing any open preorder first.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._get_or_raise(id, lock=True)
        events = lifecycle.handle_deletion(product)
        self._persist(product, events)
        self._repo.delete(str(product.id))
        logger.info("product.deleted", product_id=str(id))

    @transaction.atomic
    def restore_product(self, id: str) -> Product:
        """Bring a soft-deleted product back into the catalogue.

        Raises:
            ProductNotFound: if no soft-deleted product has this ID.
        """
        product = self._repo.get_deleted(id)
        if not product:
            raise ProductNotFound(f"Deleted product {id} not found.")

        product.restore()
        events = lifecycle.handle_restoration(product, self.policy)
        product = self._persist(product, events)
        logger.info(
            "product.restored",
            product_id=str(id),
            preorder_enabled=product.is_preorder_enabled,
        )
        return product

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        return self._get_or_raise(id)

    def list_products(self, filters: Optional[Dict[str, Any]] = None):
        """Return a list of products, optionally filtered."""
        return self._repo.list(filters)

    def list_low_stock(self) -> List[Product]:
        return self._repo.list_low_stock()


class PreorderService(_CatalogueService):
    """Application service for preorder management and reservations."""

    @staticmethod
    def _ensure_preorders_enabled() -> None:
        if not getattr(settings, "PREORDER_ENABLED", True):
            raise PreorderNotAllowed("Preorders are disabled.")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def enable_preorder(self, id: str, dto: EnablePreorderDTO) -> Product:
        """Open preorders manually with the administrator's configuration.

        A manual configuration replaces an automatic one and is never
        overwritten by the stock reactor.

        Raises:
            ProductNotFound: product does not exist.
            PreorderNotAllowed: preorders are off or the status forbids them.
        """
        product = self._get_or_raise(id, lock=True)
        self._ensure_preorders_enabled()
        log = logger.bind(product_id=str(id), status=product.status)

        if not product.can_enable_preorder:
            log.warning("preorder.not_allowed")
            raise PreorderNotAllowed(
                f"Preorder cannot be enabled for a product in status "
                f"'{product.status}'."
            )

        if not product.is_preorder_enabled:
            product.preorder_enabled_at = timezone.now()
        product.is_preorder_enabled = True
        product.preorder_auto_enabled = False
        product.preorder_available_date = dto.available_date
        product.preorder_limit = dto.limit
        product.preorder_message = dto.message
        product.preorder_terms = dto.terms

        event = PreorderEnabled(
            aggregate_id=product.id,
            is_automatic=False,
            availability_date=dto.available_date,
            reason=REASON_MANUAL,
        )
        product = self._persist(product, [event])
        log.info(
            "preorder.enabled",
            available_date=str(dto.available_date) if dto.available_date else None,
            limit=dto.limit,
        )
        return product

    @transaction.atomic
    def disable_preorder(self, id: str, reason: str = REASON_MANUAL) -> Product:
        """Close preorders on a product.

        Raises:
            ProductNotFound: product does not exist.
            PreorderNotEnabled: preorder is not enabled for the product.
        """
        product = self._get_or_raise(id, lock=True)
        log = logger.bind(product_id=str(id), reason=reason)

        if not product.is_preorder_enabled:
            log.warning("preorder.not_enabled")
            raise PreorderNotEnabled("Preorder is not enabled for this product.")

        was_automatic = product.preorder_auto_enabled
        product.is_preorder_enabled = False
        product.preorder_auto_enabled = False
        product.preorder_available_date = None

        event = PreorderDisabled(
            aggregate_id=product.id,
            is_automatic=was_automatic,
            reason=reason,
        )
        product = self._persist(product, [event])
        log.info(
            "preorder.disabled",
            was_automatic=was_automatic,
            preorder_count=product.preorder_count,
        )
        return product

    @transaction.atomic
    def check_auto_preorder(self, id: str) -> bool:
        """Enable automatic preorder if *id* is tracked and has no stock.

        Returns ``True`` when preorder was enabled by this call.
        """
        policy = self.policy
        if not policy.auto_enable:
            return False

        product = self._get_or_raise(id, lock=True)
        return self._auto_enable(product, policy)

    @transaction.atomic
    def batch_check_auto_preorder(self) -> int:
        """Enable automatic preorder on every eligible product.

        Runs in a single transaction and is idempotent: a second run finds
        no candidates.  Returns the number of products enabled.
        """
        policy = self.policy
        if not policy.auto_enable:
            logger.info("preorder.batch_check_skipped")
            return 0

        candidates = self._repo.list_auto_preorder_candidates()
        enabled = sum(1 for product in candidates if self._auto_enable(product, policy))
        logger.info(
            "preorder.batch_check_completed",
            checked=len(candidates),
            enabled=enabled,
        )
        return enabled

    def _auto_enable(self, product: Product, policy: PreorderPolicy) -> bool:
        if product.is_preorder_enabled:
            return False
        if not product.track_inventory or product.stock_quantity > 0:
            return False

        events = lifecycle.enable_automatic_preorder(product, policy)
        self._persist(product, events)
        logger.info(
            "preorder.auto_enabled",
            product_id=str(product.id),
            available_date=str(product.preorder_available_date),
        )
        return True

    @transaction.atomic
    def reserve_preorder(self, id: str, quantity: int = 1) -> Product:
        """Count *quantity* new preorder reservations against the product.

        Raises:
            ProductNotFound: product does not exist.
            PreorderNotAllowed: preorders are globally disabled.
            PreorderUnavailable: the product does not accept preorders.
            PreorderLimitReached: the reservation would exceed the limit.
        """
        if quantity < 1:
            raise ValueError("Reservation quantity must be at least 1.")

        product = self._get_or_raise(id, lock=True)
        self._ensure_preorders_enabled()
        log = logger.bind(product_id=str(id), quantity=quantity)

        if not lifecycle.can_preorder(product):
            log.warning("preorder.unavailable")
            raise PreorderUnavailable(
                f"Product {product.sku} does not accept preorders."
            )

        remaining = product.preorder_spots_remaining
        if remaining is not None and quantity > remaining:
            log.warning("preorder.limit_reached", spots_remaining=remaining)
            raise PreorderLimitReached(
                f"Only {remaining} preorder spot(s) left for {product.sku}."
            )

        product.preorder_count += quantity
        product = self._persist(product, [])
        log.info("preorder.reserved", new_count=product.preorder_count)
        return product

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def can_preorder(self, product: Product) -> bool:
        return lifecycle.can_preorder(product)

    def get_preorder_info(self, id: str) -> PreorderInfoDTO:
        return PreorderInfoDTO.from_entity(self._get_or_raise(id))

    def list_preorder_products(self) -> List[Product]:
        return self._repo.list_preorder_enabled()
