"""Stock and preorder lifecycle rules for catalogue products.

Every function here mutates the in-memory ``Product`` and returns the list
of domain events the mutation produced.  Nothing is saved or published:
the service layer runs these rules on a (locked) instance, persists it
with a single save and publishes the returned events after commit.

Status transitions driven here:

- ``active -> out_of_stock`` when stock reaches 0.
- ``out_of_stock -> active`` and ``preorder -> active`` when stock returns.

``draft``, ``inactive`` and ``discontinued`` are only ever set by an
administrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from django.conf import settings
from django.utils import timezone

from modules.products.constants import (
    REASON_BACK_IN_STOCK,
    REASON_OUT_OF_STOCK,
    REASON_PRODUCT_DELETED,
    REASON_PRODUCT_RESTORED,
    REASON_STATUS_PREORDER,
    REASON_STOCK_DEPLETED,
    RESTOCKABLE_STATUSES,
    ProductStatus,
    StockOperation,
)
from modules.products.events import (
    PreorderDisabled,
    PreorderEnabled,
    ProductBackInStock,
    ProductOutOfStock,
    ProductStatusChanged,
    ProductStockUpdated,
)

if TYPE_CHECKING:
    from modules.products.models import Product
    from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PreorderPolicy:
    """Runtime switches for automatic preorders."""

    auto_enable: bool = True
    wait_days: int = 30

    @classmethod
    def from_settings(cls) -> PreorderPolicy:
        return cls(
            auto_enable=getattr(settings, "PREORDER_AUTO_ENABLE", True),
            wait_days=getattr(settings, "PREORDER_WAIT_DAYS", 30),
        )


def _resolve(policy: Optional[PreorderPolicy]) -> PreorderPolicy:
    return policy if policy is not None else PreorderPolicy.from_settings()


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------


def can_preorder(product: Product) -> bool:
    """Whether *product* accepts new preorder reservations."""
    if not product.is_preorder_enabled:
        return False
    if (
        product.preorder_limit is not None
        and product.preorder_count >= product.preorder_limit
    ):
        return False
    return True


# ---------------------------------------------------------------------------
# Automatic preorder
# ---------------------------------------------------------------------------


def enable_automatic_preorder(
    product: Product,
    policy: Optional[PreorderPolicy] = None,
    reason: str = REASON_OUT_OF_STOCK,
) -> list[DomainEvent]:
    policy = _resolve(policy)
    available_date = timezone.localdate() + timedelta(days=policy.wait_days)

    product.is_preorder_enabled = True
    product.preorder_auto_enabled = True
    product.preorder_enabled_at = timezone.now()
    product.preorder_available_date = available_date

    return [
        PreorderEnabled(
            aggregate_id=product.id,
            is_automatic=True,
            availability_date=available_date,
            reason=reason,
        )
    ]


def disable_automatic_preorder(product: Product) -> list[DomainEvent]:
    product.is_preorder_enabled = False
    product.preorder_auto_enabled = False
    product.preorder_available_date = None

    return [
        PreorderDisabled(
            aggregate_id=product.id,
            is_automatic=True,
            reason=REASON_BACK_IN_STOCK,
        )
    ]


# ---------------------------------------------------------------------------
# Status helpers
# ---------------------------------------------------------------------------


def _set_status(product: Product, new_status: str) -> list[DomainEvent]:
    old_status = product.status
    if old_status == new_status:
        return []
    product.status = new_status
    return [
        ProductStatusChanged(
            aggregate_id=product.id,
            old_status=str(old_status),
            new_status=str(new_status),
        )
    ]


# ---------------------------------------------------------------------------
# Stock transitions
# ---------------------------------------------------------------------------


def handle_out_of_stock(
    product: Product,
    previous_stock: int,
    policy: Optional[PreorderPolicy] = None,
) -> list[DomainEvent]:
    policy = _resolve(policy)
    events: list[DomainEvent] = []

    if product.status == ProductStatus.ACTIVE:
        events += _set_status(product, ProductStatus.OUT_OF_STOCK)

    events.append(
        ProductOutOfStock(
            aggregate_id=product.id,
            previous_stock=previous_stock,
            reason=REASON_STOCK_DEPLETED,
        )
    )

    # A manually configured preorder is left untouched.
    if not product.is_preorder_enabled and policy.auto_enable:
        events += enable_automatic_preorder(product, policy)

    return events


def handle_back_in_stock(product: Product, new_stock: int) -> list[DomainEvent]:
    events: list[DomainEvent] = [
        ProductBackInStock(
            aggregate_id=product.id,
            new_stock=new_stock,
            previous_stock=0,
        )
    ]

    if product.is_preorder_enabled and product.preorder_auto_enabled:
        events += disable_automatic_preorder(product)

    if product.status in RESTOCKABLE_STATUSES:
        events += _set_status(product, ProductStatus.ACTIVE)

    return events


def reconcile_stock_state(
    product: Product,
    old_stock: int,
    new_stock: int,
    *,
    operation: str = StockOperation.SET,
    reason: Optional[str] = None,
    policy: Optional[PreorderPolicy] = None,
) -> list[DomainEvent]:
    """Apply *new_stock* to *product* and run the stock reactor.

    Returns no events when the quantity does not change, so re-saving an
    unchanged product never alters its status or preorder flags.
    """
    if old_stock == new_stock:
        product.stock_quantity = new_stock
        return []

    product.stock_quantity = new_stock
    events: list[DomainEvent] = [
        ProductStockUpdated(
            aggregate_id=product.id,
            old_stock=old_stock,
            new_stock=new_stock,
            operation=str(operation),
            reason=str(reason) if reason is not None else None,
        )
    ]

    if old_stock > 0 and new_stock == 0:
        events += handle_out_of_stock(product, old_stock, policy)
    elif old_stock == 0 and new_stock > 0:
        events += handle_back_in_stock(product, new_stock)

    return events


# ---------------------------------------------------------------------------
# Administrative status changes
# ---------------------------------------------------------------------------


def reconcile_status_change(
    product: Product,
    new_status: str,
    policy: Optional[PreorderPolicy] = None,
) -> list[DomainEvent]:
    """Apply an administrator-requested status and its side effects.

    Asking for ``active`` on a tracked product with no stock lands on
    ``out_of_stock`` instead, with automatic preorder as on a stock-out.
    Asking for ``preorder`` opens automatic preorder when none is enabled.
    Neither automatic enable happens while ``policy.auto_enable`` is off.
    """
    policy = _resolve(policy)
    target = new_status
    redirected = (
        new_status == ProductStatus.ACTIVE
        and product.track_inventory
        and product.stock_quantity == 0
    )
    if redirected:
        target = ProductStatus.OUT_OF_STOCK

    events = _set_status(product, target)
    if not events or product.is_preorder_enabled or not policy.auto_enable:
        return events

    if target == ProductStatus.PREORDER:
        events += enable_automatic_preorder(product, policy, REASON_STATUS_PREORDER)
    elif redirected:
        events += enable_automatic_preorder(product, policy)

    return events


# ---------------------------------------------------------------------------
# Creation / deletion / restoration
# ---------------------------------------------------------------------------


def prepare_new_product(
    product: Product, policy: Optional[PreorderPolicy] = None
) -> list[DomainEvent]:
    """Align a not-yet-saved product with its initial stock.

    Only the preorder activation is reported: the product has no previous
    status for a status-change event to describe.
    """
    policy = _resolve(policy)
    if not product.track_inventory or product.stock_quantity != 0:
        return []

    if product.status == ProductStatus.ACTIVE:
        product.status = ProductStatus.OUT_OF_STOCK

    if not product.is_preorder_enabled and policy.auto_enable:
        return enable_automatic_preorder(product, policy)
    return []


def handle_deletion(product: Product) -> list[DomainEvent]:
    if not product.is_preorder_enabled:
        return []

    product.is_preorder_enabled = False
    product.preorder_auto_enabled = False
    product.preorder_available_date = None
    return [
        PreorderDisabled(
            aggregate_id=product.id,
            is_automatic=False,
            reason=REASON_PRODUCT_DELETED,
        )
    ]


def handle_restoration(
    product: Product, policy: Optional[PreorderPolicy] = None
) -> list[DomainEvent]:
    policy = _resolve(policy)
    if (
        product.track_inventory
        and product.stock_quantity == 0
        and not product.is_preorder_enabled
        and policy.auto_enable
    ):
        return enable_automatic_preorder(product, policy, REASON_PRODUCT_RESTORED)
    return []
