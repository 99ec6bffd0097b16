"""Unit tests for the stock / preorder lifecycle rules.

Operates on unsaved ``Product`` instances: every rule mutates the
instance in memory and returns the events it produced.

Covers:
- Out-of-stock and back-in-stock transitions.
- Idempotent re-save with unchanged stock.
- Preorder eligibility and limits.
- Manual preorder configuration is never overwritten.
- Status reaction, creation, deletion and restoration.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from freezegun import freeze_time

from modules.products import lifecycle
from modules.products.constants import ProductStatus, StockOperation, StockReason
from modules.products.events import (
    PreorderDisabled,
    PreorderEnabled,
    ProductBackInStock,
    ProductOutOfStock,
    ProductStatusChanged,
    ProductStockUpdated,
)
from modules.products.lifecycle import PreorderPolicy
from modules.products.models import Product

pytestmark = pytest.mark.unit

POLICY = PreorderPolicy(auto_enable=True, wait_days=30)
NO_AUTO = PreorderPolicy(auto_enable=False, wait_days=30)


def _product(**overrides) -> Product:
    defaults = {
        "sku": "SKU-001",
        "name": "Widget",
        "price": Decimal("19.99"),
        "stock_quantity": 5,
        "status": ProductStatus.ACTIVE,
    }
    defaults.update(overrides)
    return Product(**defaults)


def _types(events) -> list[type]:
    return [type(e) for e in events]


# ===========================================================================
# Stock depleted
# ===========================================================================


class TestOutOfStock:
    def test_active_product_goes_out_of_stock_with_automatic_preorder(self):
        product = _product(stock_quantity=5)

        events = lifecycle.reconcile_stock_state(product, 5, 0, policy=POLICY)

        assert product.stock_quantity == 0
        assert product.status == ProductStatus.OUT_OF_STOCK
        assert product.is_preorder_enabled is True
        assert product.preorder_auto_enabled is True
        assert _types(events) == [
            ProductStockUpdated,
            ProductStatusChanged,
            ProductOutOfStock,
            PreorderEnabled,
        ]

    def test_event_payloads(self):
        product = _product(stock_quantity=5)

        events = lifecycle.reconcile_stock_state(
            product,
            5,
            0,
            operation=StockOperation.SUB,
            reason=StockReason.SALE,
            policy=POLICY,
        )
        stock, status, out, enabled = events

        assert (stock.old_stock, stock.new_stock) == (5, 0)
        assert (stock.operation, stock.reason) == ("sub", "sale")
        assert stock.went_out_of_stock is True
        assert (status.old_status, status.new_status) == ("active", "out_of_stock")
        assert out.previous_stock == 5
        assert out.reason == "stock_depleted"
        assert enabled.is_automatic is True
        assert enabled.reason == "out_of_stock"
        assert all(e.aggregate_id == product.id for e in events)

    @freeze_time("2026-03-01 12:00:00")
    def test_automatic_preorder_dates(self):
        product = _product(stock_quantity=1)

        events = lifecycle.reconcile_stock_state(
            product, 1, 0, policy=PreorderPolicy(wait_days=14)
        )

        assert product.preorder_available_date == date(2026, 3, 15)
        assert product.preorder_enabled_at is not None
        assert events[-1].availability_date == date(2026, 3, 15)

    def test_non_active_status_is_kept(self):
        product = _product(stock_quantity=2, status=ProductStatus.INACTIVE)

        events = lifecycle.reconcile_stock_state(product, 2, 0, policy=POLICY)

        assert product.status == ProductStatus.INACTIVE
        assert ProductStatusChanged not in _types(events)
        assert ProductOutOfStock in _types(events)

    def test_auto_enable_switched_off(self):
        product = _product(stock_quantity=2)

        events = lifecycle.reconcile_stock_state(product, 2, 0, policy=NO_AUTO)

        assert product.status == ProductStatus.OUT_OF_STOCK
        assert product.is_preorder_enabled is False
        assert PreorderEnabled not in _types(events)

    def test_manual_preorder_is_not_overwritten(self):
        product = _product(
            stock_quantity=4,
            is_preorder_enabled=True,
            preorder_auto_enabled=False,
            preorder_available_date=date(2030, 1, 1),
            preorder_limit=50,
            preorder_message="Ships in January",
        )

        events = lifecycle.reconcile_stock_state(product, 4, 0, policy=POLICY)

        assert product.is_preorder_enabled is True
        assert product.preorder_auto_enabled is False
        assert product.preorder_available_date == date(2030, 1, 1)
        assert product.preorder_limit == 50
        assert product.preorder_message == "Ships in January"
        assert product.preorder_enabled_at is None
        assert PreorderEnabled not in _types(events)


# ===========================================================================
# Stock restored
# ===========================================================================


class TestBackInStock:
    def test_auto_preorder_product_returns_to_active(self):
        product = _product(
            stock_quantity=0,
            status=ProductStatus.OUT_OF_STOCK,
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
            preorder_available_date=date(2030, 1, 1),
        )

        events = lifecycle.reconcile_stock_state(product, 0, 10, policy=POLICY)

        assert product.status == ProductStatus.ACTIVE
        assert product.is_preorder_enabled is False
        assert product.preorder_auto_enabled is False
        assert product.preorder_available_date is None
        assert _types(events) == [
            ProductStockUpdated,
            ProductBackInStock,
            PreorderDisabled,
            ProductStatusChanged,
        ]
        back, disabled = events[1], events[2]
        assert (back.new_stock, back.previous_stock) == (10, 0)
        assert disabled.is_automatic is True
        assert disabled.reason == "back_in_stock"

    def test_preorder_status_returns_to_active(self):
        product = _product(
            stock_quantity=0,
            status=ProductStatus.PREORDER,
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
        )

        lifecycle.reconcile_stock_state(product, 0, 3, policy=POLICY)

        assert product.status == ProductStatus.ACTIVE

    def test_manual_preorder_survives_restock(self):
        product = _product(
            stock_quantity=0,
            status=ProductStatus.OUT_OF_STOCK,
            is_preorder_enabled=True,
            preorder_auto_enabled=False,
        )

        events = lifecycle.reconcile_stock_state(product, 0, 7, policy=POLICY)

        assert product.is_preorder_enabled is True
        assert product.preorder_auto_enabled is False
        assert product.status == ProductStatus.ACTIVE
        assert PreorderDisabled not in _types(events)

    def test_discontinued_status_is_kept(self):
        product = _product(stock_quantity=0, status=ProductStatus.DISCONTINUED)

        lifecycle.reconcile_stock_state(product, 0, 7, policy=POLICY)

        assert product.status == ProductStatus.DISCONTINUED

    @pytest.mark.parametrize("new_stock", [1, 10, 500])
    def test_any_positive_quantity_closes_automatic_preorder(self, new_stock):
        product = _product(
            stock_quantity=0,
            status=ProductStatus.OUT_OF_STOCK,
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
        )

        lifecycle.reconcile_stock_state(product, 0, new_stock, policy=POLICY)

        assert product.is_preorder_enabled is False
        assert product.preorder_auto_enabled is False
        assert product.status == ProductStatus.ACTIVE


# ===========================================================================
# Unchanged / positive-to-positive changes
# ===========================================================================


class TestNoTransition:
    def test_unchanged_stock_emits_nothing(self):
        product = _product(stock_quantity=3)

        events = lifecycle.reconcile_stock_state(product, 3, 3, policy=POLICY)

        assert events == []
        assert product.status == ProductStatus.ACTIVE
        assert product.is_preorder_enabled is False

    def test_unchanged_zero_stock_keeps_preorder_flags(self):
        product = _product(
            stock_quantity=0,
            status=ProductStatus.OUT_OF_STOCK,
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
        )

        events = lifecycle.reconcile_stock_state(product, 0, 0, policy=POLICY)

        assert events == []
        assert product.status == ProductStatus.OUT_OF_STOCK
        assert product.is_preorder_enabled is True
        assert product.preorder_auto_enabled is True

    def test_positive_change_only_reports_stock_update(self):
        product = _product(stock_quantity=5)

        events = lifecycle.reconcile_stock_state(product, 5, 12, policy=POLICY)

        assert _types(events) == [ProductStockUpdated]
        assert events[0].difference == 7
        assert product.status == ProductStatus.ACTIVE


# ===========================================================================
# Eligibility
# ===========================================================================


class TestCanPreorder:
    def test_disabled_product_cannot_preorder(self):
        assert lifecycle.can_preorder(_product(is_preorder_enabled=False)) is False

    def test_enabled_without_limit(self):
        product = _product(is_preorder_enabled=True, preorder_count=1000)
        assert lifecycle.can_preorder(product) is True

    def test_full_preorder_cannot_be_reserved(self):
        product = _product(
            stock_quantity=0,
            status=ProductStatus.PREORDER,
            is_preorder_enabled=True,
            preorder_limit=100,
            preorder_count=100,
        )
        assert lifecycle.can_preorder(product) is False
        assert product.can_preorder() is False

    @pytest.mark.parametrize("enabled", [True, False])
    def test_limit_reached_is_never_eligible(self, enabled):
        product = _product(
            is_preorder_enabled=enabled, preorder_limit=5, preorder_count=6
        )
        assert lifecycle.can_preorder(product) is False

    def test_below_limit(self):
        product = _product(
            is_preorder_enabled=True, preorder_limit=5, preorder_count=4
        )
        assert lifecycle.can_preorder(product) is True


# ===========================================================================
# Administrative status changes
# ===========================================================================


class TestStatusChange:
    def test_unchanged_status_emits_nothing(self):
        product = _product()
        assert lifecycle.reconcile_status_change(product, "active", POLICY) == []

    def test_plain_change(self):
        product = _product()

        events = lifecycle.reconcile_status_change(
            product, ProductStatus.INACTIVE, POLICY
        )

        assert product.status == ProductStatus.INACTIVE
        assert _types(events) == [ProductStatusChanged]

    def test_preorder_status_opens_automatic_preorder(self):
        product = _product(stock_quantity=8)

        events = lifecycle.reconcile_status_change(
            product, ProductStatus.PREORDER, POLICY
        )

        assert product.status == ProductStatus.PREORDER
        assert product.is_preorder_enabled is True
        assert product.preorder_auto_enabled is True
        assert events[-1].reason == "status_preorder"

    def test_preorder_status_without_auto_enable(self):
        product = _product(stock_quantity=8)

        events = lifecycle.reconcile_status_change(
            product, ProductStatus.PREORDER, NO_AUTO
        )

        assert product.status == ProductStatus.PREORDER
        assert product.is_preorder_enabled is False
        assert _types(events) == [ProductStatusChanged]

    def test_preorder_status_keeps_existing_preorder(self):
        product = _product(is_preorder_enabled=True, preorder_auto_enabled=False)

        events = lifecycle.reconcile_status_change(
            product, ProductStatus.PREORDER, POLICY
        )

        assert _types(events) == [ProductStatusChanged]
        assert product.preorder_auto_enabled is False

    def test_active_without_stock_lands_out_of_stock(self):
        product = _product(stock_quantity=0, status=ProductStatus.DRAFT)

        events = lifecycle.reconcile_status_change(
            product, ProductStatus.ACTIVE, POLICY
        )

        assert product.status == ProductStatus.OUT_OF_STOCK
        assert product.is_preorder_enabled is True
        assert events[0].new_status == "out_of_stock"

    def test_active_without_stock_on_untracked_product(self):
        product = _product(
            stock_quantity=0, status=ProductStatus.DRAFT, track_inventory=False
        )

        lifecycle.reconcile_status_change(product, ProductStatus.ACTIVE, POLICY)

        assert product.status == ProductStatus.ACTIVE
        assert product.is_preorder_enabled is False


# ===========================================================================
# Creation / deletion / restoration
# ===========================================================================


class TestCreationDeletionRestoration:
    def test_new_product_without_stock(self):
        product = _product(stock_quantity=0)

        events = lifecycle.prepare_new_product(product, POLICY)

        assert product.status == ProductStatus.OUT_OF_STOCK
        assert product.preorder_auto_enabled is True
        assert _types(events) == [PreorderEnabled]

    def test_new_product_with_stock(self):
        product = _product(stock_quantity=3)

        assert lifecycle.prepare_new_product(product, POLICY) == []
        assert product.status == ProductStatus.ACTIVE

    def test_new_untracked_product(self):
        product = _product(stock_quantity=0, track_inventory=False)

        assert lifecycle.prepare_new_product(product, POLICY) == []
        assert product.status == ProductStatus.ACTIVE

    def test_deletion_closes_preorder(self):
        product = _product(
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
            preorder_available_date=date(2026, 11, 16),
        )

        events = lifecycle.handle_deletion(product)

        assert product.is_preorder_enabled is False
        assert product.preorder_auto_enabled is False
        assert product.preorder_available_date is None
        assert events[0].is_automatic is False
        assert events[0].reason == "product_deleted"

    def test_deletion_without_preorder(self):
        assert lifecycle.handle_deletion(_product()) == []

    def test_restoration_without_stock_reopens_preorder(self):
        product = _product(stock_quantity=0, status=ProductStatus.OUT_OF_STOCK)

        events = lifecycle.handle_restoration(product, POLICY)

        assert product.is_preorder_enabled is True
        assert events[0].reason == "product_restored"

    def test_restoration_with_stock(self):
        assert lifecycle.handle_restoration(_product(stock_quantity=2), POLICY) == []


class TestPolicy:
    def test_from_settings(self, settings):
        settings.PREORDER_AUTO_ENABLE = False
        settings.PREORDER_WAIT_DAYS = 7

        policy = PreorderPolicy.from_settings()

        assert policy == PreorderPolicy(auto_enable=False, wait_days=7)

    def test_settings_used_when_no_policy_given(self, settings):
        settings.PREORDER_WAIT_DAYS = 3
        product = _product(stock_quantity=1)

        lifecycle.reconcile_stock_state(product, 1, 0)

        expected = date.today() + timedelta(days=3)
        assert abs((product.preorder_available_date - expected).days) <= 1
