"""Unit tests for PreorderService against the Django repository.

Covers:
- Manual enable / disable, including the status guard.
- Automatic enable for a single product and in batch.
- Reservations and the preorder limit.
- Global PREORDER_ENABLED / PREORDER_AUTO_ENABLE switches.
- Preorder info read model.
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.core.models import OutboxEvent
from modules.products.dtos import EnablePreorderDTO
from modules.products.exceptions import (
    PreorderLimitReached,
    PreorderNotAllowed,
    PreorderNotEnabled,
    PreorderUnavailable,
    ProductNotFound,
)
from modules.products.lifecycle import PreorderPolicy
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import PreorderService

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_product(**overrides) -> Product:
    defaults = {
        "sku": f"SKU-{uuid.uuid4().hex[:6].upper()}",
        "name": "Widget",
        "price": Decimal("19.99"),
        "stock_quantity": 10,
    }
    defaults.update(overrides)
    product = Product(**defaults)
    product.save()
    return product


@pytest.fixture
def service() -> PreorderService:
    return PreorderService(
        repository=ProductDjangoRepository(),
        policy=PreorderPolicy(auto_enable=True, wait_days=30),
    )


# ===========================================================================
# enable_preorder
# ===========================================================================


class TestEnablePreorder:
    def test_enables_manual_preorder(self, service):
        product = _make_product()
        available = date.today() + timedelta(days=20)
        dto = EnablePreorderDTO(
            available_date=available, limit=50, message="Ships soon", terms="T&C"
        )

        result = service.enable_preorder(str(product.id), dto)

        result.refresh_from_db()
        assert result.is_preorder_enabled is True
        assert result.preorder_auto_enabled is False
        assert result.preorder_available_date == available
        assert result.preorder_limit == 50
        assert result.preorder_message == "Ships soon"
        assert result.preorder_terms == "T&C"
        assert result.preorder_enabled_at is not None

    def test_status_is_unchanged(self, service):
        product = _make_product()
        result = service.enable_preorder(str(product.id), EnablePreorderDTO())
        assert result.status == ProductStatus.ACTIVE

    def test_writes_outbox_event(self, service):
        product = _make_product()
        service.enable_preorder(str(product.id), EnablePreorderDTO())
        row = OutboxEvent.objects.for_aggregate(product.id).get()
        assert row.event_type == "PreorderEnabled"
        assert row.payload["is_automatic"] is False
        assert row.payload["reason"] == "manual"

    def test_replaces_automatic_preorder_without_resetting_enabled_at(self, service):
        enabled_at = timezone.now() - timedelta(days=3)
        product = _make_product(
            stock_quantity=0,
            status=ProductStatus.OUT_OF_STOCK,
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
            preorder_enabled_at=enabled_at,
        )

        result = service.enable_preorder(str(product.id), EnablePreorderDTO(limit=5))

        assert result.preorder_auto_enabled is False
        assert result.preorder_enabled_at == enabled_at

    @pytest.mark.parametrize(
        "status", [ProductStatus.DRAFT, ProductStatus.DISCONTINUED]
    )
    def test_rejected_for_ineligible_status(self, service, status):
        product = _make_product(status=status)
        with pytest.raises(PreorderNotAllowed):
            service.enable_preorder(str(product.id), EnablePreorderDTO())
        product.refresh_from_db()
        assert product.is_preorder_enabled is False

    def test_rejected_when_globally_disabled(self, service, settings):
        settings.PREORDER_ENABLED = False
        product = _make_product()
        with pytest.raises(PreorderNotAllowed):
            service.enable_preorder(str(product.id), EnablePreorderDTO())

    def test_unknown_product_when_globally_disabled(self, service, settings):
        settings.PREORDER_ENABLED = False
        with pytest.raises(ProductNotFound):
            service.enable_preorder(str(uuid.uuid4()), EnablePreorderDTO())

    def test_unknown_product(self, service):
        with pytest.raises(ProductNotFound):
            service.enable_preorder(str(uuid.uuid4()), EnablePreorderDTO())


# ===========================================================================
# disable_preorder
# ===========================================================================


class TestDisablePreorder:
    def test_disables_and_clears_date(self, service):
        product = _make_product(
            is_preorder_enabled=True,
            preorder_available_date=date.today() + timedelta(days=5),
            preorder_count=3,
        )

        result = service.disable_preorder(str(product.id))

        assert result.is_preorder_enabled is False
        assert result.preorder_auto_enabled is False
        assert result.preorder_available_date is None
        assert result.preorder_count == 3

    def test_event_records_previous_mode(self, service):
        product = _make_product(
            stock_quantity=0, is_preorder_enabled=True, preorder_auto_enabled=True
        )
        service.disable_preorder(str(product.id), reason="supplier_cancelled")
        row = OutboxEvent.objects.for_aggregate(product.id).get()
        assert row.event_type == "PreorderDisabled"
        assert row.payload["is_automatic"] is True
        assert row.payload["reason"] == "supplier_cancelled"

    def test_not_enabled(self, service):
        product = _make_product()
        with pytest.raises(PreorderNotEnabled):
            service.disable_preorder(str(product.id))


# ===========================================================================
# Automatic preorder
# ===========================================================================


class TestCheckAutoPreorder:
    @freeze_time("2026-03-01")
    def test_enables_for_empty_tracked_product(self, service):
        product = _make_product(stock_quantity=0, status=ProductStatus.OUT_OF_STOCK)

        assert service.check_auto_preorder(str(product.id)) is True

        product.refresh_from_db()
        assert product.is_preorder_enabled is True
        assert product.preorder_auto_enabled is True
        assert product.preorder_available_date == date(2026, 3, 31)

    def test_ignores_stocked_product(self, service):
        product = _make_product(stock_quantity=4)
        assert service.check_auto_preorder(str(product.id)) is False

    def test_ignores_untracked_product(self, service):
        product = _make_product(stock_quantity=0, track_inventory=False)
        assert service.check_auto_preorder(str(product.id)) is False

    def test_keeps_manual_preorder(self, service):
        product = _make_product(
            stock_quantity=0, is_preorder_enabled=True, preorder_limit=7
        )
        assert service.check_auto_preorder(str(product.id)) is False
        product.refresh_from_db()
        assert product.preorder_auto_enabled is False
        assert product.preorder_limit == 7

    def test_noop_when_auto_disabled(self):
        service = PreorderService(
            repository=ProductDjangoRepository(),
            policy=PreorderPolicy(auto_enable=False),
        )
        product = _make_product(stock_quantity=0)
        assert service.check_auto_preorder(str(product.id)) is False


class TestBatchCheckAutoPreorder:
    def test_enables_every_candidate(self, service):
        first = _make_product(stock_quantity=0)
        second = _make_product(stock_quantity=0)
        _make_product(stock_quantity=5)

        assert service.batch_check_auto_preorder() == 2

        for product in (first, second):
            product.refresh_from_db()
            assert product.preorder_auto_enabled is True

    def test_second_run_is_idempotent(self, service):
        _make_product(stock_quantity=0)
        service.batch_check_auto_preorder()
        assert service.batch_check_auto_preorder() == 0
        assert OutboxEvent.objects.filter(event_type="PreorderEnabled").count() == 1

    def test_skipped_when_auto_disabled(self):
        service = PreorderService(
            repository=ProductDjangoRepository(),
            policy=PreorderPolicy(auto_enable=False),
        )
        _make_product(stock_quantity=0)
        assert service.batch_check_auto_preorder() == 0


# ===========================================================================
# reserve_preorder
# ===========================================================================


class TestReservePreorder:
    def test_increments_count(self, service):
        product = _make_product(stock_quantity=0, is_preorder_enabled=True)
        result = service.reserve_preorder(str(product.id), 3)
        assert result.preorder_count == 3
        product.refresh_from_db()
        assert product.preorder_count == 3

    def test_reaching_limit_exactly(self, service):
        product = _make_product(
            stock_quantity=0,
            is_preorder_enabled=True,
            preorder_limit=5,
            preorder_count=3,
        )
        result = service.reserve_preorder(str(product.id), 2)
        assert result.preorder_count == 5
        assert result.can_preorder() is False

    def test_exceeding_limit(self, service):
        product = _make_product(
            stock_quantity=0,
            is_preorder_enabled=True,
            preorder_limit=5,
            preorder_count=4,
        )
        with pytest.raises(PreorderLimitReached):
            service.reserve_preorder(str(product.id), 2)
        product.refresh_from_db()
        assert product.preorder_count == 4

    def test_full_product_is_unavailable(self, service):
        product = _make_product(
            stock_quantity=0,
            is_preorder_enabled=True,
            preorder_limit=2,
            preorder_count=2,
        )
        with pytest.raises(PreorderUnavailable):
            service.reserve_preorder(str(product.id))

    def test_not_enabled_is_unavailable(self, service):
        product = _make_product()
        with pytest.raises(PreorderUnavailable):
            service.reserve_preorder(str(product.id))

    def test_quantity_must_be_positive(self, service):
        product = _make_product(is_preorder_enabled=True)
        with pytest.raises(ValueError):
            service.reserve_preorder(str(product.id), 0)

    def test_rejected_when_globally_disabled(self, service, settings):
        settings.PREORDER_ENABLED = False
        product = _make_product(is_preorder_enabled=True)
        with pytest.raises(PreorderNotAllowed):
            service.reserve_preorder(str(product.id))

    def test_unknown_product_when_globally_disabled(self, service, settings):
        settings.PREORDER_ENABLED = False
        with pytest.raises(ProductNotFound):
            service.reserve_preorder(str(uuid.uuid4()))


# ===========================================================================
# Queries
# ===========================================================================


class TestPreorderQueries:
    def test_preorder_info(self, service):
        available = date.today() + timedelta(days=10)
        product = _make_product(
            stock_quantity=0,
            is_preorder_enabled=True,
            preorder_auto_enabled=True,
            preorder_available_date=available,
            preorder_limit=10,
            preorder_count=4,
        )

        info = service.get_preorder_info(str(product.id))

        assert info.product_id == product.id
        assert info.is_automatic is True
        assert info.available_date == available
        assert info.spots_remaining == 6
        assert info.can_preorder is True

    def test_preorder_info_unknown(self, service):
        with pytest.raises(ProductNotFound):
            service.get_preorder_info(str(uuid.uuid4()))

    def test_list_preorder_products_excludes_deleted(self, service):
        kept = _make_product(is_preorder_enabled=True)
        gone = _make_product(is_preorder_enabled=True)
        gone.delete()
        _make_product()

        assert [p.id for p in service.list_preorder_products()] == [kept.id]

    def test_can_preorder(self, service):
        assert service.can_preorder(_make_product(is_preorder_enabled=True)) is True
        assert service.can_preorder(_make_product()) is False
