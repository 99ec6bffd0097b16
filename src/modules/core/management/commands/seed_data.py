from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.products.constants import ProductStatus, StockOperation, StockReason
from modules.products.dtos import (
    AdjustStockDTO,
    CreateProductDTO,
    EnablePreorderDTO,
    UpdateProductDTO,
)
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import PreorderService, ProductService


class Command(BaseCommand):
    help = "Seed database with a demo catalogue covering every stock / preorder state."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        repository = ProductDjangoRepository()
        self._products = ProductService(repository=repository)
        self._preorders = PreorderService(repository=repository)

        users_created = self._seed_users()
        products = self._seed_products()
        self._seed_lifecycle_states(products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"preorders={Product.objects.alive().filter(is_preorder_enabled=True).count()}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user(
                "manager", password="manager123", is_staff=True
            )
            created += 1
        return created

    def _seed_products(self) -> dict[str, Product]:
        self.stdout.write("Creating products...")
        products: dict[str, Product] = {}
        catalog = [
            ("ELEC-001", "Monitor 27\"", Decimal("1299.90"), True),
            ("ELEC-002", "Mechanical Keyboard", Decimal("399.90"), True),
            ("ELEC-003", "Gaming Mouse", Decimal("249.90"), True),
            ("ELEC-004", "Laptop 14\"", Decimal("3999.00"), True),
            ("ELEC-005", "Headset", Decimal("299.90"), True),
            ("FURN-001", "Office Desk", Decimal("899.00"), True),
            ("FURN-002", "Ergonomic Chair", Decimal("1499.00"), True),
            ("FURN-003", "Bookcase", Decimal("699.00"), True),
            ("OFF-001", "A4 Paper", Decimal("29.90"), True),
            ("OFF-002", "Blue Pen", Decimal("4.90"), True),
            ("OFF-003", "Notebook", Decimal("19.90"), True),
            ("SERV-001", "Extended Warranty", Decimal("149.90"), False),
        ]
        for sku, name, price, tracked in catalog:
            existing = Product.objects.filter(sku=sku).first()
            if existing:
                products[sku] = existing
                continue
            products[sku] = self._products.create_product(
                CreateProductDTO(
                    sku=sku,
                    name=name,
                    price=price,
                    compare_price=(
                        (price * Decimal("1.20")).quantize(Decimal("0.01"))
                        if random.random() < 0.3
                        else None
                    ),
                    stock_quantity=random.randint(20, 200) if tracked else 0,
                    track_inventory=tracked,
                    is_featured=random.random() < 0.25,
                )
            )
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_lifecycle_states(self, products: dict[str, Product]) -> None:
        self.stdout.write("Driving lifecycle states...")

        # Sold out: out_of_stock + automatic preorder.
        sold_out = products["ELEC-004"]
        if sold_out.stock_quantity > 0:
            self._products.adjust_stock(
                str(sold_out.id),
                AdjustStockDTO(
                    quantity=sold_out.stock_quantity,
                    operation=StockOperation.SUB,
                    reason=StockReason.SALE,
                ),
            )

        # Low stock.
        low = products["ELEC-005"]
        self._products.adjust_stock(
            str(low.id),
            AdjustStockDTO(quantity=3, operation=StockOperation.SET),
        )

        # Manual preorder with a limit and some reservations.
        manual = products["FURN-002"]
        if not manual.is_preorder_enabled:
            self._preorders.enable_preorder(
                str(manual.id),
                EnablePreorderDTO(
                    available_date=timezone.localdate() + timedelta(days=45),
                    limit=25,
                    message="New colours ship next month.",
                ),
            )
            self._preorders.reserve_preorder(str(manual.id), quantity=5)

        # Administrative statuses.
        self._set_status(products["FURN-003"], ProductStatus.DISCONTINUED)
        self._set_status(products["OFF-003"], ProductStatus.DRAFT)

        self.stdout.write(self.style.SUCCESS("Driving lifecycle states... Done!"))

    def _set_status(self, product: Product, status: str) -> None:
        if product.status != status:
            self._products.update_product(
                str(product.id), UpdateProductDTO(status=status)
            )
