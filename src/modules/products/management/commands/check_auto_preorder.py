from __future__ import annotations

from django.core.management.base import BaseCommand

from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import PreorderService


class Command(BaseCommand):
    help = "Enable automatic preorder on tracked products that have run out of stock."

    def add_arguments(self, parser):
        parser.add_argument(
            "--product",
            dest="product_id",
            help="Only check this product ID.",
        )

    def handle(self, *args, **options):
        service = PreorderService(repository=ProductDjangoRepository())
        product_id = options.get("product_id")

        if product_id:
            enabled = service.check_auto_preorder(product_id)
            message = (
                f"Preorder enabled for {product_id}."
                if enabled
                else f"No change for {product_id}."
            )
            self.stdout.write(self.style.SUCCESS(message))
            return

        count = service.batch_check_auto_preorder()
        self.stdout.write(
            self.style.SUCCESS(f"Automatic preorder enabled on {count} product(s).")
        )
