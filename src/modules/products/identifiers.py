"""Unique identifier generation for catalogue products.

Slugs derive from the product name (``blue-shirt``, ``blue-shirt-1``, ...).
SKUs are ``<prefix><8 random A-Z0-9>``; barcodes are 13 random digits with
a non-zero leading digit (EAN-13 / Code128 compatible length).  Every
candidate is checked against all rows, soft-deleted ones included, since
the unique indexes cover them too.
"""

from __future__ import annotations

import secrets
import string
from typing import TYPE_CHECKING, Optional

from django.conf import settings
from django.utils.text import slugify

from modules.products.constants import (
    BARCODE_LENGTH,
    IDENTIFIER_MAX_RETRIES,
    SKU_RANDOM_LENGTH,
)
from modules.products.exceptions import IdentifierGenerationFailed

if TYPE_CHECKING:
    from modules.products.models import Product

_SKU_ALPHABET = string.ascii_uppercase + string.digits
_SLUG_MAX_LENGTH = 255
_SLUG_FALLBACK = "product"


def generate_unique_slug(
    model: type[Product], name: str, exclude_id: Optional[object] = None
) -> str:
    """Slugify *name*, appending ``-1``, ``-2``... until no row uses it."""
    base = slugify(name)[: _SLUG_MAX_LENGTH - 8].strip("-") or _SLUG_FALLBACK
    queryset = model.objects.all()
    if exclude_id is not None:
        queryset = queryset.exclude(id=exclude_id)

    candidate = base
    count = 1
    while queryset.filter(slug=candidate).exists():
        candidate = f"{base}-{count}"
        count += 1
    return candidate


def random_sku(prefix: Optional[str] = None) -> str:
    if prefix is None:
        prefix = getattr(settings, "PRODUCT_SKU_PREFIX", "PROD-")
    suffix = "".join(secrets.choice(_SKU_ALPHABET) for _ in range(SKU_RANDOM_LENGTH))
    return f"{prefix}{suffix}".upper()


def random_barcode() -> str:
    first = secrets.choice("123456789")
    rest = "".join(secrets.choice(string.digits) for _ in range(BARCODE_LENGTH - 1))
    return first + rest


def generate_unique_sku(model: type[Product], prefix: Optional[str] = None) -> str:
    for _ in range(IDENTIFIER_MAX_RETRIES):
        candidate = random_sku(prefix)
        if not model.objects.filter(sku=candidate).exists():
            return candidate
    raise IdentifierGenerationFailed(
        f"Failed to generate unique SKU after {IDENTIFIER_MAX_RETRIES} attempts."
    )


def generate_unique_barcode(model: type[Product]) -> str:
    for _ in range(IDENTIFIER_MAX_RETRIES):
        candidate = random_barcode()
        if not model.objects.filter(barcode=candidate).exists():
            return candidate
    raise IdentifierGenerationFailed(
        f"Failed to generate unique barcode after {IDENTIFIER_MAX_RETRIES} attempts."
    )


def assign_missing_identifiers(product: Product) -> None:
    """Fill ``slug``, ``sku`` and ``barcode`` when the caller left them blank."""
    model = type(product)
    if not product.slug:
        product.slug = generate_unique_slug(model, product.name, exclude_id=product.pk)
    if not product.sku:
        product.sku = generate_unique_sku(model)
    if not product.barcode:
        product.barcode = generate_unique_barcode(model)
