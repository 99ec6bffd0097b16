"""Catalogue product constants.

Status vocabulary, stock adjustment vocabulary and the reason codes
carried by lifecycle events.
"""

from django.db import models


class ProductStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    OUT_OF_STOCK = "out_of_stock", "Out of stock"
    PREORDER = "preorder", "Preorder"
    DISCONTINUED = "discontinued", "Discontinued"


# Statuses a customer can buy from.
PURCHASABLE_STATUSES: tuple[str, ...] = (ProductStatus.ACTIVE, ProductStatus.PREORDER)

# Statuses shown on the public storefront.
VISIBLE_STATUSES: tuple[str, ...] = (
    ProductStatus.ACTIVE,
    ProductStatus.OUT_OF_STOCK,
    ProductStatus.PREORDER,
)

# Statuses from which an administrator may open preorders.
PREORDER_ELIGIBLE_STATUSES: tuple[str, ...] = (
    ProductStatus.ACTIVE,
    ProductStatus.INACTIVE,
    ProductStatus.OUT_OF_STOCK,
    ProductStatus.PREORDER,
)

# Statuses the stock reactor moves back to ACTIVE on restock.
RESTOCKABLE_STATUSES: tuple[str, ...] = (
    ProductStatus.OUT_OF_STOCK,
    ProductStatus.PREORDER,
)


class StockOperation(models.TextChoices):
    SET = "set", "Set"
    ADD = "add", "Add"
    SUB = "sub", "Subtract"


class StockReason(models.TextChoices):
    INITIAL_STOCK = "initial_stock", "Initial stock"
    PURCHASE = "purchase", "Purchase"
    SALE = "sale", "Sale"
    RETURN = "return", "Return"
    DAMAGE = "damage", "Damage"
    THEFT = "theft", "Theft"
    ADJUSTMENT = "adjustment", "Adjustment"
    TRANSFER = "transfer", "Transfer"
    OTHER = "other", "Other"


# Reason codes carried by OutOfStock / PreorderEnabled / PreorderDisabled.
REASON_STOCK_DEPLETED = "stock_depleted"
REASON_OUT_OF_STOCK = "out_of_stock"
REASON_BACK_IN_STOCK = "back_in_stock"
REASON_MANUAL = "manual"
REASON_PRODUCT_DELETED = "product_deleted"
REASON_PRODUCT_RESTORED = "product_restored"
REASON_STATUS_PREORDER = "status_preorder"

# Identifier generation
SKU_RANDOM_LENGTH = 8
BARCODE_LENGTH = 13
IDENTIFIER_MAX_RETRIES = 10
