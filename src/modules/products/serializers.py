"""Product DRF serializers for API output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    is_in_stock = serializers.BooleanField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_available_for_purchase = serializers.BooleanField(read_only=True)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, read_only=True, allow_null=True
    )
    can_preorder = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "slug",
            "barcode",
            "name",
            "short_description",
            "description",
            "price",
            "compare_price",
            "cost_price",
            "discount_percentage",
            "is_featured",
            "track_inventory",
            "stock_quantity",
            "low_stock_threshold",
            "is_in_stock",
            "is_low_stock",
            "status",
            "is_available_for_purchase",
            "is_preorder_enabled",
            "preorder_auto_enabled",
            "preorder_available_date",
            "preorder_limit",
            "preorder_count",
            "can_preorder",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_can_preorder(self, obj: Product) -> bool:
        return obj.can_preorder()


class PreorderProductSerializer(serializers.ModelSerializer):
    """Compact listing of products accepting preorders."""

    spots_remaining = serializers.IntegerField(
        source="preorder_spots_remaining", read_only=True, allow_null=True
    )

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "status",
            "preorder_auto_enabled",
            "preorder_available_date",
            "preorder_limit",
            "preorder_count",
            "spots_remaining",
            "preorder_message",
        ]
        read_only_fields = fields
