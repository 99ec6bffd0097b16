"""Product and preorder API views.

Exposes ``ProductService`` and ``PreorderService`` via HTTP using DRF
ViewSets.  Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

- ``ProductNotFound`` -> 404
- ``ProductAlreadyExists`` -> 409
- Stock and preorder rule violations -> 422
- Invalid input (Pydantic) -> 400
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.products.constants import REASON_MANUAL
from modules.products.dtos import (
    AdjustStockDTO,
    AdjustStockItemDTO,
    CreateProductDTO,
    EnablePreorderDTO,
    UpdateProductDTO,
)
from modules.products.exceptions import (
    IdentifierGenerationFailed,
    InvalidStockAdjustment,
    InventoryNotTracked,
    PreorderError,
    ProductAlreadyExists,
    ProductNotFound,
)
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import PreorderProductSerializer, ProductSerializer
from modules.products.services import PreorderService, ProductService

BUSINESS_RULE_ERRORS = (
    InventoryNotTracked,
    InvalidStockAdjustment,
    IdentifierGenerationFailed,
    PreorderError,
)


def _not_found() -> Response:
    return Response(
        {"detail": "Product not found."},
        status=status.HTTP_404_NOT_FOUND,
    )


def _bad_request(exc: Exception) -> Response:
    return Response(
        {"detail": str(exc)},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _unprocessable(exc: Exception) -> Response:
    return Response(
        {"detail": str(exc), "code": type(exc).__name__},
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for Product CRUD, stock and preorder operations.

    Uses ``ProductService`` / ``PreorderService`` with
    ``ProductDjangoRepository`` (DIP).  Does **not** extend
    ``ModelViewSet``: all ORM access goes through the service/repository
    layer.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "sku", "description"]
    ordering_fields = ["name", "price", "stock_quantity", "created_at"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    pagination_class = StandardResultsSetPagination
    queryset = Product.objects.alive()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        repository = ProductDjangoRepository()
        self._service = ProductService(repository=repository)
        self._preorders = PreorderService(repository=repository)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        try:
            product = self._service.get_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request: Request) -> Response:
        """GET /api/v1/products/low-stock/"""
        products = self._service.list_low_stock()
        return Response(ProductSerializer(products, many=True).data)

    # ------------------------------------------------------------------
    # Create / Update / Destroy / Restore
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        try:
            dto = CreateProductDTO.model_validate(request.data)
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._service.create_product(dto)
        except ProductAlreadyExists as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_409_CONFLICT,
            )
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        out = ProductSerializer(product)
        return Response(out.data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/products/{pk}/"""
        try:
            dto = UpdateProductDTO.model_validate(request.data)
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._service.update_product(pk, dto)
        except ProductNotFound:
            return _not_found()
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        return Response(ProductSerializer(product).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{pk}/"""
        try:
            self._service.delete_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="restore")
    def restore(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/restore/"""
        try:
            product = self._service.restore_product(pk)
        except ProductNotFound:
            return _not_found()
        return Response(ProductSerializer(product).data)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="stock")
    def adjust_stock(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/stock/

        Body: ``{"quantity": N, "operation": "set|add|sub", "reason": ...}``.
        """
        try:
            dto = AdjustStockDTO.model_validate(request.data)
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._service.adjust_stock(pk, dto)
        except ProductNotFound:
            return _not_found()
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["post"], url_path="stock/bulk")
    def bulk_adjust_stock(self, request: Request) -> Response:
        """POST /api/v1/products/stock/bulk/

        Body: ``{"items": [{"product_id": ..., "quantity": N, ...}, ...]}``.
        Either every adjustment is applied or none is.
        """
        items = request.data.get("items") if isinstance(request.data, dict) else None
        if not isinstance(items, list) or not items:
            return Response(
                {"detail": "Field 'items' must be a non-empty list."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            dtos = [AdjustStockItemDTO.model_validate(item) for item in items]
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            products = self._service.bulk_adjust_stock(dtos)
        except ProductNotFound as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_404_NOT_FOUND,
            )
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        return Response(ProductSerializer(products, many=True).data)

    # ------------------------------------------------------------------
    # Preorder
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"], url_path="preorder")
    def preorder_info(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/preorder/"""
        try:
            info = self._preorders.get_preorder_info(pk)
        except ProductNotFound:
            return _not_found()
        return Response(info.model_dump(mode="json"))

    @action(detail=True, methods=["post"], url_path="preorder/enable")
    def enable_preorder(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/preorder/enable/"""
        try:
            dto = EnablePreorderDTO.model_validate(request.data)
        except (PydanticValidationError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._preorders.enable_preorder(pk, dto)
        except ProductNotFound:
            return _not_found()
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["post"], url_path="preorder/disable")
    def disable_preorder(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/preorder/disable/"""
        reason = request.data.get("reason") or REASON_MANUAL
        try:
            product = self._preorders.disable_preorder(pk, reason=str(reason))
        except ProductNotFound:
            return _not_found()
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        return Response(ProductSerializer(product).data)

    @action(detail=True, methods=["post"], url_path="preorder/reserve")
    def reserve_preorder(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/preorder/reserve/

        Body: ``{"quantity": N}`` (defaults to 1).
        """
        try:
            quantity = int(request.data.get("quantity", 1))
            if quantity < 1:
                raise ValueError("Field 'quantity' must be at least 1.")
        except (TypeError, ValueError) as exc:
            return _bad_request(exc)

        try:
            product = self._preorders.reserve_preorder(pk, quantity)
        except ProductNotFound:
            return _not_found()
        except BUSINESS_RULE_ERRORS as exc:
            return _unprocessable(exc)

        return Response(ProductSerializer(product).data)


class PreorderViewSet(ListModelMixin, GenericViewSet):
    """Read-only listing of products currently accepting preorders."""

    queryset = Product.objects.alive().filter(is_preorder_enabled=True)
    serializer_class = PreorderProductSerializer
    filter_backends = []
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return PreorderService(
            repository=ProductDjangoRepository()
        ).list_preorder_products()
