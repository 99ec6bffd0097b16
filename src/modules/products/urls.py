"""Catalogue URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.products.views import PreorderViewSet, ProductViewSet

router = DefaultRouter(trailing_slash=True)
router.register("products", ProductViewSet, basename="product")
router.register("preorders", PreorderViewSet, basename="preorder")

urlpatterns = router.urls
