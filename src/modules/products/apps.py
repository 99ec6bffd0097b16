from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.products"
    label = "products"

    def ready(self) -> None:
        from modules.products.events import (
            PreorderDisabled,
            PreorderEnabled,
            ProductBackInStock,
            ProductOutOfStock,
            ProductStatusChanged,
            ProductStockUpdated,
        )
        from modules.products.handlers import (
            back_in_stock_handler,
            out_of_stock_handler,
            preorder_disabled_handler,
            preorder_enabled_handler,
            status_changed_handler,
            stock_updated_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(ProductStockUpdated, stock_updated_handler)
        event_bus.subscribe(ProductOutOfStock, out_of_stock_handler)
        event_bus.subscribe(ProductBackInStock, back_in_stock_handler)
        event_bus.subscribe(ProductStatusChanged, status_changed_handler)
        event_bus.subscribe(PreorderEnabled, preorder_enabled_handler)
        event_bus.subscribe(PreorderDisabled, preorder_disabled_handler)
