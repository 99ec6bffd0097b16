"""Asynchronous tasks of the catalogue module."""

import structlog
from celery import shared_task

from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import PreorderService

logger = structlog.get_logger(__name__)


@shared_task(name="products.batch_check_auto_preorder")
def batch_check_auto_preorder() -> int:
    """Open automatic preorders on every tracked product with no stock."""
    service = PreorderService(repository=ProductDjangoRepository())
    enabled = service.batch_check_auto_preorder()
    logger.info("task.batch_check_auto_preorder", enabled=enabled)
    return enabled
