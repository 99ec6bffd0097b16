"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.db.models import Q

from modules.core.models import EventStatus, OutboxEvent
from modules.core.signals import outbox_event_relayed

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = 100) -> dict:
    """Drain pending (and retryable failed) outbox rows.

    Each row is sent through ``outbox_event_relayed``.  Receivers run via
    ``send_robust`` so one broken subscriber cannot stop the batch: the row
    is marked FAILED with the first error and retried on the next run until
    ``OUTBOX_MAX_RETRIES`` is reached.
    """
    max_retries = getattr(settings, "OUTBOX_MAX_RETRIES", 5)
    published = failed = 0

    with transaction.atomic():
        events = list(
            OutboxEvent.objects.select_for_update()
            .filter(
                Q(status=EventStatus.PENDING)
                | Q(status=EventStatus.FAILED, retry_count__lt=max_retries)
            )
            .order_by("created_at")[:batch_size]
        )

        for event in events:
            responses = outbox_event_relayed.send_robust(
                sender=OutboxEvent,
                event_type=event.event_type,
                topic=event.topic,
                aggregate_id=event.aggregate_id,
                payload=event.payload,
            )
            errors = [resp for _, resp in responses if isinstance(resp, Exception)]
            if errors:
                event.mark_as_failed(repr(errors[0]))
                failed += 1
                logger.warning(
                    "outbox.relay_failed",
                    outbox_id=str(event.id),
                    event_type=event.event_type,
                    error=repr(errors[0]),
                )
                continue
            event.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
