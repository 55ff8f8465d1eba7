"""Asynchronous tasks of the core module."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

RELAY_BATCH_SIZE = 100


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = RELAY_BATCH_SIZE) -> dict:
    """Publish committed outbox events on the in-process event bus.

    Each event is delivered independently: a failing handler marks only
    its own row as failed, and the row is picked up again on the next run.
    """
    published = failed = 0
    for outbox in OutboxEvent.objects.relayable()[:batch_size]:
        log = logger.bind(outbox_id=str(outbox.id), event_type=outbox.event_type)
        try:
            event = DomainEvent.from_payload(outbox.event_type, outbox.payload)
            event_bus.publish(event)
        except Exception as exc:
            log.exception("outbox.relay_failed")
            outbox.mark_as_failed(str(exc))
            failed += 1
            continue
        outbox.mark_as_published()
        published += 1

    if published or failed:
        logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
