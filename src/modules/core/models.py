"""Shared model base and the transactional outbox table.

Every storefront table keys on a UUIDv7 and tracks created/updated
timestamps through ``BaseModel``.  Order changes that raise domain events
write ``OutboxEvent`` rows in the same transaction; the
``core.relay_outbox_events`` task delivers them afterwards.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped when update_fields omits it.  QuerySet.update()
        # never goes through here and has to set updated_at itself.
        fields = kwargs.get("update_fields")
        if fields is not None and "updated_at" not in fields:
            kwargs["update_fields"] = [*fields, "updated_at"]
        super().save(*args, **kwargs)


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxQuerySet(models.QuerySet):
    def relayable(self) -> OutboxQuerySet:
        """Rows the relay still owes a delivery, oldest first."""
        return self.exclude(status=EventStatus.PUBLISHED).order_by("created_at")


class OutboxEvent(BaseModel):
    """A serialized domain event waiting for (or done with) delivery.

    ``event_type`` is the event class name and ``payload`` the output of
    ``DomainEvent.to_payload()``, which is enough to rebuild the event.
    A failed delivery keeps the row relayable and counts the attempt.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20, choices=EventStatus.choices, default=EventStatus.PENDING
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    objects = OutboxQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["event_type"], name="outbox_event_type_idx"),
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(
                fields=["status", "created_at"], name="outbox_status_created_idx"
            ),
        ]

    def mark_as_published(self) -> None:
        self.status = EventStatus.PUBLISHED
        self.processed_at = timezone.now()
        self.save(update_fields=["status", "processed_at"])

    def mark_as_failed(self, error: str) -> None:
        self.status = EventStatus.FAILED
        self.error_message = error
        self.retry_count = models.F("retry_count") + 1
        self.save(update_fields=["status", "error_message", "retry_count"])
        self.refresh_from_db(fields=["retry_count"])

    def __str__(self) -> str:
        return f"{self.event_type}:{self.aggregate_id} ({self.status})"
