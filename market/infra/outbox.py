"""
Transactional outbox: domain events saved in the same database transaction
as the state change, later turned into notifications by the projector.
"""
from __future__ import annotations

import logging
from dataclasses import fields
from datetime import timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from market.domain.events import DomainEvent
from market.infra.models import TimeStampedModel


logger = logging.getLogger(__name__)


class OutboxEvent(TimeStampedModel):
    """Pending or delivered domain event."""
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    aggregate_id = models.UUIDField()
    aggregate_type = models.CharField(max_length=50)
    event_type = models.CharField(max_length=100)
    event_data = models.JSONField()
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(null=True, blank=True)
    retry_count = models.IntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    class Meta:
        db_table = "outbox_events"
        indexes = [
            models.Index(fields=("processed", "created_at")),
            models.Index(fields=("aggregate_id", "aggregate_type")),
        ]


def _json_value(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


class OutboxRepository:
    """Repository for outbox events."""

    # Events failing this many times stay in the table for inspection
    max_retries = 5

    @transaction.atomic
    def add_event(self, event: DomainEvent, aggregate_type: str) -> UUID:
        """Queue an event; callers run this inside their own transaction."""
        if not event.occurred_at:
            event.occurred_at = timezone.now().isoformat()
        event_data = {f.name: _json_value(getattr(event, f.name)) for f in fields(event)}

        outbox_event = OutboxEvent.objects.create(
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_data=event_data,
        )
        logger.debug(
            "outbox_event_added",
            extra={"event_type": event.event_type, "aggregate_type": aggregate_type},
        )
        return outbox_event.id

    def get_unprocessed_events(self, limit: int = 100) -> list[OutboxEvent]:
        """Oldest undelivered events that still have retries left."""
        return list(
            OutboxEvent.objects
            .filter(processed=False, retry_count__lt=self.max_retries)
            .order_by("created_at")[:limit]
        )

    def mark_processed(self, event_id: UUID) -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            processed=True,
            processed_at=timezone.now(),
            last_error="",
        )

    def increment_retry(self, event_id: UUID, error: str = "") -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            retry_count=F("retry_count") + 1,
            last_error=error[:1000],
        )

    def purge_processed(self, older_than_days: int) -> int:
        """Delete delivered events older than the given age; returns the count."""
        cutoff = timezone.now() - timedelta(days=older_than_days)
        deleted, _ = OutboxEvent.objects.filter(processed=True, processed_at__lt=cutoff).delete()
        if deleted:
            logger.info("outbox_purged", extra={"changed": deleted})
        return deleted
