"""
WebhookEvent model for Stripe webhook delivery tracking.

Every verified delivery is stored before processing. The unique
stripe_event_id makes intake idempotent: Stripe redelivering the same event
finds the existing row and is acknowledged without a second enqueue.

Processing Flow:
    1. Webhook arrives, Stripe signature verified
    2. get_or_create WebhookEvent by stripe_event_id
    3. Existing and not retryable -> acknowledge (duplicate)
    4. Otherwise enqueue process_webhook_event
    5. Task marks PROCESSING, dispatches to a handler
    6. Handler outcome -> PROCESSED, DISCARDED or FAILED
    7. FAILED events are retried by retry_failed_webhooks
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    A Stripe webhook delivery and its processing status.

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: Type of webhook event
        payload: Full JSON payload from Stripe
        status: Processing status
        processed_at: When processing finished (processed or discarded)
        error_message: Failure or discard reason
        retry_count: Number of processing attempts
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
    )

    payload = models.JSONField()

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(null=True, blank=True)

    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        max_retries = getattr(settings, "SETTLEMENT_WEBHOOK_MAX_RETRIES", MAX_WEBHOOK_RETRIES)
        return self.is_failed and self.retry_count < max_retries

    @property
    def needs_processing(self) -> bool:
        """Whether intake should (re)enqueue this event."""
        return self.status == WebhookEventStatus.PENDING or self.can_retry

    # Helpers below do not save - caller must save after calling.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_discarded(self, reason: str) -> None:
        self.status = WebhookEventStatus.DISCARDED
        self.processed_at = timezone.now()
        self.error_message = reason

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_object(self) -> dict:
        """The event's data.object, or an empty dict if the payload is malformed."""
        try:
            obj = self.payload.get("data", {}).get("object", {})
        except (AttributeError, TypeError):
            return {}
        return obj if isinstance(obj, dict) else {}
