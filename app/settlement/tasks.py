"""
Celery tasks for settlement.

This module provides async tasks for:
- Processing Stripe webhook events
- Re-queueing failed, stuck or never-queued webhook events
- Periodic cleanup of old finished events

Usage:
    from settlement.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from settlement.models import WebhookEvent
from settlement.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_WEBHOOK_RETRIES = 5
STUCK_PROCESSING_THRESHOLD_MINUTES = 30
UNQUEUED_THRESHOLD_MINUTES = 10
RETRY_BATCH_SIZE = 100


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a Stripe webhook event.

    1. Load the WebhookEvent; finished events are skipped
    2. Mark PROCESSING and dispatch to the handler for its type
    3. Handler success -> PROCESSED; discardable failure -> DISCARDED;
       other failure -> FAILED (picked up by retry_failed_webhooks)

    Unexpected exceptions mark the event FAILED and are re-raised so
    Celery retries with backoff.
    """
    from settlement.webhooks.handlers import dispatch_webhook, is_discardable

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.status in (WebhookEventStatus.PROCESSED, WebhookEventStatus.DISCARDED):
        logger.info(
            f"WebhookEvent already {webhook_event.status}, skipping",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            },
        )
        return {
            "status": f"already_{webhook_event.status}",
            "webhook_event_id": str(webhook_event_id),
        }

    webhook_event.mark_processing()
    webhook_event.save()

    log_context = {
        "webhook_event_id": str(webhook_event_id),
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
        "retry_count": webhook_event.retry_count,
    }

    try:
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.exception(
            "Webhook processing failed with exception",
            extra={**log_context, "error": error_msg},
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info("Webhook processed successfully", extra=log_context)
        return {
            "status": "processed",
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
        }

    error_msg = result.error or "Handler returned failure"
    if is_discardable(result):
        webhook_event.mark_discarded(error_msg)
        webhook_event.save()
        logger.warning(
            f"Webhook discarded: {error_msg}",
            extra={**log_context, "error_code": result.error_code},
        )
        return {
            "status": "discarded",
            "webhook_event_id": str(webhook_event_id),
            "error": error_msg,
        }

    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={**log_context, "error_code": result.error_code},
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to re-queue webhook events that did not finish.

    - PROCESSING for longer than STUCK_PROCESSING_THRESHOLD_MINUTES
      (worker died) is reset to FAILED first
    - FAILED with retries left is queued again
    - PENDING older than UNQUEUED_THRESHOLD_MINUTES (enqueue failed at
      intake) is queued again

    Scheduled via celery-beat.
    """
    now = timezone.now()
    max_retries = getattr(settings, "SETTLEMENT_WEBHOOK_MAX_RETRIES", MAX_WEBHOOK_RETRIES)

    stuck = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=now - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES),
    )
    reset_count = 0
    for webhook in stuck:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
            },
        )

    failed = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=max_retries,
    )
    unqueued = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PENDING,
        created_at__lt=now - timedelta(minutes=UNQUEUED_THRESHOLD_MINUTES),
    )
    candidates = (failed | unqueued).order_by("created_at")[:RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in candidates:
        try:
            process_webhook_event.delay(str(webhook.id))
        except Exception as e:
            logger.error(
                f"Failed to queue webhook for retry: {e}",
                extra={"webhook_event_id": str(webhook.id)},
            )
            continue
        queued_count += 1
        logger.info(
            "Queued webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "retry_count": webhook.retry_count,
            },
        )

    if queued_count or reset_count:
        logger.info(
            f"Queued {queued_count} webhooks for retry, reset {reset_count} stuck",
            extra={"queued_count": queued_count, "reset_count": reset_count},
        )

    return {"queued_count": queued_count, "reset_count": reset_count}


@shared_task
def cleanup_old_webhook_events(days: int | None = None) -> dict:
    """
    Periodic task to delete old finished webhook events.

    Only PROCESSED and DISCARDED events are deleted; FAILED events are
    kept for debugging. Stripe stops redelivering long before the
    retention window ends.
    """
    if days is None:
        days = settings.SETTLEMENT_WEBHOOK_RETENTION_DAYS
    cutoff = timezone.now() - timedelta(days=days)

    deleted_count, _ = WebhookEvent.objects.filter(
        status__in=[WebhookEventStatus.PROCESSED, WebhookEventStatus.DISCARDED],
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={"deleted_count": deleted_count, "cutoff_date": cutoff.isoformat()},
        )

    return {"deleted_count": deleted_count}
