"""
Webhook endpoint for Stripe settlement events.

The view verifies the signature, records the delivery as a WebhookEvent
(idempotent on the Stripe event id), queues it and returns at once. The
ledger is only touched by the process_webhook_event task.

Usage:
    # In urls.py
    from settlement.webhooks.views import settlement_webhook

    urlpatterns = [
        path("webhook/", settlement_webhook, name="webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from settlement.channels import get_settlement_channel
from settlement.exceptions import InvalidSignatureError
from settlement.models import WebhookEvent
from settlement.state_machines import WebhookEventStatus
from settlement.tasks import process_webhook_event

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def settlement_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue Stripe webhook events.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Invalid signature or payload

    Duplicates of an event that is already processed, discarded or
    in flight are acknowledged without being queued again; a FAILED event
    with retries left is re-queued.
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    try:
        event_data = get_settlement_channel().verify_webhook(payload, signature)
    except InvalidSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message},
        )
        return HttpResponse("Invalid signature", status=400)

    if not isinstance(event_data, dict):
        return HttpResponse("Invalid event", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and not webhook_event.needs_processing:
        logger.info(
            f"Duplicate webhook with status {webhook_event.status}, acknowledging",
            extra={"stripe_event_id": stripe_event_id},
        )
        return HttpResponse("Already received", status=200)

    try:
        process_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={
                "stripe_event_id": stripe_event_id,
                "webhook_event_id": str(webhook_event.id),
            },
        )
    except Exception:
        # Stored as PENDING; retry_failed_webhooks picks it up
        logger.error(
            "Failed to queue webhook for processing",
            extra={"stripe_event_id": stripe_event_id},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
