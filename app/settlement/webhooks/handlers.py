"""
Webhook event handlers for Stripe events.

A handler registry maps Stripe event types to functions returning a
ServiceResult:

- success: event handled (including "already settled", a no-op success)
- failure with a code in DISCARD_ERROR_CODES: the event can never apply
  (no entry reference, unknown entry); logged and discarded, never retried
- any other failure or exception: processing failed, eligible for retry

Usage:
    from settlement.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("checkout.session.expired")
    def handle_session_expired(webhook_event, channel) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult

from settlement.channels import classify_payment_method, get_settlement_channel
from settlement.exceptions import EntryNotFoundError
from settlement.services import ReconciliationCoordinator

if TYPE_CHECKING:
    from settlement.channels import SettlementChannel
    from settlement.models import WebhookEvent


logger = logging.getLogger(__name__)

ENTRY_METADATA_KEY = "ledger_entry_id"

# Failures that will never succeed on retry
DISCARD_ERROR_CODES = frozenset(
    {
        "MISSING_ENTRY_REFERENCE",
        "UNRESOLVABLE_ENTRY_REFERENCE",
    }
)

Handler = Callable[["WebhookEvent", "SettlementChannel"], ServiceResult]


# =============================================================================
# Handler Registry
# =============================================================================


WEBHOOK_HANDLERS: dict[str, Handler] = {}


def register_handler(event_type: str) -> Callable[[Handler], Handler]:
    """Decorator to register a webhook event handler."""

    def decorator(func: Handler) -> Handler:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(
    webhook_event: WebhookEvent,
    channel: SettlementChannel | None = None,
) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unregistered event types succeed without doing anything so Stripe's
    broader event stream never piles up as failures.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event, channel or get_settlement_channel())


def is_discardable(result: ServiceResult) -> bool:
    return not result.success and result.error_code in DISCARD_ERROR_CODES


# =============================================================================
# Checkout Session Handlers
# =============================================================================


def _resolve_entry_id(webhook_event: WebhookEvent) -> uuid.UUID | ServiceResult:
    session = webhook_event.get_object()
    metadata = session.get("metadata") or {}
    raw_id = metadata.get(ENTRY_METADATA_KEY) if isinstance(metadata, dict) else None

    if not raw_id:
        logger.warning(
            "Checkout session without entry reference, discarding",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "session_id": session.get("id"),
            },
        )
        return ServiceResult.failure(
            "Checkout session carries no ledger entry reference",
            error_code="MISSING_ENTRY_REFERENCE",
        )
    try:
        return uuid.UUID(str(raw_id))
    except ValueError:
        logger.warning(
            "Checkout session with malformed entry reference, discarding",
            extra={"stripe_event_id": webhook_event.stripe_event_id, "reference": raw_id},
        )
        return ServiceResult.failure(
            "Ledger entry reference is malformed",
            error_code="UNRESOLVABLE_ENTRY_REFERENCE",
        )


def _settle_from_session(
    webhook_event: WebhookEvent,
    channel: SettlementChannel,
) -> ServiceResult:
    entry_id = _resolve_entry_id(webhook_event)
    if isinstance(entry_id, ServiceResult):
        return entry_id

    session = webhook_event.get_object()
    method = classify_payment_method(channel.payment_method_types(session))
    metadata = {
        "provider": "stripe",
        "stripe_event_id": webhook_event.stripe_event_id,
        "checkout_session_id": session.get("id"),
        "payment_intent": session.get("payment_intent"),
        "amount_total": session.get("amount_total"),
        "currency": session.get("currency"),
    }

    try:
        outcome = ReconciliationCoordinator.mark_paid(
            entry_id,
            method,
            metadata,
            source="webhook",
        )
    except EntryNotFoundError as e:
        logger.warning(
            "Checkout session references unknown entry, discarding",
            extra={"stripe_event_id": webhook_event.stripe_event_id, "entry_id": str(entry_id)},
        )
        return ServiceResult.from_exception(e, error_code="UNRESOLVABLE_ENTRY_REFERENCE")

    if session.get("amount_total") is not None and session["amount_total"] != outcome.entry.amount_cents:
        logger.warning(
            "Checkout amount differs from entry amount",
            extra={
                "entry_id": str(entry_id),
                "amount_total": session["amount_total"],
                "amount_cents": outcome.entry.amount_cents,
            },
        )

    return ServiceResult.success(
        {"entry_id": str(entry_id), "applied": outcome.applied, "method": method}
    )


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(
    webhook_event: WebhookEvent,
    channel: SettlementChannel,
) -> ServiceResult:
    """
    Settle the entry behind a completed checkout.

    Bank debits complete the checkout before funds arrive
    (payment_status "unpaid"); those settle on
    checkout.session.async_payment_succeeded instead.
    """
    session = webhook_event.get_object()
    if session.get("payment_status") == "unpaid":
        logger.info(
            "Checkout completed with payment pending, waiting for async payment",
            extra={"stripe_event_id": webhook_event.stripe_event_id, "session_id": session.get("id")},
        )
        return ServiceResult.success({"applied": False, "awaiting_payment": True})
    return _settle_from_session(webhook_event, channel)


@register_handler("checkout.session.async_payment_succeeded")
def handle_async_payment_succeeded(
    webhook_event: WebhookEvent,
    channel: SettlementChannel,
) -> ServiceResult:
    """Settle the entry once a delayed (bank) payment has cleared."""
    return _settle_from_session(webhook_event, channel)
