"""
Tests for the Stripe webhook handlers.
"""

import uuid
from unittest.mock import MagicMock, patch

import pytest
import stripe

from settlement.channels import StripePaymentLinkChannel
from settlement.models import LedgerEntry
from settlement.state_machines import LedgerEntryStatus, PaymentMethod
from settlement.tests.factories import (
    LedgerEntryFactory,
    WebhookEventFactory,
    checkout_session_payload,
)
from settlement.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    is_discardable,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def channel():
    fake = MagicMock()
    fake.payment_method_types.return_value = ["us_bank_account"]
    return fake


def _event(entry_id=None, event_type="checkout.session.completed", **session):
    payload = checkout_session_payload(entry_id, **session)
    payload["type"] = event_type
    return WebhookEventFactory(
        stripe_event_id=payload["id"],
        event_type=event_type,
        payload=payload,
    )


class TestRegistry:
    def test_checkout_handlers_registered(self):
        assert "checkout.session.completed" in WEBHOOK_HANDLERS
        assert "checkout.session.async_payment_succeeded" in WEBHOOK_HANDLERS

    def test_unregistered_type_succeeds_without_action(self, channel):
        event = _event(event_type="customer.created")

        result = dispatch_webhook(event, channel)

        assert result.success
        assert result.data is None
        channel.payment_method_types.assert_not_called()


class TestCheckoutSessionCompleted:
    def test_settles_entry_with_classified_method(self, channel):
        entry = LedgerEntryFactory()
        event = _event(entry.id)

        result = dispatch_webhook(event, channel)

        assert result.success
        assert result.data["applied"] is True
        assert result.data["method"] == PaymentMethod.ACH

        entry = LedgerEntry.objects.get(pk=entry.pk)
        assert entry.status == LedgerEntryStatus.PAID
        assert entry.payment_method == PaymentMethod.ACH
        assert entry.settlement_metadata["provider"] == "stripe"
        assert entry.settlement_metadata["checkout_session_id"] == "cs_test_123"
        assert entry.settlement_metadata["stripe_event_id"] == event.stripe_event_id

    def test_redelivery_keeps_first_settlement(self, channel):
        entry = LedgerEntryFactory()
        first = _event(entry.id)
        dispatch_webhook(first, channel)
        paid_at = LedgerEntry.objects.get(pk=entry.pk).paid_at

        channel.payment_method_types.return_value = ["card"]
        second = _event(entry.id)
        result = dispatch_webhook(second, channel)

        assert result.success
        assert result.data["applied"] is False
        entry = LedgerEntry.objects.get(pk=entry.pk)
        assert entry.paid_at == paid_at
        assert entry.payment_method == PaymentMethod.ACH
        assert entry.settlement_metadata["stripe_event_id"] == first.stripe_event_id

    def test_missing_reference_is_discardable(self, channel):
        event = _event()

        result = dispatch_webhook(event, channel)

        assert not result.success
        assert result.error_code == "MISSING_ENTRY_REFERENCE"
        assert is_discardable(result)

    def test_malformed_reference_is_discardable(self, channel):
        event = _event(metadata={"ledger_entry_id": "not-a-uuid"})

        result = dispatch_webhook(event, channel)

        assert result.error_code == "UNRESOLVABLE_ENTRY_REFERENCE"
        assert is_discardable(result)

    def test_unknown_entry_is_discardable(self, channel):
        event = _event(uuid.uuid4())

        result = dispatch_webhook(event, channel)

        assert result.error_code == "UNRESOLVABLE_ENTRY_REFERENCE"
        assert is_discardable(result)

    def test_unpaid_checkout_waits_for_async_payment(self, channel):
        entry = LedgerEntryFactory()
        event = _event(entry.id, payment_status="unpaid")

        result = dispatch_webhook(event, channel)

        assert result.success
        assert result.data == {"applied": False, "awaiting_payment": True}
        assert LedgerEntry.objects.get(pk=entry.pk).is_pending

    def test_amount_mismatch_still_settles(self, channel):
        entry = LedgerEntryFactory(amount_cents=9900)
        event = _event(entry.id, amount_total=15000)

        result = dispatch_webhook(event, channel)

        assert result.data["applied"] is True
        assert LedgerEntry.objects.get(pk=entry.pk).is_paid


class TestAsyncPaymentSucceeded:
    def test_settles_entry(self, channel):
        entry = LedgerEntryFactory()
        event = _event(
            entry.id,
            event_type="checkout.session.async_payment_succeeded",
            payment_status="paid",
        )

        result = dispatch_webhook(event, channel)

        assert result.success
        assert result.data["applied"] is True
        assert LedgerEntry.objects.get(pk=entry.pk).payment_method == PaymentMethod.ACH

    def test_failure_is_not_discardable_for_generic_errors(self):
        from core.services import ServiceResult

        assert not is_discardable(ServiceResult.failure("boom", error_code="SOMETHING_ELSE"))
        assert not is_discardable(ServiceResult.success({}))


class TestWithStripeChannel:
    """Handlers driven by the real Stripe channel, SDK patched."""

    @pytest.fixture
    def stripe_channel(self):
        with patch("settlement.channels.stripe_link.stripe") as mocked:
            mocked.StripeError = stripe.StripeError
            mocked.PaymentIntent.retrieve.return_value = {
                "latest_charge": {"payment_method_details": {"type": "cashapp"}}
            }
            yield StripePaymentLinkChannel(api_key="sk_test_x", webhook_secret="whsec_x")

    def test_completed_checkout_settles_with_charge_method(self, stripe_channel):
        entry = LedgerEntryFactory()
        event = _event(entry.id)

        result = dispatch_webhook(event, stripe_channel)

        assert result.success
        assert result.data["method"] == PaymentMethod.CASH_APP
        entry = LedgerEntry.objects.get(pk=entry.pk)
        assert entry.is_paid
        assert entry.payment_method == PaymentMethod.CASH_APP
