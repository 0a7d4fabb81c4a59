"""
Tests for settlement models.
"""

import re
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed
from django.utils import timezone

from authentication.tests.factories import HelperFactory, OwnerFactory
from settlement.models import LedgerEntry
from settlement.models.ledger_entry import generate_invoice_number, generate_public_token
from settlement.services.invoices import TOKEN_PATTERN
from settlement.state_machines import (
    EntryKind,
    LedgerEntryStatus,
    PaymentMethod,
    PayoutMode,
    SettlementOption,
    WebhookEventStatus,
)
from settlement.tests.factories import (
    HelperPayoutPolicyFactory,
    LedgerEntryFactory,
    PaidLedgerEntryFactory,
    PaymentSettingsFactory,
    WebhookEventFactory,
)


class TestGenerators:
    def test_public_token_matches_accepted_format(self):
        token = generate_public_token()

        assert TOKEN_PATTERN.match(token)
        assert token != generate_public_token()

    def test_invoice_number_format(self):
        number = generate_invoice_number()

        assert re.fullmatch(r"INV-[0-9A-F]{8}", number)


@pytest.mark.django_db
class TestLedgerEntry:
    def test_new_entry_is_pending_with_version_one(self):
        entry = LedgerEntryFactory()

        assert entry.status == LedgerEntryStatus.PENDING
        assert entry.is_pending
        assert entry.version == 1
        assert entry.paid_at is None
        assert entry.payment_method is None

    def test_amount_is_money(self):
        entry = LedgerEntryFactory(amount_cents=15050)

        assert entry.amount.cents == 15050
        assert entry.amount.to_decimal() == Decimal("150.50")

    def test_status_cannot_be_assigned(self):
        entry = LedgerEntryFactory()

        with pytest.raises(AttributeError):
            entry.status = LedgerEntryStatus.PAID

    def test_save_increments_version(self):
        entry = LedgerEntryFactory()

        entry.description = "Window cleaning"
        entry.save()

        assert entry.version == 2
        assert LedgerEntry.objects.get(pk=entry.pk).version == 2

    def test_settle_transition_in_memory(self):
        entry = LedgerEntryFactory()
        now = timezone.now()

        entry.settle(payment_method=PaymentMethod.ZELLE, metadata={"source": "test"}, paid_at=now)

        assert entry.status == LedgerEntryStatus.PAID
        assert entry.paid_at == now
        assert entry.payment_method == PaymentMethod.ZELLE
        assert entry.settlement_metadata == {"source": "test"}

    def test_settle_from_paid_not_allowed(self):
        entry = PaidLedgerEntryFactory()

        with pytest.raises(TransitionNotAllowed):
            entry.settle(payment_method=PaymentMethod.CASH, metadata={}, paid_at=timezone.now())

    def test_is_referenced(self):
        entry = LedgerEntryFactory()
        assert not entry.is_referenced

        entry.payment_link_id = "plink_123"
        assert entry.is_referenced

        entry.payment_link_id = ""
        entry.customer_marked_paid = True
        assert entry.is_referenced

    def test_unique_appointment_per_kind(self):
        entry = LedgerEntryFactory()
        LedgerEntryFactory(
            owner=entry.owner, appointment_id=entry.appointment_id, kind=EntryKind.EXPENSE
        )

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(owner=entry.owner, appointment_id=entry.appointment_id)

    def test_amount_must_be_positive(self):
        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntryFactory(amount_cents=0)

    def test_paid_requires_paid_at(self):
        entry = LedgerEntryFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntry.objects.filter(pk=entry.pk).update(status=LedgerEntryStatus.PAID)

    def test_paid_entry_cannot_carry_declaration(self):
        entry = PaidLedgerEntryFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerEntry.objects.filter(pk=entry.pk).update(customer_marked_paid=True)

    def test_queryset_filters(self):
        owner = OwnerFactory()
        pending = LedgerEntryFactory(owner=owner)
        linked = LedgerEntryFactory(owner=owner, payment_link_id="plink_1")
        paid = PaidLedgerEntryFactory(owner=owner)
        LedgerEntryFactory()

        entries = LedgerEntry.objects.for_owner(owner)
        assert set(entries.pending()) == {pending, linked}
        assert list(entries.paid()) == [paid]
        assert list(entries.unreferenced()) == [pending]


@pytest.mark.django_db
class TestHelperPayoutPolicy:
    def test_terms(self):
        policy = HelperPayoutPolicyFactory(mode=PayoutMode.FIXED, value=Decimal("40"))

        assert policy.terms.mode == PayoutMode.FIXED
        assert policy.terms.value == Decimal("40")

    def test_clean_rejects_percentage_over_cap(self):
        policy = HelperPayoutPolicyFactory.build(
            owner=OwnerFactory(), value=Decimal("120"), helper=None
        )

        with pytest.raises(ValidationError) as exc_info:
            policy.clean()

        assert "value" in exc_info.value.message_dict

    def test_clean_rejects_helper_of_other_team(self):
        owner = OwnerFactory()
        stranger = HelperFactory()
        policy = HelperPayoutPolicyFactory.build(owner=owner, helper=stranger)

        with pytest.raises(ValidationError) as exc_info:
            policy.clean()

        assert "helper" in exc_info.value.message_dict

    def test_negative_value_violates_constraint(self):
        with pytest.raises(IntegrityError), transaction.atomic():
            HelperPayoutPolicyFactory(value=Decimal("-1"))


@pytest.mark.django_db
class TestPaymentSettings:
    def test_clean_rejects_unknown_method(self):
        settings_obj = PaymentSettingsFactory.build(
            owner=OwnerFactory(), enabled_methods=["zelle", "bitcoin"]
        )

        with pytest.raises(ValidationError) as exc_info:
            settings_obj.clean()

        assert "bitcoin" in str(exc_info.value)

    def test_save_canonicalizes_methods(self):
        settings_obj = PaymentSettingsFactory(
            enabled_methods=["cash", "zelle", "cash", "bitcoin"]
        )

        settings_obj.refresh_from_db()
        assert settings_obj.enabled_methods == [SettlementOption.ZELLE, SettlementOption.CASH]

    def test_public_methods_lists_enabled_handles(self):
        settings_obj = PaymentSettingsFactory(
            enabled_methods=["zelle", "venmo", "cash", "hosted_link"],
            venmo_username="",
        )

        methods = settings_obj.public_methods("https://buy.stripe.com/x")

        assert methods == {
            "zelle": {"email": "pay@sparkle.example.com"},
            "cash": {"instructions": "Leave it on the counter"},
            "hosted_link": {"url": "https://buy.stripe.com/x"},
        }

    def test_hosted_link_hidden_without_link(self):
        settings_obj = PaymentSettingsFactory()

        assert "hosted_link" not in settings_obj.public_methods("")


@pytest.mark.django_db
class TestWebhookEvent:
    def test_needs_processing(self, settings):
        settings.SETTLEMENT_WEBHOOK_MAX_RETRIES = 3

        assert WebhookEventFactory().needs_processing
        assert WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=2).needs_processing
        assert not WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=3).needs_processing
        assert not WebhookEventFactory(status=WebhookEventStatus.PROCESSED).needs_processing
        assert not WebhookEventFactory(status=WebhookEventStatus.DISCARDED).needs_processing

    def test_mark_processing_counts_attempts(self):
        event = WebhookEventFactory()

        event.mark_processing()

        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

    def test_mark_discarded_records_reason(self):
        event = WebhookEventFactory()

        event.mark_discarded("no entry reference")

        assert event.status == WebhookEventStatus.DISCARDED
        assert event.processed_at is not None
        assert event.error_message == "no entry reference"

    def test_get_object_tolerates_malformed_payload(self):
        assert WebhookEventFactory(payload={"data": "oops"}).get_object() == {}
        assert WebhookEventFactory(payload={"data": {"object": []}}).get_object() == {}
