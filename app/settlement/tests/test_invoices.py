"""
Tests for the token-scoped public invoice service.
"""

import pytest

from settlement.exceptions import AlreadySettledError, InvalidTokenError
from settlement.models import LedgerEntry
from settlement.services import PublicInvoiceService
from settlement.state_machines import LedgerEntryStatus, PaymentMethod
from settlement.tests.factories import LedgerEntryFactory


def _walk(value):
    """Every scalar in a nested payload."""
    if isinstance(value, dict):
        for v in value.values():
            yield from _walk(v)
    elif isinstance(value, list):
        for v in value:
            yield from _walk(v)
    else:
        yield value


@pytest.mark.django_db
class TestResolve:
    def test_resolves_own_entry_only(self, pending_entry):
        other = LedgerEntryFactory()

        assert PublicInvoiceService.resolve(pending_entry.public_token) == pending_entry
        assert PublicInvoiceService.resolve(other.public_token) == other

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "short",
            "x" * 65,
            "has spaces in it and is long enough to pass",
            "../../../../etc/passwd/aaaaaaaaaaaaaaaaaaaaaaa",
            None,
        ],
    )
    def test_malformed_tokens(self, token):
        with pytest.raises(InvalidTokenError) as exc_info:
            PublicInvoiceService.resolve(token)

        assert exc_info.value.message == "Invoice not found or invalid"
        assert exc_info.value.http_status == 404

    def test_unknown_well_formed_token(self, db):
        with pytest.raises(InvalidTokenError) as exc_info:
            PublicInvoiceService.resolve("A" * 43)

        assert exc_info.value.message == "Invoice not found or invalid"


@pytest.mark.django_db
class TestGetInvoice:
    def test_payload_shape(self, owner, pending_entry, payment_settings):
        invoice = PublicInvoiceService.get_invoice(pending_entry.public_token)

        assert invoice["invoice"]["number"] == pending_entry.invoice_number
        assert invoice["invoice"]["amount"] == "150.00"
        assert invoice["invoice"]["currency"] == "usd"
        assert invoice["invoice"]["status"] == LedgerEntryStatus.PENDING
        assert invoice["customer"]["address"] == "12 Elm St"
        assert invoice["appointment"]["start_time"] == "09:00:00"
        assert invoice["business"]["name"] == "Sparkle Cleaning"
        assert invoice["payment_methods"]["zelle"] == {"email": "pay@sparkle.example.com"}
        assert "hosted_link" not in invoice["payment_methods"]

    def test_hosted_link_listed_when_present(self, owner, payment_settings):
        entry = LedgerEntryFactory(
            owner=owner,
            payment_link_id="plink_1",
            payment_link_url="https://buy.stripe.com/test_1",
        )

        invoice = PublicInvoiceService.get_invoice(entry.public_token)

        assert invoice["invoice"]["payment_link_url"] == "https://buy.stripe.com/test_1"
        assert invoice["payment_methods"]["hosted_link"] == {"url": "https://buy.stripe.com/test_1"}

    def test_without_payment_settings_uses_owner_name(self, owner, pending_entry):
        invoice = PublicInvoiceService.get_invoice(pending_entry.public_token)

        assert invoice["business"]["name"] == "Dana Owner"
        assert invoice["payment_methods"] == {}

    def test_never_exposes_internal_ids(self, owner, pending_entry, payment_settings):
        invoice = PublicInvoiceService.get_invoice(pending_entry.public_token)

        values = {str(v) for v in _walk(invoice) if v is not None}
        assert str(pending_entry.id) not in values
        assert str(pending_entry.appointment_id) not in values
        assert pending_entry.customer_id not in values
        assert str(owner.pk) not in values
        assert owner.email not in values
        assert pending_entry.public_token not in values


@pytest.mark.django_db
class TestDeclare:
    def test_declare_sets_flag(self, pending_entry):
        invoice = PublicInvoiceService.declare(
            pending_entry.public_token, method=PaymentMethod.CASH_APP, notes="sent"
        )

        assert invoice["invoice"]["customer_marked_paid"] is True
        assert invoice["invoice"]["status"] == LedgerEntryStatus.PENDING
        entry = LedgerEntry.objects.get(pk=pending_entry.pk)
        assert entry.declared_method == PaymentMethod.CASH_APP

    def test_declare_on_paid_invoice(self, paid_entry):
        with pytest.raises(AlreadySettledError):
            PublicInvoiceService.declare(paid_entry.public_token)

    def test_token_only_reaches_its_own_entry(self, pending_entry):
        other = LedgerEntryFactory()

        PublicInvoiceService.declare(other.public_token)

        assert not LedgerEntry.objects.get(pk=pending_entry.pk).customer_marked_paid
        assert LedgerEntry.objects.get(pk=other.pk).customer_marked_paid
