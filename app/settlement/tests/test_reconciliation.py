"""
Tests for ReconciliationCoordinator: the single PENDING -> PAID path.
"""

import threading
import uuid
from unittest.mock import patch

import pytest
from django.db import connections
from django.utils import timezone

from settlement.exceptions import EntryNotFoundError, SettlementError, StaleRecordError
from settlement.models import LedgerEntry
from settlement.services import LedgerEntryService, ReconciliationCoordinator
from settlement.state_machines import LedgerEntryStatus, PaymentMethod
from settlement.tests.factories import LedgerEntryFactory


@pytest.mark.django_db
class TestMarkPaid:
    def test_first_signal_settles(self, pending_entry):
        outcome = ReconciliationCoordinator.mark_paid(
            pending_entry.id, PaymentMethod.CARD, {"checkout_session_id": "cs_1"}
        )

        assert outcome.applied
        assert bool(outcome)
        entry = outcome.entry
        assert entry.status == LedgerEntryStatus.PAID
        assert entry.payment_method == PaymentMethod.CARD
        assert entry.paid_at is not None
        assert entry.settlement_metadata == {"checkout_session_id": "cs_1"}
        assert entry.version == pending_entry.version + 1

    def test_second_signal_is_noop(self, pending_entry):
        first = ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.CARD, {"n": 1})

        second = ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.ACH, {"n": 2})

        assert not second.applied
        entry = LedgerEntry.objects.get(pk=pending_entry.pk)
        assert entry.paid_at == first.entry.paid_at
        assert entry.payment_method == PaymentMethod.CARD
        assert entry.settlement_metadata == {"n": 1}
        assert entry.version == first.entry.version

    def test_clears_customer_declaration(self, pending_entry):
        LedgerEntryService.declare_paid(pending_entry.id, method=PaymentMethod.VENMO)

        outcome = ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.VENMO)

        assert outcome.applied
        assert not outcome.entry.customer_marked_paid

    def test_unknown_method_rejected(self, pending_entry):
        with pytest.raises(SettlementError) as exc_info:
            ReconciliationCoordinator.mark_paid(pending_entry.id, "gold_bars")

        assert exc_info.value.error_code == "INVALID_PAYMENT_METHOD"
        assert LedgerEntry.objects.get(pk=pending_entry.pk).is_pending

    def test_unknown_entry(self, db):
        with pytest.raises(EntryNotFoundError):
            ReconciliationCoordinator.mark_paid(uuid.uuid4(), PaymentMethod.CASH)

    def test_owner_scope(self, other_owner, pending_entry):
        with pytest.raises(EntryNotFoundError):
            ReconciliationCoordinator.mark_paid(
                pending_entry.id, PaymentMethod.CASH, owner=other_owner
            )

        assert LedgerEntry.objects.get(pk=pending_entry.pk).is_pending

    def test_stale_expected_version(self, pending_entry):
        pending_entry.description = "Edited elsewhere"
        pending_entry.save()

        with pytest.raises(StaleRecordError) as exc_info:
            ReconciliationCoordinator.mark_paid(
                pending_entry.id, PaymentMethod.CASH, expected_version=1
            )

        assert exc_info.value.details["current_version"] == 2
        assert LedgerEntry.objects.get(pk=pending_entry.pk).is_pending

    def test_paid_entry_ignores_expected_version(self, pending_entry):
        read_version = pending_entry.version
        first = ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.CARD)

        outcome = ReconciliationCoordinator.mark_paid(
            pending_entry.id, PaymentMethod.CASH, expected_version=read_version
        )

        assert not outcome.applied
        assert outcome.entry.payment_method == PaymentMethod.CARD
        assert outcome.entry.version == first.entry.version

    def test_matching_expected_version(self, pending_entry):
        outcome = ReconciliationCoordinator.mark_paid(
            pending_entry.id, PaymentMethod.CASH, expected_version=1
        )

        assert outcome.applied

    def test_lost_race_on_stale_read(self, pending_entry):
        """
        A competing signal settles the row between our read and our write.

        With a real row lock this cannot interleave; the conditional update
        keeps the outcome correct where the lock is a no-op.
        """
        stale = LedgerEntry.objects.get(pk=pending_entry.pk)
        winner = ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.CARD, {"w": 1})

        with patch("settlement.services.reconciliation.lock_entry", return_value=stale):
            loser = ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.ZELLE, {"l": 1})

        assert not loser.applied
        assert loser.entry.payment_method == PaymentMethod.CARD
        assert loser.entry.paid_at == winner.entry.paid_at
        assert loser.entry.settlement_metadata == {"w": 1}


@pytest.mark.django_db
class TestConfirm:
    def test_confirm_without_declaration_defaults_to_cash(self, owner, pending_entry):
        outcome = ReconciliationCoordinator.confirm(pending_entry.id, owner)

        assert outcome.applied
        assert outcome.entry.payment_method == PaymentMethod.CASH
        assert outcome.entry.settlement_metadata == {
            "confirmed_by": str(owner.pk),
            "declared_by_customer": False,
        }

    def test_confirm_uses_declared_method(self, owner, pending_entry):
        LedgerEntryService.declare_paid(
            pending_entry.id, method=PaymentMethod.ZELLE, notes="ref 991"
        )

        outcome = ReconciliationCoordinator.confirm(pending_entry.id, owner)

        entry = outcome.entry
        assert entry.payment_method == PaymentMethod.ZELLE
        assert not entry.customer_marked_paid
        assert entry.settlement_metadata["declared_by_customer"] is True
        assert entry.settlement_metadata["declared_method"] == PaymentMethod.ZELLE
        assert entry.settlement_metadata["declaration_notes"] == "ref 991"
        assert entry.settlement_metadata["customer_paid_at"]

    def test_explicit_method_wins(self, owner, pending_entry):
        LedgerEntryService.declare_paid(pending_entry.id, method=PaymentMethod.ZELLE)

        outcome = ReconciliationCoordinator.confirm(
            pending_entry.id, owner, method=PaymentMethod.VENMO
        )

        assert outcome.entry.payment_method == PaymentMethod.VENMO

    def test_confirm_after_webhook_is_noop(self, owner, pending_entry):
        ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.CARD, source="webhook")

        outcome = ReconciliationCoordinator.confirm(pending_entry.id, owner)

        assert not outcome.applied
        assert outcome.entry.payment_method == PaymentMethod.CARD

    def test_confirm_after_webhook_with_stale_version_is_noop(self, owner, pending_entry):
        read_version = pending_entry.version
        ReconciliationCoordinator.mark_paid(pending_entry.id, PaymentMethod.CARD, source="webhook")

        outcome = ReconciliationCoordinator.confirm(
            pending_entry.id, owner, expected_version=read_version
        )

        assert not outcome.applied
        assert outcome.entry.payment_method == PaymentMethod.CARD

    def test_other_owner_cannot_confirm(self, other_owner, pending_entry):
        with pytest.raises(EntryNotFoundError):
            ReconciliationCoordinator.confirm(pending_entry.id, other_owner)


@pytest.mark.django_db(transaction=True)
def test_concurrent_signals_settle_once(owner):
    """
    Four signals released together by a barrier, each on its own connection.

    PostgreSQL queues them on the row lock, sqlite on BEGIN IMMEDIATE;
    either way exactly one settles.
    """
    entry = LedgerEntryFactory(owner=owner)
    outcomes = []
    errors = []
    barrier = threading.Barrier(4)

    def settle(method):
        try:
            barrier.wait()
            outcomes.append(ReconciliationCoordinator.mark_paid(entry.id, method, {"m": method}))
        except Exception as e:  # noqa: BLE001
            errors.append(e)
        finally:
            connections.close_all()

    methods = [PaymentMethod.CARD, PaymentMethod.ACH, PaymentMethod.ZELLE, PaymentMethod.CASH]
    threads = [threading.Thread(target=settle, args=(m,)) for m in methods]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert sum(1 for o in outcomes if o.applied) == 1
    winner = next(o for o in outcomes if o.applied)
    final = LedgerEntry.objects.get(pk=entry.pk)
    assert final.payment_method == winner.entry.payment_method
    assert final.paid_at <= timezone.now()
