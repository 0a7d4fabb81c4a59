"""
Reconciliation coordinator: the single path from PENDING to PAID.

Settlement signals arrive from several places, possibly duplicated and in
any order: Stripe webhooks (delivered more than once), customer
declarations, owner confirmations. They all funnel through
ReconciliationCoordinator.mark_paid, which guarantees the transition
happens at most once per entry.

Mechanism:
    1. Row lock (select_for_update) serializes callers for one entry
    2. Already PAID -> SettlementOutcome(applied=False), nothing written,
       checked before any expected_version comparison
    3. settle() validates the FSM transition in memory
    4. Conditional UPDATE ... WHERE status='pending' AND version=<read>
       persists status, paid_at, method, metadata and clears the
       declaration in one statement
    5. Zero rows updated means another caller won -> applied=False

Step 4 keeps the guarantee on databases where select_for_update is a no-op.
There is no global lock and no reversal path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.db.models import F
from django.utils import timezone

from core.services import BaseService

from settlement.exceptions import SettlementError, StaleRecordError
from settlement.locks import lock_entry
from settlement.models import LedgerEntry
from settlement.state_machines import LedgerEntryStatus, PaymentMethod
from settlement.types import SettlementOutcome

if TYPE_CHECKING:
    import uuid


class ReconciliationCoordinator(BaseService):
    """
    Decides whether a settlement signal moves an entry to PAID.

    Stateless; all coordination happens in the database.
    """

    @classmethod
    def mark_paid(
        cls,
        entry_id: uuid.UUID,
        method: str,
        metadata: dict[str, Any] | None = None,
        *,
        owner=None,
        expected_version: int | None = None,
        source: str = "system",
    ) -> SettlementOutcome:
        """
        Move an entry to PAID exactly once.

        Args:
            entry_id: Ledger entry to settle
            method: PaymentMethod value actually used
            metadata: Provider details, stored write-once
            owner: Restrict to entries of this owner (owner-initiated calls)
            expected_version: Fail with StaleRecordError if the entry changed
                since the caller read it
            source: Who produced the signal, for logs ("webhook", "owner", ...)

        Returns:
            SettlementOutcome(applied=True) for the winning call;
            applied=False if the entry was already PAID

        Raises:
            EntryNotFoundError: Entry missing or outside owner scope
            StaleRecordError: expected_version given and out of date
        """
        logger = cls.get_logger()
        if method not in PaymentMethod.values:
            raise SettlementError(
                f"Unknown payment method '{method}'",
                error_code="INVALID_PAYMENT_METHOD",
                details={"method": method},
            )

        with cls.atomic():
            scope = {"owner": owner} if owner is not None else {}
            entry = lock_entry(LedgerEntry, entry_id, **scope)

            if entry.is_paid:
                logger.info(
                    "Entry already settled, signal ignored",
                    extra={"entry_id": str(entry.id), "source": source, "method": method},
                )
                return SettlementOutcome(applied=False, entry=entry)

            if expected_version is not None and entry.version != expected_version:
                raise StaleRecordError(
                    f"LedgerEntry {entry_id} has been modified "
                    f"(expected version {expected_version}, current {entry.version})",
                    details={
                        "pk": str(entry_id),
                        "expected_version": expected_version,
                        "current_version": entry.version,
                    },
                )

            read_version = entry.version
            now = timezone.now()
            entry.settle(payment_method=method, metadata=metadata, paid_at=now)

            updated = LedgerEntry.objects.filter(
                pk=entry.pk,
                status=LedgerEntryStatus.PENDING,
                version=read_version,
            ).update(
                status=LedgerEntryStatus.PAID,
                paid_at=entry.paid_at,
                payment_method=entry.payment_method,
                settlement_metadata=entry.settlement_metadata,
                customer_marked_paid=False,
                version=F("version") + 1,
                updated_at=now,
            )

            current = LedgerEntry.objects.get(pk=entry.pk)
            if updated == 0:
                logger.info(
                    "Lost settlement race, entry settled by a competing signal",
                    extra={"entry_id": str(entry.id), "source": source},
                )
                return SettlementOutcome(applied=False, entry=current)

        logger.info(
            "Entry settled",
            extra={
                "entry_id": str(current.id),
                "method": method,
                "source": source,
                "amount_cents": current.amount_cents,
            },
        )
        return SettlementOutcome(applied=True, entry=current)

    @classmethod
    def confirm(
        cls,
        entry_id: uuid.UUID,
        owner,
        method: str | None = None,
        expected_version: int | None = None,
    ) -> SettlementOutcome:
        """
        Owner confirms payment was received.

        A prior customer declaration is optional; the owner is the trust
        authority. When present, the declaration is read under the row lock
        and recorded in the settlement metadata. Without an explicit method
        the declared method is used, falling back to CASH.
        """
        with cls.atomic():
            entry = lock_entry(LedgerEntry, entry_id, owner=owner)
            metadata: dict[str, Any] = {
                "confirmed_by": str(owner.pk),
                "declared_by_customer": entry.customer_marked_paid,
            }
            if entry.customer_marked_paid:
                metadata["customer_paid_at"] = (
                    entry.customer_paid_at.isoformat() if entry.customer_paid_at else None
                )
                if entry.declared_method:
                    metadata["declared_method"] = entry.declared_method
                if entry.declaration_notes:
                    metadata["declaration_notes"] = entry.declaration_notes

            resolved = method or entry.declared_method or PaymentMethod.CASH
            return cls.mark_paid(
                entry.id,
                resolved,
                metadata,
                owner=owner,
                expected_version=expected_version,
                source="owner",
            )
