"""
Ledger entry service: creating, declaring, listing and discarding entries.

Everything that touches a LedgerEntry except the PENDING → PAID transition
lives here. That transition belongs to ReconciliationCoordinator.

Idempotency:
    (appointment_id, kind) is unique. A second create for the same
    appointment raises DuplicateSettlementError carrying the existing
    entry id, whether the duplicate is caught by the pre-check or by the
    database constraint under a race.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError
from django.utils import timezone

from core.services import BaseService

from settlement.exceptions import (
    AlreadySettledError,
    DuplicateSettlementError,
    EntryInUseError,
    EntryNotFoundError,
    InvalidAmountError,
    SettlementError,
)
from settlement.fees import compute_fee, format_fee_explanation, validate_fee
from settlement.locks import lock_entry
from settlement.models import HelperPayoutPolicy, LedgerEntry
from settlement.state_machines import EntryKind, LedgerEntryStatus, PaymentMethod
from settlement.types import Money

if TYPE_CHECKING:
    import uuid

    from django.db.models import QuerySet

    from settlement.types import AppointmentCompletion


class LedgerEntryService(BaseService):
    """
    Service for ledger entry lifecycle outside of settlement.

    Methods:
        create: Create a single PENDING entry
        create_from_appointment: Revenue entry plus optional helper payout
        declare_paid: Record a customer's "I have paid" declaration
        attach_payment_link: Store a hosted payment link on a pending entry
        delete_pending: Delete one unreferenced pending entry
        discard_pending_for_appointment: Clean up after a cancellation
        list_entries: Owner ledger listing with filters
    """

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def create(
        cls,
        owner,
        kind: str,
        amount: Any,
        due_date: datetime.date,
        appointment_id: uuid.UUID | None = None,
        **fields: Any,
    ) -> LedgerEntry:
        """
        Create a PENDING ledger entry.

        Args:
            owner: Business account
            kind: EntryKind value
            amount: Money, or a decimal amount in major units
            due_date: When payment is due
            appointment_id: External appointment reference (idempotency key)
            **fields: Other LedgerEntry fields (customer_name, description, ...)

        Raises:
            InvalidAmountError: amount <= 0 or not a number
            DuplicateSettlementError: entry exists for (appointment_id, kind)
        """
        money = amount if isinstance(amount, Money) else Money.from_decimal(amount)
        if money.cents <= 0:
            raise InvalidAmountError(
                "Amount must be greater than zero",
                details={"amount": str(money.to_decimal())},
            )
        if kind not in EntryKind.values:
            raise SettlementError(
                f"Unknown entry kind '{kind}'",
                error_code="INVALID_ENTRY_KIND",
                details={"kind": kind},
            )

        if appointment_id is not None:
            cls._raise_if_duplicate(appointment_id, kind, owner)

        try:
            with cls.atomic():
                entry = LedgerEntry.objects.create(
                    owner=owner,
                    kind=kind,
                    amount_cents=money.cents,
                    due_date=due_date,
                    appointment_id=appointment_id,
                    **fields,
                )
        except IntegrityError:
            # Lost a creation race on (appointment_id, kind)
            if appointment_id is not None:
                cls._raise_if_duplicate(appointment_id, kind, owner)
            raise

        cls.get_logger().info(
            "Created ledger entry",
            extra={
                "entry_id": str(entry.id),
                "kind": kind,
                "amount_cents": entry.amount_cents,
                "appointment_id": str(appointment_id) if appointment_id else None,
            },
        )
        return entry

    @classmethod
    def _raise_if_duplicate(cls, appointment_id, kind: str, owner) -> None:
        existing = (
            LedgerEntry.objects.filter(appointment_id=appointment_id, kind=kind)
            .values("id", "owner_id")
            .first()
        )
        if existing is None:
            return

        details = {"appointment_id": str(appointment_id), "kind": kind}
        # Another business's entry id is never revealed
        if existing["owner_id"] == owner.pk:
            details["existing_entry_id"] = str(existing["id"])
        raise DuplicateSettlementError(
            "A ledger entry already exists for this appointment",
            details=details,
        )

    @classmethod
    def create_from_appointment(
        cls,
        completion: AppointmentCompletion,
        owner=None,
    ) -> list[LedgerEntry]:
        """
        Bill a completed appointment.

        Creates the REVENUE entry and, when the appointment names a helper
        with a payout policy, an EXPENSE entry for the helper's fee. Both are
        created in one transaction; a rejected helper fee is logged and
        skipped without blocking the revenue entry.

        Returns:
            [revenue] or [revenue, expense]
        """
        logger = cls.get_logger()
        if owner is None:
            from django.contrib.auth import get_user_model

            owner = get_user_model().objects.get(pk=completion.owner_id)

        due_date = completion.service_date or (
            timezone.localdate()
            + datetime.timedelta(days=settings.SETTLEMENT_DEFAULT_DUE_DAYS)
        )
        description = completion.description or completion.service_type or "Service"

        with cls.atomic():
            revenue = cls.create(
                owner,
                EntryKind.REVENUE,
                completion.price,
                due_date,
                appointment_id=completion.appointment_id,
                customer_id=str(completion.customer_id),
                customer_name=completion.customer_name,
                customer_email=completion.customer_email,
                description=description,
                appointment_context=completion.appointment_context(),
            )
            entries = [revenue]

            if completion.helper_id is None:
                return entries

            policy = (
                HelperPayoutPolicy.objects.select_related("helper")
                .filter(helper_id=completion.helper_id, owner=owner)
                .first()
            )
            if policy is None:
                logger.info(
                    "No payout policy for helper, skipping expense entry",
                    extra={"helper_id": str(completion.helper_id), "entry_id": str(revenue.id)},
                )
                return entries

            price = Decimal(str(completion.price))
            terms = policy.terms
            fee = compute_fee(price, terms)
            check = validate_fee(fee, price, settings.SETTLEMENT_MAX_PAYOUT_PERCENTAGE)
            if not check:
                logger.warning(
                    "Helper fee rejected: %s",
                    check.error,
                    extra={"helper_id": str(completion.helper_id), "fee": str(fee)},
                )
                return entries
            if fee <= 0:
                return entries

            expense = cls.create(
                owner,
                EntryKind.EXPENSE,
                fee,
                due_date,
                appointment_id=completion.appointment_id,
                payee=policy.helper,
                customer_id=str(completion.customer_id),
                customer_name=completion.customer_name,
                description=f"Helper payout: {policy.helper.get_full_name()}",
                appointment_context={
                    **completion.appointment_context(),
                    "payout": format_fee_explanation(fee, price, terms.mode, terms.value),
                },
            )
            entries.append(expense)

        return entries

    # =========================================================================
    # Customer Declaration
    # =========================================================================

    @classmethod
    def declare_paid(
        cls,
        entry_id: uuid.UUID,
        method: str | None = None,
        notes: str | None = None,
    ) -> LedgerEntry:
        """
        Record the customer's claim that they have paid.

        Written with a conditional update on status=PENDING instead of the
        row lock. Re-declaring an already declared entry is a no-op.

        Raises:
            AlreadySettledError: Entry is PAID
            EntryNotFoundError: Entry does not exist
        """
        if method and method not in PaymentMethod.values:
            raise SettlementError(
                f"Unknown payment method '{method}'",
                error_code="INVALID_PAYMENT_METHOD",
                details={"method": method},
            )

        now = timezone.now()
        updated = LedgerEntry.objects.filter(
            pk=entry_id,
            status=LedgerEntryStatus.PENDING,
            customer_marked_paid=False,
        ).update(
            customer_marked_paid=True,
            customer_paid_at=now,
            declared_method=method or "",
            declaration_notes=(notes or "")[:2000],
            updated_at=now,
        )

        entry = LedgerEntry.objects.filter(pk=entry_id).first()
        if entry is None:
            raise EntryNotFoundError(
                f"LedgerEntry {entry_id} not found",
                details={"pk": str(entry_id)},
            )
        if updated == 0 and entry.is_paid:
            raise AlreadySettledError(
                "Invoice has already been paid",
                details={"invoice_number": entry.invoice_number},
            )

        if updated:
            cls.get_logger().info(
                "Customer declared payment",
                extra={"entry_id": str(entry.id), "declared_method": method},
            )
        return entry

    # =========================================================================
    # Payment Links
    # =========================================================================

    @classmethod
    def attach_payment_link(cls, entry_id: uuid.UUID, url: str, link_id: str) -> bool:
        """
        Store a hosted payment link on a pending entry without a link.

        Returns:
            True if stored; False if the entry is no longer pending or
            already carries a link
        """
        updated = LedgerEntry.objects.filter(
            pk=entry_id,
            status=LedgerEntryStatus.PENDING,
            payment_link_id="",
        ).update(
            payment_link_url=url,
            payment_link_id=link_id,
            updated_at=timezone.now(),
        )
        return bool(updated)

    # =========================================================================
    # Deletion
    # =========================================================================

    @classmethod
    def delete_pending(cls, entry_id: uuid.UUID, owner) -> None:
        """
        Delete a pending entry that no settlement attempt references.

        Raises:
            EntryNotFoundError: Missing or owned by someone else
            AlreadySettledError: Entry is PAID (paid entries are never deleted)
            EntryInUseError: Entry has a payment link or a customer declaration
        """
        with cls.atomic():
            entry = lock_entry(LedgerEntry, entry_id, owner=owner)
            if entry.is_paid:
                raise AlreadySettledError(
                    "Paid entries cannot be deleted",
                    details={"entry_id": str(entry.id)},
                )
            if entry.is_referenced:
                raise EntryInUseError(
                    "Entry is referenced by a settlement attempt",
                    details={
                        "entry_id": str(entry.id),
                        "has_payment_link": entry.has_payment_link,
                        "customer_marked_paid": entry.customer_marked_paid,
                    },
                )
            entry.delete()

        cls.get_logger().info("Deleted pending entry", extra={"entry_id": str(entry_id)})

    @classmethod
    def discard_pending_for_appointment(cls, appointment_id: uuid.UUID, owner=None) -> int:
        """
        Remove unreferenced pending entries of a cancelled appointment.

        Paid entries and pending entries with a link or declaration are kept.

        Returns:
            Number of entries deleted
        """
        with cls.atomic():
            entries = LedgerEntry.objects.filter(appointment_id=appointment_id)
            if owner is not None:
                entries = entries.filter(owner=owner)
            kept = entries.exclude(pk__in=entries.unreferenced().values("pk")).count()
            deleted, _ = entries.unreferenced().delete()

        cls.get_logger().info(
            "Discarded pending entries for cancelled appointment",
            extra={
                "appointment_id": str(appointment_id),
                "deleted": deleted,
                "kept": kept,
            },
        )
        return deleted

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get_for_owner(cls, entry_id: uuid.UUID, owner) -> LedgerEntry:
        entry = LedgerEntry.objects.filter(pk=entry_id, owner=owner).first()
        if entry is None:
            raise EntryNotFoundError(
                f"LedgerEntry {entry_id} not found",
                details={"pk": str(entry_id)},
            )
        return entry

    @classmethod
    def list_entries(
        cls,
        owner,
        date_from: datetime.date | None = None,
        date_to: datetime.date | None = None,
        status: str | None = None,
        kind: str | None = None,
    ) -> QuerySet[LedgerEntry]:
        """
        Owner's entries by due date, newest first.

        Without an explicit range the last SETTLEMENT_LIST_DEFAULT_DAYS days
        are returned.
        """
        if date_from is None and date_to is None:
            date_to = timezone.localdate()
            date_from = date_to - datetime.timedelta(days=settings.SETTLEMENT_LIST_DEFAULT_DAYS)

        entries = LedgerEntry.objects.for_owner(owner)
        if date_from is not None:
            entries = entries.filter(due_date__gte=date_from)
        if date_to is not None:
            entries = entries.filter(due_date__lte=date_to)
        if status:
            entries = entries.filter(status=status)
        if kind:
            entries = entries.filter(kind=kind)
        return entries.order_by("-due_date", "-created_at")
