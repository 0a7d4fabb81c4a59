"""
LedgerEntry model: a single receivable or payable and its invoice.

A LedgerEntry is both the ledger line and the invoice the customer sees.
Revenue entries are created when an appointment is completed; an expense
entry records the helper payout for the same appointment.

State Machine:
    PENDING → PAID

    PAID is terminal. The only way to PAID is the reconciliation
    coordinator (settlement.services.reconciliation), which writes status,
    paid_at, payment_method and settlement_metadata in one conditional UPDATE.

Usage:
    from settlement.models import LedgerEntry
    from settlement.state_machines import LedgerEntryStatus

    entry = LedgerEntry.objects.get(public_token=token)
    if entry.status == LedgerEntryStatus.PENDING:
        ...
"""

from __future__ import annotations

import secrets

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.state_machines import EntryKind, LedgerEntryStatus, PaymentMethod
from settlement.types import Money


def generate_public_token() -> str:
    """256-bit URL-safe capability token for the public invoice page."""
    return secrets.token_urlsafe(32)


def generate_invoice_number() -> str:
    return f"INV-{secrets.token_hex(4).upper()}"


class LedgerEntryQuerySet(models.QuerySet):
    def for_owner(self, owner):
        return self.filter(owner=owner)

    def pending(self):
        return self.filter(status=LedgerEntryStatus.PENDING)

    def paid(self):
        return self.filter(status=LedgerEntryStatus.PAID)

    def unreferenced(self):
        """Pending entries no settlement attempt points at."""
        return self.pending().filter(
            payment_link_id="",
            customer_marked_paid=False,
        )


class LedgerEntry(UUIDPrimaryKeyMixin, BaseModel):
    """
    A receivable (REVENUE) or payable (EXPENSE) with its invoice data.

    Fields:
        owner: Business account the entry belongs to
        appointment_id: External appointment reference, unique per kind
        kind: REVENUE or EXPENSE
        amount_cents: Positive amount in minor units
        status: PENDING or PAID (FSM protected)
        due_date: When payment is due
        paid_at: Set exactly once, by the PAID transition
        payment_method: How it was paid, null while pending
        settlement_metadata: Provider details, written once by the PAID transition
        customer_marked_paid / customer_paid_at / declared_method /
            declaration_notes: Customer's "I have paid" declaration
        public_token: Capability token for the public invoice page
        invoice_number: Human-facing invoice reference
        payment_link_url / payment_link_id: Hosted payment link, if created
        version: Optimistic locking version

    Note:
        status is an FSMField with protected=True. It cannot be assigned
        directly; PENDING → PAID happens through settle() and a conditional
        queryset update in the coordinator.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        help_text="Business account this entry belongs to",
    )

    # ==========================================================================
    # Source
    # ==========================================================================

    appointment_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="External appointment reference (one entry per kind)",
    )

    kind = models.CharField(
        max_length=10,
        choices=EntryKind.choices,
        default=EntryKind.REVENUE,
    )

    payee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payout_entries",
        help_text="Helper paid by an EXPENSE entry",
    )

    customer_id = models.CharField(max_length=64, blank=True)
    customer_name = models.CharField(max_length=200, blank=True)
    customer_email = models.EmailField(blank=True)

    description = models.CharField(max_length=500, blank=True)

    appointment_context = models.JSONField(
        default=dict,
        blank=True,
        help_text="Service date, times, notes and address shown on the invoice",
    )

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in minor units (must be positive)",
    )

    status = FSMField(
        default=LedgerEntryStatus.PENDING,
        choices=LedgerEntryStatus.choices,
        protected=True,
        db_index=True,
    )

    due_date = models.DateField(db_index=True)

    paid_at = models.DateTimeField(null=True, blank=True)

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        null=True,
        blank=True,
    )

    settlement_metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider details recorded by the PAID transition",
    )

    # ==========================================================================
    # Customer Declaration (advisory, PENDING only)
    # ==========================================================================

    customer_marked_paid = models.BooleanField(default=False)
    customer_paid_at = models.DateTimeField(null=True, blank=True)
    declared_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True,
    )
    declaration_notes = models.TextField(blank=True)

    # ==========================================================================
    # Invoice
    # ==========================================================================

    public_token = models.CharField(
        max_length=64,
        unique=True,
        default=generate_public_token,
        editable=False,
    )

    invoice_number = models.CharField(
        max_length=20,
        default=generate_invoice_number,
        db_index=True,
        editable=False,
    )

    payment_link_url = models.URLField(max_length=500, blank=True)
    payment_link_id = models.CharField(max_length=255, blank=True)

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Optimistic locking version",
    )

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        ordering = ["-due_date", "-created_at"]
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        constraints = [
            models.UniqueConstraint(
                fields=["appointment_id", "kind"],
                name="ledger_entry_unique_appointment_kind",
            ),
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="ledger_entry_amount_positive",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status=LedgerEntryStatus.PAID, paid_at__isnull=False)
                    | Q(status=LedgerEntryStatus.PENDING, paid_at__isnull=True)
                ),
                name="ledger_entry_paid_at_iff_paid",
            ),
            models.CheckConstraint(
                condition=Q(status=LedgerEntryStatus.PENDING) | Q(customer_marked_paid=False),
                name="ledger_entry_no_declaration_when_paid",
            ),
        ]
        indexes = [
            models.Index(fields=["owner", "status", "due_date"], name="ledger_owner_status_due_idx"),
            models.Index(fields=["owner", "kind", "due_date"], name="ledger_owner_kind_due_idx"),
        ]

    def __str__(self) -> str:
        return f"LedgerEntry({self.invoice_number}, {self.kind}, {self.status})"

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.
        """
        is_update = (
            not self._state.adding and not kwargs.get("force_insert", False)
        )
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=LedgerEntryStatus.PENDING,
        target=LedgerEntryStatus.PAID,
    )
    def settle(self, payment_method, metadata, paid_at):
        """
        Apply the PAID transition in memory.

        Transition: PENDING -> PAID

        The coordinator persists the result with a conditional UPDATE; do not
        call save() after this.
        """
        self.paid_at = paid_at
        self.payment_method = payment_method
        self.settlement_metadata = dict(metadata or {})
        self.customer_marked_paid = False

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def amount(self) -> Money:
        return Money(cents=self.amount_cents, currency=settings.SETTLEMENT_CURRENCY)

    @property
    def is_paid(self) -> bool:
        return self.status == LedgerEntryStatus.PAID

    @property
    def is_pending(self) -> bool:
        return self.status == LedgerEntryStatus.PENDING

    @property
    def has_payment_link(self) -> bool:
        return bool(self.payment_link_id)

    @property
    def is_referenced(self) -> bool:
        """Whether a settlement attempt points at this entry."""
        return self.has_payment_link or self.customer_marked_paid
