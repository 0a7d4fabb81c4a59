"""
State and choice enums for settlement models.

These are Django TextChoices for database storage and admin integration.

LedgerEntry States:
    pending → paid

    PAID is terminal. The customer's "I have paid" declaration is not a
    state of its own; it is an advisory flag carried on a PENDING entry
    (customer_marked_paid) and cleared by the transition to PAID.
"""

from django.db import models


class LedgerEntryStatus(models.TextChoices):
    """
    Status of a ledger entry.

    State Flow:
        PENDING → PAID (one-way, via the reconciliation coordinator only)
    """

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class EntryKind(models.TextChoices):
    """Direction of money for a ledger entry."""

    REVENUE = "revenue", "Revenue"
    EXPENSE = "expense", "Expense"


class PaymentMethod(models.TextChoices):
    """
    How a settled entry was actually paid.

    CARD, ACH and CASH_APP arrive through the hosted payment link; the rest
    are confirmed manually by the owner.
    """

    CARD = "card", "Card"
    ACH = "ach", "ACH bank transfer"
    CASH_APP = "cash_app", "Cash App"
    ZELLE = "zelle", "Zelle"
    VENMO = "venmo", "Venmo"
    CASH = "cash", "Cash"


class PayoutMode(models.TextChoices):
    """How a helper payout value is interpreted."""

    FIXED = "fixed", "Fixed amount"
    PERCENTAGE = "percentage", "Percentage of price"


class SettlementOption(models.TextChoices):
    """
    Settlement options an owner can offer on public invoices.

    HOSTED_LINK is the card/bank/Cash App checkout behind a payment link.
    """

    ZELLE = "zelle", "Zelle"
    VENMO = "venmo", "Venmo"
    CASH_APP = "cash_app", "Cash App"
    CASH = "cash", "Cash"
    HOSTED_LINK = "hosted_link", "Online payment link"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED → PROCESSING (retry)
        PENDING → PROCESSING → DISCARDED (unresolvable or unhandled)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
    DISCARDED = "discarded", "Discarded"
