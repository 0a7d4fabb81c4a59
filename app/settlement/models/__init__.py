"""
Settlement models.

Usage:
    from settlement.models import LedgerEntry, HelperPayoutPolicy
"""

from settlement.models.ledger_entry import LedgerEntry
from settlement.models.payment_settings import PaymentSettings
from settlement.models.payout_policy import HelperPayoutPolicy
from settlement.models.webhook_event import WebhookEvent

__all__ = [
    "LedgerEntry",
    "HelperPayoutPolicy",
    "PaymentSettings",
    "WebhookEvent",
]
