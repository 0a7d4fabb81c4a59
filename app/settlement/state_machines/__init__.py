"""
State enums for settlement models.

Usage:
    from settlement.state_machines import LedgerEntryStatus, PaymentMethod
"""

from settlement.state_machines.states import (
    EntryKind,
    LedgerEntryStatus,
    PaymentMethod,
    PayoutMode,
    SettlementOption,
    WebhookEventStatus,
)

__all__ = [
    "EntryKind",
    "LedgerEntryStatus",
    "PaymentMethod",
    "PayoutMode",
    "SettlementOption",
    "WebhookEventStatus",
]
