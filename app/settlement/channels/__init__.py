"""
Settlement channels.

Usage:
    from settlement.channels import get_settlement_channel, classify_payment_method
"""

from settlement.channels.base import SettlementChannel
from settlement.channels.classification import classify_payment_method
from settlement.channels.factory import get_manual_channel, get_settlement_channel
from settlement.channels.manual import ManualDeclarationChannel
from settlement.channels.stripe_link import StripePaymentLinkChannel

__all__ = [
    "ManualDeclarationChannel",
    "SettlementChannel",
    "StripePaymentLinkChannel",
    "classify_payment_method",
    "get_manual_channel",
    "get_settlement_channel",
]
