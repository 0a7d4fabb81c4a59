"""
Factory functions for settlement channels.

Views, tasks and webhook handlers call these instead of constructing a
provider client themselves, which gives tests a single seam to patch.
"""

from __future__ import annotations

from settlement.channels.base import SettlementChannel
from settlement.channels.manual import ManualDeclarationChannel
from settlement.channels.stripe_link import StripePaymentLinkChannel


def get_settlement_channel() -> SettlementChannel:
    """
    Get the hosted payment channel for the current configuration.

    Returns:
        StripePaymentLinkChannel configured from settings
    """
    return StripePaymentLinkChannel()


def get_manual_channel() -> ManualDeclarationChannel:
    return ManualDeclarationChannel()
