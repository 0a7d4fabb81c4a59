"""
Settlement channel protocol.

A settlement channel is a way money reaches the owner that the engine can
observe. The hosted-link channel is asynchronous: it hands out a payment
URL and later reports completion through a signed webhook.

Services and webhook handlers receive a channel instead of reaching for a
module-level provider client, so tests substitute a fake implementation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from settlement.models import LedgerEntry
    from settlement.types import PaymentLink


@runtime_checkable
class SettlementChannel(Protocol):
    """
    Interface for hosted payment channels.

    Implementations:
        - StripePaymentLinkChannel: Stripe Payment Links + webhooks
    """

    name: str

    def create_payment_link(
        self,
        entry: LedgerEntry,
        payer_info: dict[str, Any] | None = None,
    ) -> PaymentLink:
        """
        Create a hosted payment URL for an entry.

        Raises:
            ChannelUnavailableError: Not configured, timeout or transient failure
        """
        ...

    def verify_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify a webhook signature and return the parsed event.

        Raises:
            InvalidSignatureError: Signature missing or invalid
        """
        ...

    def payment_method_types(self, session: dict[str, Any]) -> list[str]:
        """Provider payment method types actually used for a completed session."""
        ...
