"""
Mapping from provider payment method types to PaymentMethod.

A completed checkout may report more than one payment method type. The
classification is a table lookup with an explicit precedence:

    bank transfer (ACH) > wallet (Cash App) > card

Unknown types fall back to CARD, the catch-all of hosted checkout.
"""

from __future__ import annotations

from collections.abc import Iterable

from settlement.state_machines import PaymentMethod

STRIPE_METHOD_TYPES: dict[str, PaymentMethod] = {
    "us_bank_account": PaymentMethod.ACH,
    "ach_debit": PaymentMethod.ACH,
    "ach_credit_transfer": PaymentMethod.ACH,
    "cashapp": PaymentMethod.CASH_APP,
    "card": PaymentMethod.CARD,
    "link": PaymentMethod.CARD,
}

# Lower index wins
PRECEDENCE: tuple[PaymentMethod, ...] = (
    PaymentMethod.ACH,
    PaymentMethod.CASH_APP,
    PaymentMethod.CARD,
)


def classify_payment_method(method_types: Iterable[str] | None) -> PaymentMethod:
    """
    Classify provider payment method types into a single PaymentMethod.

    Example:
        classify_payment_method(["card", "us_bank_account"])  # PaymentMethod.ACH
        classify_payment_method([])                           # PaymentMethod.CARD
    """
    found = {STRIPE_METHOD_TYPES.get(t, PaymentMethod.CARD) for t in (method_types or [])}
    for method in PRECEDENCE:
        if method in found:
            return method
    return PaymentMethod.CARD
