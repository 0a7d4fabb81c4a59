"""
Helper payout fee calculation.

Pure functions: no database access, no clock, no settings lookups inside
compute_fee. The same (price, policy) pair always yields the same fee, so
fee computation can be re-run safely when an entry creation is retried.

Usage:
    from settlement.fees import PayoutTerms, compute_fee, validate_fee

    fee = compute_fee(Decimal("150.00"), PayoutTerms("percentage", Decimal("20")))
    # Decimal("30.00")

    result = validate_fee(fee, Decimal("150.00"))
    if not result:
        print(result.error)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Protocol

from settlement.exceptions import FeeComputationError
from settlement.state_machines import PayoutMode

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class PayoutPolicyLike(Protocol):
    mode: str
    value: Any


@dataclass(frozen=True)
class PayoutTerms:
    """Plain-value payout policy, usable without a database row."""

    mode: str
    value: Decimal


@dataclass(frozen=True)
class FeeValidation:
    """Outcome of validate_fee. Truthy when the fee is acceptable."""

    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def _to_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise FeeComputationError(
            f"{name} must be numeric", details={name: repr(value)}
        )
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise FeeComputationError(
            f"{name} must be numeric", details={name: repr(value)}
        )


def _quantize(value: Decimal) -> Decimal:
    return max(ZERO, value.quantize(CENT, rounding=ROUND_HALF_UP))


def compute_fee(price: Any, policy: PayoutPolicyLike) -> Decimal:
    """
    Compute a helper's payout for a job.

    A non-finite or non-positive price yields 0. PERCENTAGE pays
    ``price * value / 100``; FIXED pays ``value``. The result is floored at
    zero and rounded half-up to cents.

    Raises:
        FeeComputationError: If price or policy value is not a number, the
            policy value is NaN, or the mode is unknown
    """
    price = _to_decimal(price, "price")
    value = _to_decimal(policy.value, "value")
    if value.is_nan():
        raise FeeComputationError("Payout value is not a number")

    if not price.is_finite() or price <= 0:
        return ZERO

    if policy.mode == PayoutMode.PERCENTAGE:
        fee = price * value / HUNDRED
    elif policy.mode == PayoutMode.FIXED:
        fee = value
    else:
        raise FeeComputationError(
            f"Unknown payout mode '{policy.mode}'",
            details={"mode": str(policy.mode)},
        )

    if not fee.is_finite():
        raise FeeComputationError("Payout value must be finite")
    return _quantize(fee)


def validate_fee(fee: Any, price: Any, max_percentage: Any = 100) -> FeeValidation:
    """
    Check a computed (or manually entered) fee against the job price.

    Business violations come back as an invalid FeeValidation; only NaN or
    non-numeric input raises.

    Raises:
        FeeComputationError: For NaN or non-numeric arguments
    """
    fee = _to_decimal(fee, "fee")
    price = _to_decimal(price, "price")
    cap = _to_decimal(max_percentage, "max_percentage")
    if fee.is_nan() or price.is_nan() or cap.is_nan():
        raise FeeComputationError("Fee validation received NaN")

    if not fee.is_finite() or fee < 0:
        return FeeValidation(False, "Helper fee must be a non-negative number")
    if not price.is_finite() or price <= 0:
        return FeeValidation(False, "Invalid appointment price")
    if fee / price * HUNDRED > cap:
        return FeeValidation(
            False, f"Helper fee cannot exceed {cap.normalize():f}% of appointment price"
        )
    return FeeValidation(True)


def format_fee_explanation(fee: Any, price: Any, mode: str, value: Any) -> str:
    """
    Human-readable explanation of a helper fee, for owner-facing screens.

    Example:
        "20% of $150.00 = $30.00" or "Fixed fee: $40.00"
    """
    fee = _quantize(_to_decimal(fee, "fee"))
    if mode == PayoutMode.PERCENTAGE:
        price = _quantize(_to_decimal(price, "price"))
        pct = _to_decimal(value, "value").normalize()
        return f"{pct:f}% of ${price} = ${fee}"
    return f"Fixed fee: ${fee}"
