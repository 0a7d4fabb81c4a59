"""
Data types for settlement operations.

Dataclasses used for type-safe data transfer between views, services and
channels.

Types:
    Money: A positive amount in minor units, converted from/to API decimals
    AppointmentCompletion: Inbound "job is done, bill it" payload
    SettlementOutcome: Result of a PENDING → PAID attempt
    PaymentLink: A hosted payment link created by a channel

Usage:
    from settlement.types import Money

    amount = Money.from_decimal("150.00")
    amount.cents        # 15000
    str(amount)         # "$150.00 USD"
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from settlement.exceptions import InvalidAmountError

if TYPE_CHECKING:
    from settlement.models import LedgerEntry

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Money:
    """
    A monetary amount held in minor units.

    Decimal only exists at the API boundary; everything persisted is an
    integer number of cents.

    Attributes:
        cents: Amount in the smallest currency unit
        currency: ISO 4217 currency code (default: 'usd')
    """

    cents: int
    currency: str = "usd"

    @classmethod
    def from_decimal(cls, value: Any, currency: str = "usd") -> Money:
        """
        Convert an API amount (Decimal, str, int) to Money.

        Sub-cent precision is rounded half-up.

        Raises:
            InvalidAmountError: If the value is not a finite number
        """
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmountError(
                "Amount must be a number",
                details={"amount": str(value)},
            )
        if not amount.is_finite():
            raise InvalidAmountError(
                "Amount must be a finite number",
                details={"amount": str(value)},
            )
        cents = int((amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
        return cls(cents=cents, currency=currency)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(CENT)

    def __str__(self) -> str:
        return f"${self.to_decimal()} {self.currency.upper()}"


@dataclass
class AppointmentCompletion:
    """
    A finalized appointment handed over by the scheduling system.

    Required Attributes:
        appointment_id: External appointment reference (idempotency key)
        owner_id: Account that performed the service
        customer_id: External customer reference
        price: Job price as a decimal amount

    Optional Attributes:
        description: Line item text for the invoice
        customer_name / customer_email / customer_address: Payer details
        service_type: Kind of job, shown on the invoice
        service_date / start_time / end_time / notes: Appointment context
        helper_id: Team member who worked the job, triggers a payout entry
    """

    appointment_id: uuid.UUID
    owner_id: Any
    customer_id: str
    price: Decimal
    description: str = ""
    customer_name: str = ""
    customer_email: str = ""
    customer_address: str = ""
    service_type: str = ""
    service_date: datetime.date | None = None
    start_time: datetime.time | None = None
    end_time: datetime.time | None = None
    notes: str = ""
    helper_id: Any = None

    def __post_init__(self) -> None:
        if not self.appointment_id:
            raise ValueError("appointment_id is required")
        if not self.customer_id:
            raise ValueError("customer_id is required")

    def appointment_context(self) -> dict[str, Any]:
        """Appointment details stored on the entry for the public invoice."""
        return {
            "date": self.service_date.isoformat() if self.service_date else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "notes": self.notes,
            "service_type": self.service_type,
            "customer_address": self.customer_address,
        }


@dataclass
class SettlementOutcome:
    """
    Result of a mark-paid attempt.

    applied=False means the entry was already PAID (by this or a competing
    signal) and nothing was written. It is not an error.
    """

    applied: bool
    entry: LedgerEntry

    def __bool__(self) -> bool:
        return self.applied


@dataclass
class PaymentLink:
    """A hosted payment link stored on a ledger entry."""

    url: str
    link_id: str
    reused: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
