"""
Settlement-specific exceptions.

Every member of the settlement error taxonomy is a BaseApplicationError, so
views render them uniformly with ``to_dict()`` and ``http_status``.

Exception Hierarchy:
    SettlementError (base, 400)
    ├── InvalidAmountError - Non-positive or malformed amount (400)
    ├── FeeComputationError - Non-numeric input to the fee calculator (400)
    ├── EntryNotFoundError - Entry missing or owned by someone else (404)
    ├── InvalidTokenError - Unresolvable public invoice token (404)
    ├── DuplicateSettlementError - Entry already exists for appointment (409)
    ├── AlreadySettledError - Operation requires a PENDING entry (409)
    ├── EntryInUseError - Pending entry is referenced by a settlement attempt (409)
    ├── ChannelUnavailableError - Provider not configured or unreachable (503)
    └── InvalidSignatureError - Webhook failed signature verification (400)

    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)

The 404, 409 and 503 members also inherit the matching core.exceptions
class, which supplies their http_status.

Usage:
    from settlement.exceptions import AlreadySettledError

    if entry.is_paid:
        raise AlreadySettledError(
            "Invoice has already been paid",
            details={"entry_id": str(entry.id)},
        )
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


# =============================================================================
# Settlement Domain Exceptions
# =============================================================================


class SettlementError(BaseApplicationError):
    """Base exception for all settlement operations."""

    default_error_code: str = "SETTLEMENT_ERROR"


class InvalidAmountError(SettlementError, ValidationError):
    """
    Raised when an amount is zero, negative, non-finite or not a number.

    Amounts are rejected, never clamped.
    """

    default_error_code: str = "INVALID_AMOUNT"


class FeeComputationError(SettlementError):
    """
    Raised by the fee calculator for programmer-error inputs (NaN, non-numeric).

    Ordinary invalid fees are reported through FeeValidation, not raised.
    """

    default_error_code: str = "FEE_COMPUTATION_ERROR"


class EntryNotFoundError(SettlementError, NotFoundError):
    """
    Raised when a ledger entry cannot be found for the caller.

    Entries owned by another account are reported the same way so their
    existence is not disclosed.
    """

    default_error_code: str = "ENTRY_NOT_FOUND"


class InvalidTokenError(SettlementError, NotFoundError):
    """
    Raised for any unresolvable or malformed public invoice token.

    The message is deliberately generic and identical for every cause.
    """

    default_error_code: str = "INVALID_TOKEN"

    def __init__(self, message: str = "Invoice not found or invalid", **kwargs):
        super().__init__(message, **kwargs)


class DuplicateSettlementError(SettlementError, ConflictError):
    """
    Raised when an entry already exists for an appointment and kind.

    details["existing_entry_id"] carries the surviving entry when it belongs
    to the caller.
    """

    default_error_code: str = "DUPLICATE_SETTLEMENT"


class AlreadySettledError(SettlementError, ConflictError):
    """Raised when an operation requires a PENDING entry but it is PAID."""

    default_error_code: str = "ALREADY_SETTLED"


class EntryInUseError(SettlementError, ConflictError):
    """
    Raised when deleting a pending entry that a settlement attempt references.

    A stored payment link or a customer declaration both count as references.
    """

    default_error_code: str = "ENTRY_IN_USE"


class ChannelUnavailableError(SettlementError, ExternalServiceError):
    """
    Raised when a settlement channel cannot be used right now.

    Covers a provider that is not configured, a timeout and transient
    provider errors. The entry is left unchanged and the caller may retry.
    """

    default_error_code: str = "CHANNEL_UNAVAILABLE"


class InvalidSignatureError(SettlementError):
    """
    Raised when an inbound webhook fails signature verification.

    Nothing is mutated. The provider's own redelivery policy applies.
    """

    default_error_code: str = "INVALID_SIGNATURE"


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects concurrent modification.

    The record was modified by another process between read and update.
    Retry with fresh data or abort.
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired in time.

    Another process is working on the same resource (for example, creating
    a payment link for the same entry).
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


__all__ = [
    "SettlementError",
    "InvalidAmountError",
    "FeeComputationError",
    "EntryNotFoundError",
    "InvalidTokenError",
    "DuplicateSettlementError",
    "AlreadySettledError",
    "EntryInUseError",
    "ChannelUnavailableError",
    "InvalidSignatureError",
    "StaleRecordError",
    "LockAcquisitionError",
]
