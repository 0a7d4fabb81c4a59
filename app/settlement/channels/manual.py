"""
Manual declaration settlement channel.

For money that moves outside the engine (Zelle, Venmo, Cash App transfers
to the owner's handle, cash): the customer self-reports through the public
invoice page and the owner, as the trust authority, confirms. Confirmation
is the only step that moves the entry to PAID.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from settlement.services import PublicInvoiceService, ReconciliationCoordinator

if TYPE_CHECKING:
    import uuid

    from settlement.types import SettlementOutcome


class ManualDeclarationChannel:
    """Payer-facing declaration and owner-facing confirmation."""

    name = "manual_declaration"

    def declare_paid(
        self,
        token: str,
        method: str | None = None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """
        Customer reports payment through their invoice token.

        Sets the advisory customer_marked_paid flag; status stays PENDING.
        """
        return PublicInvoiceService.declare(token, method=method, notes=notes)

    def confirm(
        self,
        entry_id: uuid.UUID,
        owner,
        method: str | None = None,
        expected_version: int | None = None,
    ) -> SettlementOutcome:
        """Owner confirms receipt; settles the entry through the coordinator."""
        return ReconciliationCoordinator.confirm(
            entry_id,
            owner,
            method=method,
            expected_version=expected_version,
        )
