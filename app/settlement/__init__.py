"""
Settlement app: ledger, invoicing and payment reconciliation.

Related apps:
    - authentication: Owners and helpers (User model)

Usage:
    from settlement.services import LedgerEntryService, ReconciliationCoordinator

    entries = LedgerEntryService.create_from_appointment(completion)
    outcome = ReconciliationCoordinator.mark_paid(entry.id, PaymentMethod.CARD, {...})
"""
