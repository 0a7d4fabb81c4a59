"""
Settlement services.

Usage:
    from settlement.services import LedgerEntryService, ReconciliationCoordinator
"""

from settlement.services.invoices import PublicInvoiceService
from settlement.services.ledger import LedgerEntryService
from settlement.services.reconciliation import ReconciliationCoordinator
from settlement.services.payment_links import PaymentLinkService

__all__ = [
    "LedgerEntryService",
    "PaymentLinkService",
    "PublicInvoiceService",
    "ReconciliationCoordinator",
]
