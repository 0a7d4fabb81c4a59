"""
Settlement API views.

Owner-facing (JWT authenticated, OWNER role):
    entries: create, list, export, detail/delete, confirm, payment links,
        appointment cancellation

Public (capability token, anonymous, throttled):
    public: invoice read and customer declaration
"""

from settlement.views.entries import (
    AppointmentCancelView,
    EntryConfirmView,
    EntryDetailView,
    EntryExportView,
    EntryListCreateView,
    PaymentLinkView,
)
from settlement.views.public import PublicInvoiceDeclareView, PublicInvoiceView

__all__ = [
    "AppointmentCancelView",
    "EntryConfirmView",
    "EntryDetailView",
    "EntryExportView",
    "EntryListCreateView",
    "PaymentLinkView",
    "PublicInvoiceDeclareView",
    "PublicInvoiceView",
]
