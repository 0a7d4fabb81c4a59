"""
URL configuration for the settlement app (owner-facing and webhook).

All routes are prefixed with /api/v1/settlement/ when included in the main URLconf.
"""

from django.urls import path

from settlement.views import (
    AppointmentCancelView,
    EntryConfirmView,
    EntryDetailView,
    EntryExportView,
    EntryListCreateView,
    PaymentLinkView,
)
from settlement.webhooks.views import settlement_webhook

app_name = "settlement"

urlpatterns = [
    path("entries/", EntryListCreateView.as_view(), name="entry-list"),
    path("entries/export/", EntryExportView.as_view(), name="entry-export"),
    path("entries/<uuid:entry_id>/", EntryDetailView.as_view(), name="entry-detail"),
    path("entries/<uuid:entry_id>/confirm/", EntryConfirmView.as_view(), name="entry-confirm"),
    path("links/", PaymentLinkView.as_view(), name="payment-link"),
    path(
        "appointments/<uuid:appointment_id>/cancel/",
        AppointmentCancelView.as_view(),
        name="appointment-cancel",
    ),
    # Webhook endpoints
    path("webhook/", settlement_webhook, name="webhook"),
]
