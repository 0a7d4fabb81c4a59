"""
URL configuration for the public invoice gateway.

Prefixed with /api/v1/invoices/ in the main URLconf. The token segment is
matched loosely here so malformed tokens reach the view and get the same
404 body as unknown ones.
"""

from django.urls import path

from settlement.views import PublicInvoiceDeclareView, PublicInvoiceView

app_name = "invoices"

urlpatterns = [
    path("public/<str:token>/", PublicInvoiceView.as_view(), name="public-invoice"),
    path("public/<str:token>/declare/", PublicInvoiceDeclareView.as_view(), name="public-declare"),
]
