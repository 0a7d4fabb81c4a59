"""
URL configuration for the settlement service.

URL Structure:
    /                                   - ReDoc API documentation
    /admin/                             - Django admin interface
    /health/                            - Health check endpoint
    /schema/                            - OpenAPI schema (YAML)
    /api/v1/auth/                       - JWT token endpoints
        token/                          - Obtain access/refresh pair
        token/refresh/                  - Refresh access token
    /api/v1/settlement/                 - Owner-facing settlement endpoints
        entries/                        - List (GET) / create from appointment (POST)
        entries/export/                 - CSV export of the ledger
        entries/{id}/                   - Entry detail (GET) / delete pending (DELETE)
        entries/{id}/confirm/           - Owner confirms payment received
        links/                          - Create hosted payment link
        webhook/                        - Stripe webhook endpoint (POST)
    /api/v1/invoices/public/{token}/    - Public invoice (GET)
        declare/                        - Customer declares payment (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("settlement/", include("settlement.urls")),
    path("invoices/", include("settlement.public_urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Settlement Admin"
admin.site.site_title = "Settlement Portal"
admin.site.index_title = "Ledger, invoices and payment settings"
