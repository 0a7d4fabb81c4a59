"""
Settlement app configuration.

This app turns completed appointments into ledger entries and collects
payment for them:
- Ledger entries and their PENDING → PAID state machine
- Hosted payment links and Stripe webhook reconciliation
- Customer payment declarations and owner confirmation
- Public, token-scoped invoice pages
"""

from django.apps import AppConfig


class SettlementConfig(AppConfig):
    """Configuration for the settlement application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "settlement"
    verbose_name = "Settlement"
