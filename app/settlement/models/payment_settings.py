"""
PaymentSettings model: how an owner accepts payment.

Read by the public invoice gateway to list the settlement options and
public handles shown to the paying customer. Maintained through the admin.
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.models import BaseModel

from settlement.state_machines import SettlementOption


def default_enabled_methods() -> list[str]:
    return [SettlementOption.CASH]


class PaymentSettings(BaseModel):
    """
    Per-owner payment configuration.

    Fields:
        owner: Business account (also the primary key)
        enabled_methods: Subset of SettlementOption values offered on invoices
        zelle_email / venmo_username / cash_app_username: Public handles
        cash_instructions: Shown when cash is enabled
        business_name / business_logo_url: Invoice header
        payment_instructions: Free-form text shown on every invoice
    """

    owner = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payment_settings",
        primary_key=True,
    )
    enabled_methods = models.JSONField(default=default_enabled_methods, blank=True)

    zelle_email = models.EmailField(blank=True)
    venmo_username = models.CharField(max_length=64, blank=True)
    cash_app_username = models.CharField(max_length=64, blank=True)
    cash_instructions = models.TextField(blank=True)

    business_name = models.CharField(max_length=200, blank=True)
    business_logo_url = models.URLField(max_length=500, blank=True)
    payment_instructions = models.TextField(blank=True)

    class Meta:
        verbose_name = "Payment Settings"
        verbose_name_plural = "Payment Settings"

    def __str__(self) -> str:
        return f"PaymentSettings({self.owner_id})"

    def clean(self):
        super().clean()
        if not isinstance(self.enabled_methods, list):
            raise ValidationError({"enabled_methods": "Must be a list."})
        invalid = sorted(set(self.enabled_methods) - set(SettlementOption.values))
        if invalid:
            raise ValidationError(
                {"enabled_methods": f"Invalid payment methods: {', '.join(invalid)}"}
            )

    def save(self, *args, **kwargs):
        # Keep the stored list canonical: known values, declaration order, no duplicates
        self.enabled_methods = [m for m in SettlementOption.values if m in (self.enabled_methods or [])]
        super().save(*args, **kwargs)

    def is_enabled(self, option: str) -> bool:
        return option in (self.enabled_methods or [])

    def public_methods(self, hosted_link_url: str = "") -> dict:
        """
        Enabled settlement options with their public handles.

        An option whose handle is missing is left out. HOSTED_LINK is only
        listed when a link exists for the invoice being shown.
        """
        methods: dict = {}
        if self.is_enabled(SettlementOption.ZELLE) and self.zelle_email:
            methods["zelle"] = {"email": self.zelle_email}
        if self.is_enabled(SettlementOption.VENMO) and self.venmo_username:
            methods["venmo"] = {"username": self.venmo_username}
        if self.is_enabled(SettlementOption.CASH_APP) and self.cash_app_username:
            methods["cash_app"] = {"username": self.cash_app_username}
        if self.is_enabled(SettlementOption.CASH):
            methods["cash"] = {"instructions": self.cash_instructions}
        if self.is_enabled(SettlementOption.HOSTED_LINK) and hosted_link_url:
            methods["hosted_link"] = {"url": hosted_link_url}
        return methods
