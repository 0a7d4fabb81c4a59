"""
HelperPayoutPolicy model: how a helper is paid per job.

Usage:
    from settlement.fees import compute_fee

    policy = HelperPayoutPolicy.objects.get(helper=helper)
    fee = compute_fee(price, policy)
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from settlement.fees import PayoutTerms
from settlement.state_machines import PayoutMode


class HelperPayoutPolicy(UUIDPrimaryKeyMixin, BaseModel):
    """
    Payout terms attached to a helper on an owner's team.

    Fields:
        helper: Team member the policy applies to (one policy per helper)
        owner: Business account paying the helper
        mode: FIXED (currency amount) or PERCENTAGE (percentage points)
        value: Non-negative amount or percentage
    """

    helper = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payout_policy",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="helper_payout_policies",
    )
    mode = models.CharField(
        max_length=12,
        choices=PayoutMode.choices,
        default=PayoutMode.PERCENTAGE,
    )
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )

    class Meta:
        verbose_name = "Helper Payout Policy"
        verbose_name_plural = "Helper Payout Policies"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(value__gte=0),
                name="payout_policy_value_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"HelperPayoutPolicy({self.helper_id}, {self.mode}={self.value})"

    def clean(self):
        super().clean()
        cap = Decimal(settings.SETTLEMENT_MAX_PAYOUT_PERCENTAGE)
        if self.mode == PayoutMode.PERCENTAGE and self.value is not None and self.value > cap:
            raise ValidationError({"value": f"Percentage cannot exceed {cap}."})
        if self.helper_id and self.owner_id and self.helper.team_owner_id != self.owner_id:
            raise ValidationError({"helper": "Helper is not on this owner's team."})

    @property
    def terms(self) -> PayoutTerms:
        return PayoutTerms(mode=self.mode, value=self.value)
