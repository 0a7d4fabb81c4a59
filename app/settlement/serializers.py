"""
Serializers for settlement API.

Serializers:
    AppointmentCompletionSerializer: Completed appointment input
    LedgerEntrySerializer: Owner-facing entry representation
    LedgerEntryListQuerySerializer: Listing/export filters
    PaymentLinkRequestSerializer: Hosted link request
    PaymentLinkSerializer: Hosted link response
    ConfirmPaymentSerializer: Owner confirmation input
    DeclarePaymentSerializer: Public customer declaration input

Amounts are exchanged as decimal strings in major units ("150.00");
storage is integer cents.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from settlement.models import LedgerEntry
from settlement.state_machines import EntryKind, LedgerEntryStatus, PaymentMethod
from settlement.types import AppointmentCompletion


class AppointmentCompletionSerializer(serializers.Serializer):
    """
    Completed appointment handed over for billing.

    The owner is the authenticated user; owner_id is never taken from
    the payload.
    """

    appointment_id = serializers.UUIDField()
    customer_id = serializers.CharField(max_length=64)
    price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        help_text="Job price in major units",
    )
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    customer_address = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    service_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    service_date = serializers.DateField(required=False, allow_null=True, default=None)
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    end_time = serializers.TimeField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")
    helper_id = serializers.IntegerField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        start, end = attrs.get("start_time"), attrs.get("end_time")
        if start and end and end < start:
            raise serializers.ValidationError({"end_time": "End time must be after start time."})
        return attrs

    def to_completion(self, owner) -> AppointmentCompletion:
        return AppointmentCompletion(owner_id=owner.pk, **self.validated_data)


class LedgerEntrySerializer(serializers.ModelSerializer):
    """Read-only owner view of a ledger entry."""

    amount = serializers.SerializerMethodField()
    currency = serializers.SerializerMethodField()
    payee_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "invoice_number",
            "kind",
            "status",
            "amount",
            "currency",
            "due_date",
            "appointment_id",
            "payee_id",
            "customer_id",
            "customer_name",
            "customer_email",
            "description",
            "appointment_context",
            "paid_at",
            "payment_method",
            "settlement_metadata",
            "customer_marked_paid",
            "customer_paid_at",
            "declared_method",
            "declaration_notes",
            "public_token",
            "payment_link_url",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_amount(self, obj: LedgerEntry) -> str:
        return str(obj.amount.to_decimal())

    def get_currency(self, obj: LedgerEntry) -> str:
        return obj.amount.currency


class LedgerEntryListQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=LedgerEntryStatus.choices, required=False)
    kind = serializers.ChoiceField(choices=EntryKind.choices, required=False)

    def validate(self, attrs):
        date_from, date_to = attrs.get("date_from"), attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_to": "date_to must not be before date_from."})
        return attrs


class PaymentLinkRequestSerializer(serializers.Serializer):
    entry_id = serializers.UUIDField()
    payer_email = serializers.EmailField(required=False, allow_blank=True)
    payer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def payer_info(self) -> dict:
        data = self.validated_data
        info = {}
        if data.get("payer_email"):
            info["email"] = data["payer_email"]
        if data.get("payer_name"):
            info["name"] = data["payer_name"]
        return info


class PaymentLinkSerializer(serializers.Serializer):
    url = serializers.URLField()
    link_id = serializers.CharField()
    reused = serializers.BooleanField()


class ConfirmPaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class SettlementOutcomeSerializer(serializers.Serializer):
    applied = serializers.BooleanField()
    entry = LedgerEntrySerializer()


class AppointmentCancellationSerializer(serializers.Serializer):
    deleted = serializers.IntegerField()


class DeclarePaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)
