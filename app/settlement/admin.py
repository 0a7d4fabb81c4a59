"""
Settlement admin configuration.

Ledger entries are created by the service layer and settled only through
the reconciliation coordinator, so their amount and settlement fields are
read-only here. Payout policies and payment settings are maintained here.
"""

from django.contrib import admin

from settlement.models import HelperPayoutPolicy, LedgerEntry, PaymentSettings, WebhookEvent


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = [
        "invoice_number",
        "owner",
        "kind",
        "status",
        "amount_display",
        "due_date",
        "payment_method",
        "customer_marked_paid",
        "paid_at",
    ]
    list_filter = ["status", "kind", "payment_method", "customer_marked_paid", "due_date"]
    search_fields = [
        "id",
        "invoice_number",
        "appointment_id",
        "customer_name",
        "customer_email",
        "owner__email",
    ]
    readonly_fields = [
        "id",
        "owner",
        "appointment_id",
        "kind",
        "payee",
        "amount_cents",
        "status",
        "paid_at",
        "payment_method",
        "settlement_metadata",
        "customer_marked_paid",
        "customer_paid_at",
        "declared_method",
        "declaration_notes",
        "public_token",
        "invoice_number",
        "payment_link_url",
        "payment_link_id",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-due_date", "-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "invoice_number", "owner", "kind", "payee", "appointment_id")}),
        ("Amount", {"fields": ("amount_cents", "due_date", "description")}),
        ("Customer", {"fields": ("customer_id", "customer_name", "customer_email", "appointment_context")}),
        (
            "Settlement",
            {"fields": ("status", "paid_at", "payment_method", "settlement_metadata")},
        ),
        (
            "Customer Declaration",
            {"fields": ("customer_marked_paid", "customer_paid_at", "declared_method", "declaration_notes")},
        ),
        (
            "Invoice",
            {
                "fields": ("public_token", "payment_link_url", "payment_link_id", "version"),
                "classes": ("collapse",),
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: LedgerEntry) -> str:
        return str(obj.amount)

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        # Paid or referenced entries are never deleted
        if obj is None:
            return super().has_delete_permission(request)
        return obj.is_pending and not obj.is_referenced


@admin.register(HelperPayoutPolicy)
class HelperPayoutPolicyAdmin(admin.ModelAdmin):
    list_display = ["helper", "owner", "mode", "value", "updated_at"]
    list_filter = ["mode"]
    search_fields = ["helper__email", "owner__email"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(PaymentSettings)
class PaymentSettingsAdmin(admin.ModelAdmin):
    list_display = ["owner", "business_name", "enabled_methods", "updated_at"]
    search_fields = ["owner__email", "business_name"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = (
        (None, {"fields": ("owner", "business_name", "business_logo_url")}),
        (
            "Methods",
            {
                "fields": (
                    "enabled_methods",
                    "zelle_email",
                    "venmo_username",
                    "cash_app_username",
                    "cash_instructions",
                    "payment_instructions",
                ),
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Webhook deliveries and their processing status.

    Deliveries are immutable once received.
    """

    list_display = [
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "error_message",
        "retry_count",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False
