# Generated manually - initial settlement schema

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import settlement.models.ledger_entry
import settlement.models.payment_settings


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("authentication", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "appointment_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="External appointment reference (one entry per kind)",
                        null=True,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("revenue", "Revenue"), ("expense", "Expense")],
                        default="revenue",
                        max_length=10,
                    ),
                ),
                ("customer_id", models.CharField(blank=True, max_length=64)),
                ("customer_name", models.CharField(blank=True, max_length=200)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("description", models.CharField(blank=True, max_length=500)),
                (
                    "appointment_context",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Service date, times, notes and address shown on the invoice",
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount in minor units (must be positive)",
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[("pending", "Pending"), ("paid", "Paid")],
                        db_index=True,
                        default="pending",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("due_date", models.DateField(db_index=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("card", "Card"),
                            ("ach", "ACH bank transfer"),
                            ("cash_app", "Cash App"),
                            ("zelle", "Zelle"),
                            ("venmo", "Venmo"),
                            ("cash", "Cash"),
                        ],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "settlement_metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Provider details recorded by the PAID transition",
                    ),
                ),
                ("customer_marked_paid", models.BooleanField(default=False)),
                ("customer_paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "declared_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("card", "Card"),
                            ("ach", "ACH bank transfer"),
                            ("cash_app", "Cash App"),
                            ("zelle", "Zelle"),
                            ("venmo", "Venmo"),
                            ("cash", "Cash"),
                        ],
                        max_length=20,
                    ),
                ),
                ("declaration_notes", models.TextField(blank=True)),
                (
                    "public_token",
                    models.CharField(
                        default=settlement.models.ledger_entry.generate_public_token,
                        editable=False,
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "invoice_number",
                    models.CharField(
                        db_index=True,
                        default=settlement.models.ledger_entry.generate_invoice_number,
                        editable=False,
                        max_length=20,
                    ),
                ),
                ("payment_link_url", models.URLField(blank=True, max_length=500)),
                ("payment_link_id", models.CharField(blank=True, max_length=255)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Optimistic locking version",
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="Business account this entry belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "payee",
                    models.ForeignKey(
                        blank=True,
                        help_text="Helper paid by an EXPENSE entry",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payout_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["-due_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["owner", "status", "due_date"],
                        name="ledger_owner_status_due_idx",
                    ),
                    models.Index(
                        fields=["owner", "kind", "due_date"],
                        name="ledger_owner_kind_due_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("appointment_id", "kind"),
                        name="ledger_entry_unique_appointment_kind",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount_cents__gt=0),
                        name="ledger_entry_amount_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(paid_at__isnull=False, status="paid"),
                            models.Q(paid_at__isnull=True, status="pending"),
                            _connector="OR",
                        ),
                        name="ledger_entry_paid_at_iff_paid",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("status", "pending"),
                            ("customer_marked_paid", False),
                            _connector="OR",
                        ),
                        name="ledger_entry_no_declaration_when_paid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="HelperPayoutPolicy",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "mode",
                    models.CharField(
                        choices=[("fixed", "Fixed amount"), ("percentage", "Percentage of price")],
                        default="percentage",
                        max_length=12,
                    ),
                ),
                (
                    "value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "helper",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payout_policy",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="helper_payout_policies",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Helper Payout Policy",
                "verbose_name_plural": "Helper Payout Policies",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(value__gte=0),
                        name="payout_policy_value_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentSettings",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "owner",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="payment_settings",
                        serialize=False,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "enabled_methods",
                    models.JSONField(
                        blank=True,
                        default=settlement.models.payment_settings.default_enabled_methods,
                    ),
                ),
                ("zelle_email", models.EmailField(blank=True, max_length=254)),
                ("venmo_username", models.CharField(blank=True, max_length=64)),
                ("cash_app_username", models.CharField(blank=True, max_length=64)),
                ("cash_instructions", models.TextField(blank=True)),
                ("business_name", models.CharField(blank=True, max_length=200)),
                ("business_logo_url", models.URLField(blank=True, max_length=500)),
                ("payment_instructions", models.TextField(blank=True)),
            ],
            options={
                "verbose_name": "Payment Settings",
                "verbose_name_plural": "Payment Settings",
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("event_type", models.CharField(db_index=True, max_length=100)),
                ("payload", models.JSONField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                            ("discarded", "Discarded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                    models.Index(
                        fields=["status", "retry_count"],
                        name="webhook_status_retry_idx",
                    ),
                ],
            },
        ),
    ]
