import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import shared.infrastructure.fields


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("booking_code", models.CharField(editable=False, max_length=16, unique=True)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("site_visit", "Site visit"),
                            ("short_stay", "Short stay"),
                            ("subscription", "Subscription"),
                        ],
                        max_length=20,
                    ),
                ),
                ("subject_id", models.CharField(max_length=64)),
                ("subject_title", models.CharField(blank=True, max_length=255)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(blank=True, null=True)),
                ("slot_time", models.CharField(blank=True, max_length=5)),
                ("occupants", models.JSONField(default=list)),
                ("contact_name", models.CharField(max_length=255)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("contact_phone", shared.infrastructure.fields.EncryptedCharField(blank=True, max_length=32)),
                ("notes", models.TextField(blank=True)),
                ("pickup_address", models.CharField(blank=True, max_length=255)),
                ("currency", models.CharField(default="INR", max_length=3)),
                ("units", models.PositiveSmallIntegerField(default=1)),
                ("unit_amount", models.PositiveIntegerField(default=0)),
                ("base_amount", models.PositiveIntegerField()),
                ("tax_amount", models.PositiveIntegerField(default=0)),
                ("fee_amount", models.PositiveIntegerField(default=0)),
                ("total_amount", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("confirmed_pending_settlement", "Confirmed, payment at fulfilment"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[("gateway", "Online gateway"), ("deferred", "Pay later")],
                        max_length=20,
                    ),
                ),
                ("order_id", models.CharField(blank=True, max_length=64)),
                ("payment_id", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("payment_signature", models.CharField(blank=True, max_length=128)),
                ("payment_outcome", models.CharField(blank=True, max_length=20)),
                ("idempotency_key", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("settlement_reference", models.CharField(blank=True, max_length=128)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "guest",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["kind", "subject_id"], name="booking_kind_subject_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                    models.Index(fields=["order_id"], name="booking_order_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("payment_pending", "Payment pending"),
                            ("payment_succeeded", "Payment succeeded"),
                            ("payment_cancelled", "Payment cancelled"),
                            ("payment_failed", "Payment failed"),
                            ("awaiting_fulfillment_payment", "Awaiting payment at fulfilment"),
                        ],
                        default="draft",
                        max_length=40,
                    ),
                ),
                ("order_id", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("payment_id", models.CharField(blank=True, max_length=64)),
                ("draft", models.JSONField()),
                ("pricing", models.JSONField()),
                ("failure_reason", models.CharField(blank=True, max_length=255)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("idempotency_key", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_sessions",
                        to="bookings.booking",
                    ),
                ),
                (
                    "guest",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment session",
                "verbose_name_plural": "Payment sessions",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["state", "expires_at"], name="paysession_state_expiry_idx")],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationCase",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("verification_failed", "Payment proof failed verification"),
                            ("ledger_write_failed", "Booking could not be saved after payment"),
                            ("late_success", "Payment succeeded after checkout was closed"),
                            ("duplicate_charge", "Second payment for the same checkout"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("resolved", "Resolved"), ("dismissed", "Dismissed")],
                        default="open",
                        max_length=16,
                    ),
                ),
                ("order_id", models.CharField(blank=True, max_length=64)),
                ("payment_id", models.CharField(blank=True, max_length=64)),
                ("signature", models.CharField(blank=True, max_length=128)),
                ("amount", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "source",
                    models.CharField(
                        choices=[("checkout", "Checkout callback"), ("webhook", "Gateway webhook")],
                        default="checkout",
                        max_length=16,
                    ),
                ),
                ("proof_verified", models.BooleanField(default=False)),
                ("draft", models.JSONField(blank=True, null=True)),
                ("pricing", models.JSONField(blank=True, null=True)),
                ("error", models.TextField(blank=True)),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reconciliation_cases",
                        to="bookings.booking",
                    ),
                ),
                (
                    "guest",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reconciliation_cases",
                        to="bookings.paymentsession",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reconciliation case",
                "verbose_name_plural": "Reconciliation cases",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "reason"], name="recon_status_reason_idx"),
                    models.Index(fields=["payment_id"], name="recon_payment_idx"),
                ],
            },
        ),
    ]
