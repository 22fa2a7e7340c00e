from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.properties.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("slug", models.SlugField(blank=True, max_length=255, unique=True)),
                ("description", models.TextField(blank=True)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("address_line", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("active", "Active"), ("inactive", "Inactive")],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="properties",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Property",
                "verbose_name_plural": "Properties",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status"], name="property_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="RatePlan",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(max_length=50, unique=True)),
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
                ("title", models.CharField(max_length=255)),
                (
                    "is_default",
                    models.BooleanField(
                        default=False,
                        help_text="Fallback plan for subjects of this kind without a plan of their own.",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("currency", models.CharField(default="INR", max_length=3)),
                (
                    "unit",
                    models.CharField(
                        choices=[("night", "Per night"), ("visit", "Per visit"), ("plan", "Per plan")],
                        max_length=10,
                    ),
                ),
                ("unit_amount", models.PositiveIntegerField(help_text="Price per unit in minor units.")),
                (
                    "tax_percent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                (
                    "fee_percent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                ("flat_fee", models.PositiveIntegerField(default=0, help_text="Flat fee per booking, e.g. cleaning.")),
                ("included_occupants", models.PositiveSmallIntegerField(default=1)),
                ("extra_occupant_amount", models.PositiveIntegerField(default=0)),
                ("min_occupants", models.PositiveSmallIntegerField(default=1)),
                ("max_occupants", models.PositiveSmallIntegerField(default=1)),
                ("min_units", models.PositiveSmallIntegerField(default=1)),
                ("max_units", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("horizon_days", models.PositiveSmallIntegerField(default=30)),
                ("lead_days", models.PositiveSmallIntegerField(default=0)),
                (
                    "excluded_weekdays",
                    models.JSONField(blank=True, default=list, help_text="Weekday numbers, Monday is 0 and Sunday is 6."),
                ),
                ("time_slots", models.JSONField(blank=True, default=list, help_text='Allowed "HH:MM" slots for visits.')),
                ("requires_occupant_names", models.BooleanField(default=True)),
                ("fail_fast", models.BooleanField(default=False)),
                ("payment_paths", models.JSONField(default=apps.properties.models._default_payment_paths)),
                ("duration_months", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("listing_allowance", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "property",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rate_plans",
                        to="properties.property",
                    ),
                ),
            ],
            options={
                "verbose_name": "Rate plan",
                "verbose_name_plural": "Rate plans",
                "ordering": ["kind", "unit_amount"],
                "indexes": [models.Index(fields=["kind", "is_active"], name="rateplan_kind_active_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True), ("property__isnull", False)),
                        fields=("kind", "property"),
                        name="rateplan_one_active_per_property_kind",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="BlackoutDate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("reason", models.CharField(blank=True, max_length=255)),
                (
                    "rate_plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="blackout_dates",
                        to="properties.rateplan",
                    ),
                ),
            ],
            options={
                "verbose_name": "Blackout date",
                "verbose_name_plural": "Blackout dates",
                "ordering": ["date"],
                "constraints": [models.UniqueConstraint(fields=("rate_plan", "date"), name="blackout_unique_plan_date")],
            },
        ),
    ]
