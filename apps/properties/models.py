"""Property and rate plan models.

Rate plans are the configuration source of the booking flow: each plan
holds the prices, occupancy limits and date rules for one bookable
subject (a property stay, a site visit, a listing subscription).
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.drafts import BookingKind, PaymentPath
from apps.bookings.domain.intent import BookingPolicy
from apps.bookings.domain.pricing import PricingUnit, RateCard
from shared.domain.value_objects import SUPPORTED_CURRENCIES


class Property(models.Model):
    """Listed property that can be visited or rented for short stays."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="properties",
    )
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    address_line = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Property")
        verbose_name_plural = _("Properties")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="property_status_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    def activate(self) -> None:
        if self.status != self.Status.ACTIVE:
            self.status = self.Status.ACTIVE
            self.published_at = timezone.now()
            self.save(update_fields=["status", "published_at"])

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            base_slug = slugify(self.title)[:200] or "property"
            candidate = base_slug
            counter = 1
            while self.__class__.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
                counter += 1
                candidate = f"{base_slug}-{counter}"
            self.slug = candidate
        super().save(*args, **kwargs)


def _default_payment_paths() -> list[str]:
    return [PaymentPath.GATEWAY.value]


class RatePlan(models.Model):
    """Prices and booking rules for one bookable subject.

    A plan bound to a property applies to that property only. A plan
    without a property and with ``is_default`` set is the fallback for
    every subject of its kind (e.g. the site visit fee for any listing).
    Amounts are stored in minor currency units (paise).
    """

    class Kind(models.TextChoices):
        SITE_VISIT = BookingKind.SITE_VISIT.value, _("Site visit")
        SHORT_STAY = BookingKind.SHORT_STAY.value, _("Short stay")
        SUBSCRIPTION = BookingKind.SUBSCRIPTION.value, _("Subscription")

    class Audience(models.TextChoices):
        EVERYONE = "everyone", _("Everyone")
        DEVELOPERS = "developers", _("Developer and builder accounts")

    CURRENCY_CHOICES = [(code, code) for code in SUPPORTED_CURRENCIES]
    DEVELOPER_GROUPS = ("developer", "builder")

    class Unit(models.TextChoices):
        NIGHT = PricingUnit.NIGHT.value, _("Per night")
        VISIT = PricingUnit.VISIT.value, _("Per visit")
        PLAN = PricingUnit.PLAN.value, _("Per plan")

    code = models.SlugField(max_length=50, unique=True)
    kind = models.CharField(max_length=20, choices=Kind.choices)
    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="rate_plans",
    )
    title = models.CharField(max_length=255)
    is_default = models.BooleanField(
        default=False,
        help_text=_("Fallback plan for subjects of this kind without a plan of their own."),
    )
    is_active = models.BooleanField(default=True)
    audience = models.CharField(max_length=16, choices=Audience.choices, default=Audience.EVERYONE)

    # Pricing
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default="INR")
    unit = models.CharField(max_length=10, choices=Unit.choices)
    unit_amount = models.PositiveIntegerField(help_text=_("Price per unit in minor units."))
    tax_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    fee_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    flat_fee = models.PositiveIntegerField(default=0, help_text=_("Flat fee per booking, e.g. cleaning."))
    included_occupants = models.PositiveSmallIntegerField(default=1)
    extra_occupant_amount = models.PositiveIntegerField(default=0)

    # Bounds
    min_occupants = models.PositiveSmallIntegerField(default=1)
    max_occupants = models.PositiveSmallIntegerField(default=1)
    min_units = models.PositiveSmallIntegerField(default=1)
    max_units = models.PositiveSmallIntegerField(null=True, blank=True)

    # Date rules
    horizon_days = models.PositiveSmallIntegerField(default=30)
    lead_days = models.PositiveSmallIntegerField(default=0)
    excluded_weekdays = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Weekday numbers, Monday is 0 and Sunday is 6."),
    )
    time_slots = models.JSONField(default=list, blank=True, help_text=_('Allowed "HH:MM" slots for visits.'))

    # Request rules
    requires_occupant_names = models.BooleanField(default=True)
    fail_fast = models.BooleanField(default=False)
    payment_paths = models.JSONField(default=_default_payment_paths)

    # Subscriptions
    duration_months = models.PositiveSmallIntegerField(null=True, blank=True)
    listing_allowance = models.PositiveSmallIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Rate plan")
        verbose_name_plural = _("Rate plans")
        ordering = ["kind", "unit_amount"]
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "property"],
                condition=models.Q(is_active=True, property__isnull=False),
                name="rateplan_one_active_per_property_kind",
            ),
            models.CheckConstraint(
                check=models.Q(currency__in=SUPPORTED_CURRENCIES),
                name="rateplan_supported_currency",
            ),
        ]
        indexes = [
            models.Index(fields=["kind", "is_active"], name="rateplan_kind_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.code})"

    def is_available_to(self, user) -> bool:
        """Developer plans are sold only to members of the developer or builder groups."""
        if self.audience != self.Audience.DEVELOPERS:
            return True
        if user is None or not user.is_authenticated:
            return False
        return user.is_staff or user.groups.filter(name__in=self.DEVELOPER_GROUPS).exists()

    def to_rate_card(self) -> RateCard:
        return RateCard(
            unit=PricingUnit(self.unit),
            unit_amount=self.unit_amount,
            currency=self.currency,
            tax_percent=Decimal(self.tax_percent),
            fee_percent=Decimal(self.fee_percent),
            flat_fee=self.flat_fee,
            included_occupants=self.included_occupants,
            extra_occupant_amount=self.extra_occupant_amount,
            min_occupants=self.min_occupants,
            max_occupants=self.max_occupants,
            min_units=self.min_units,
            max_units=self.max_units,
        )

    def to_policy(self) -> BookingPolicy:
        return BookingPolicy(
            kind=BookingKind(self.kind),
            horizon_days=self.horizon_days,
            lead_days=self.lead_days,
            excluded_weekdays=frozenset(int(day) for day in self.excluded_weekdays or []),
            blackout_dates=frozenset(self.blackout_dates.values_list("date", flat=True)),
            time_slots=tuple(self.time_slots or ()),
            min_occupants=self.min_occupants,
            max_occupants=self.max_occupants,
            requires_occupant_names=self.requires_occupant_names,
            min_units=self.min_units,
            max_units=self.max_units,
            payment_paths=tuple(PaymentPath(path) for path in self.payment_paths or _default_payment_paths()),
            fail_fast=self.fail_fast,
        )


class BlackoutDate(models.Model):
    """A date on which a plan cannot be booked (holiday, maintenance)."""

    rate_plan = models.ForeignKey(RatePlan, on_delete=models.CASCADE, related_name="blackout_dates")
    date = models.DateField()
    reason = models.CharField(max_length=255, blank=True)

    class Meta:
        verbose_name = _("Blackout date")
        verbose_name_plural = _("Blackout dates")
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(fields=["rate_plan", "date"], name="blackout_unique_plan_date"),
        ]

    def __str__(self) -> str:
        return f"{self.rate_plan.code}: {self.date.isoformat()}"
