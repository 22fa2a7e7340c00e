"""Booking persistence models.

Rows here are written only through the infrastructure layer
(apps.bookings.infrastructure): bookings by BookingLedger, sessions and
reconciliation cases by their repositories.
"""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.infrastructure.fields import EncryptedCharField

from .domain.drafts import BookingKind, PaymentPath
from .domain.entities import BookingStatus
from .domain.payment import ProofSource, SessionState


class Booking(models.Model):
    """Committed booking: a site visit, a short stay or a subscription purchase."""

    class Kind(models.TextChoices):
        SITE_VISIT = BookingKind.SITE_VISIT.value, _("Site visit")
        SHORT_STAY = BookingKind.SHORT_STAY.value, _("Short stay")
        SUBSCRIPTION = BookingKind.SUBSCRIPTION.value, _("Subscription")

    class Status(models.TextChoices):
        CONFIRMED_PENDING_SETTLEMENT = BookingStatus.CONFIRMED_PENDING_SETTLEMENT.value, _(
            "Confirmed, payment at fulfilment"
        )
        CONFIRMED = BookingStatus.CONFIRMED.value, _("Confirmed")
        CANCELLED = BookingStatus.CANCELLED.value, _("Cancelled")

    class PaymentMethod(models.TextChoices):
        GATEWAY = PaymentPath.GATEWAY.value, _("Online gateway")
        DEFERRED = PaymentPath.DEFERRED.value, _("Pay later")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_code = models.CharField(max_length=16, unique=True, editable=False)
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )

    # Subject and window
    kind = models.CharField(max_length=20, choices=Kind.choices)
    subject_id = models.CharField(max_length=64)
    subject_title = models.CharField(max_length=255, blank=True)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    slot_time = models.CharField(max_length=5, blank=True)

    # People
    occupants = models.JSONField(default=list)
    contact_name = models.CharField(max_length=255)
    contact_email = models.EmailField(blank=True)
    contact_phone = EncryptedCharField(max_length=32, blank=True)
    notes = models.TextField(blank=True)
    pickup_address = models.CharField(max_length=255, blank=True)

    # Price, exactly as PricingEngine produced it
    currency = models.CharField(max_length=3, default="INR")
    units = models.PositiveSmallIntegerField(default=1)
    unit_amount = models.PositiveIntegerField(default=0)
    base_amount = models.PositiveIntegerField()
    tax_amount = models.PositiveIntegerField(default=0)
    fee_amount = models.PositiveIntegerField(default=0)
    total_amount = models.PositiveIntegerField()

    status = models.CharField(max_length=32, choices=Status.choices)

    # Payment attempt (empty for pay-later bookings)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, blank=True)
    order_id = models.CharField(max_length=64, blank=True)
    payment_id = models.CharField(max_length=64, unique=True, null=True, blank=True)
    payment_signature = models.CharField(max_length=128, blank=True)
    payment_outcome = models.CharField(max_length=20, blank=True)

    idempotency_key = models.CharField(max_length=128, unique=True, null=True, blank=True)

    settlement_reference = models.CharField(max_length=128, blank=True)
    settled_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["kind", "subject_id"], name="booking_kind_subject_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
            models.Index(fields=["order_id"], name="booking_order_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.booking_code} ({self.get_status_display()})"


class PaymentSession(models.Model):
    """Server-side record of one gateway checkout."""

    class State(models.TextChoices):
        DRAFT = SessionState.DRAFT.value, _("Draft")
        PAYMENT_PENDING = SessionState.PAYMENT_PENDING.value, _("Payment pending")
        PAYMENT_SUCCEEDED = SessionState.PAYMENT_SUCCEEDED.value, _("Payment succeeded")
        PAYMENT_CANCELLED = SessionState.PAYMENT_CANCELLED.value, _("Payment cancelled")
        PAYMENT_FAILED = SessionState.PAYMENT_FAILED.value, _("Payment failed")
        AWAITING_FULFILLMENT_PAYMENT = SessionState.AWAITING_FULFILLMENT_PAYMENT.value, _(
            "Awaiting payment at fulfilment"
        )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    state = models.CharField(max_length=40, choices=State.choices, default=State.DRAFT)
    order_id = models.CharField(max_length=64, unique=True, null=True, blank=True)
    payment_id = models.CharField(max_length=64, blank=True)
    draft = models.JSONField()
    pricing = models.JSONField()
    failure_reason = models.CharField(max_length=255, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    booking = models.ForeignKey(
        Booking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_sessions",
    )
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_sessions",
    )
    idempotency_key = models.CharField(max_length=128, unique=True, null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Payment session")
        verbose_name_plural = _("Payment sessions")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["state", "expires_at"], name="paysession_state_expiry_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id or self.pk} ({self.state})"


class ReconciliationCase(models.Model):
    """Payment that could not be matched to a booking automatically."""

    class Reason(models.TextChoices):
        VERIFICATION_FAILED = "verification_failed", _("Payment proof failed verification")
        LEDGER_WRITE_FAILED = "ledger_write_failed", _("Booking could not be saved after payment")
        LATE_SUCCESS = "late_success", _("Payment succeeded after checkout was closed")
        DUPLICATE_CHARGE = "duplicate_charge", _("Second payment for the same checkout")

    class Status(models.TextChoices):
        OPEN = "open", _("Open")
        RESOLVED = "resolved", _("Resolved")
        DISMISSED = "dismissed", _("Dismissed")

    class Source(models.TextChoices):
        CHECKOUT = ProofSource.CHECKOUT.value, _("Checkout callback")
        WEBHOOK = ProofSource.WEBHOOK.value, _("Gateway webhook")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reason = models.CharField(max_length=32, choices=Reason.choices)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.OPEN)
    order_id = models.CharField(max_length=64, blank=True)
    payment_id = models.CharField(max_length=64, blank=True)
    signature = models.CharField(max_length=128, blank=True)
    amount = models.PositiveIntegerField(null=True, blank=True)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.CHECKOUT)
    proof_verified = models.BooleanField(default=False)
    draft = models.JSONField(null=True, blank=True)
    pricing = models.JSONField(null=True, blank=True)
    session = models.ForeignKey(
        PaymentSession,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reconciliation_cases",
    )
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    error = models.TextField(blank=True)
    attempts = models.PositiveSmallIntegerField(default=0)
    booking = models.ForeignKey(
        Booking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reconciliation_cases",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reconciliation case")
        verbose_name_plural = _("Reconciliation cases")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["reason", "payment_id"],
                condition=models.Q(status="open") & ~models.Q(payment_id=""),
                name="recon_one_open_case_per_payment",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "reason"], name="recon_status_reason_idx"),
            models.Index(fields=["payment_id"], name="recon_payment_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_reason_display()}: {self.payment_id or self.order_id}"


