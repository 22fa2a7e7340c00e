"""Listing subscription models."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class UserSubscription(models.Model):
    """One purchased listing plan. The latest active row carries the user's expiry."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        EXPIRED = "expired", _("Expired")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="subscription",
    )
    plan_code = models.CharField(max_length=50)
    plan_title = models.CharField(max_length=255, blank=True)
    amount = models.PositiveIntegerField(help_text=_("Paid amount in minor units."))
    currency = models.CharField(max_length=3, default="INR")
    listing_allowance = models.PositiveSmallIntegerField(default=1)
    listings_used = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    starts_at = models.DateTimeField()
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("User subscription")
        verbose_name_plural = _("User subscriptions")
        ordering = ["-expires_at"]
        indexes = [
            models.Index(fields=["user", "status", "expires_at"], name="subscription_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.plan_code} for {self.user_id} until {self.expires_at:%Y-%m-%d}"

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE and self.expires_at > timezone.now()

    @property
    def listings_left(self) -> int:
        return max(self.listing_allowance - self.listings_used, 0)
