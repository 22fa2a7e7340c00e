"""Payment audit models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class PaymentTransaction(models.Model):
    """История взаимодействий с платёжным провайдером (orders, callbacks, webhooks).

    Append-only: rows are written once and never updated.
    """

    class Event(models.TextChoices):
        ORDER_CREATED = "order_created", _("Order created")
        CHECKOUT_CALLBACK = "checkout_callback", _("Checkout callback")
        CHECKOUT_DISMISSED = "checkout_dismissed", _("Checkout dismissed")
        PAYMENT_FAILED = "payment_failed", _("Payment failed")
        WEBHOOK = "webhook", _("Webhook")

    event = models.CharField(max_length=50, choices=Event.choices)
    order_id = models.CharField(max_length=64, blank=True)
    payment_id = models.CharField(max_length=64, blank=True)
    amount = models.PositiveIntegerField(null=True, blank=True)
    currency = models.CharField(max_length=3, blank=True)
    payload = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment transaction")
        verbose_name_plural = _("Payment transactions")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order_id"], name="paytx_order_idx"),
            models.Index(fields=["payment_id"], name="paytx_payment_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event} for order {self.order_id or '-'}"
