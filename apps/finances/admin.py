"""Admin registration for the payment audit log."""

from __future__ import annotations

from django.contrib import admin

from .models import PaymentTransaction


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("event", "order_id", "payment_id", "amount", "currency", "status", "created_at")
    list_filter = ("event",)
    search_fields = ("order_id", "payment_id")
    readonly_fields = ("event", "order_id", "payment_id", "amount", "currency", "payload", "status", "created_at")

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False
