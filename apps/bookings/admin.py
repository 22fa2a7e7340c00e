"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, PaymentSession, ReconciliationCase


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "kind",
        "subject_title",
        "guest",
        "status",
        "start_date",
        "end_date",
        "total_amount",
        "payment_id",
        "created_at",
    )
    list_filter = ("kind", "status", "payment_method", "start_date")
    search_fields = ("booking_code", "subject_title", "contact_email", "payment_id", "order_id")
    readonly_fields = [field.name for field in Booking._meta.fields]

    def has_add_permission(self, request):  # type: ignore
        return False


@admin.register(PaymentSession)
class PaymentSessionAdmin(admin.ModelAdmin):
    list_display = ("order_id", "state", "payment_id", "booking", "expires_at", "created_at")
    list_filter = ("state",)
    search_fields = ("order_id", "payment_id")
    readonly_fields = [field.name for field in PaymentSession._meta.fields]


@admin.register(ReconciliationCase)
class ReconciliationCaseAdmin(admin.ModelAdmin):
    list_display = ("id", "reason", "status", "order_id", "payment_id", "amount", "attempts", "created_at")
    list_filter = ("reason", "status", "source")
    search_fields = ("order_id", "payment_id")
    readonly_fields = (
        "reason",
        "order_id",
        "payment_id",
        "signature",
        "amount",
        "source",
        "proof_verified",
        "draft",
        "pricing",
        "session",
        "error",
        "attempts",
        "created_at",
        "updated_at",
    )
