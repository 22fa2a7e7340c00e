"""Serializers for the booking domain.

Request serializers only normalise the JSON shape; the booking rules
themselves live in BookingIntentBuilder so every kind gets the same
per-field errors.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking, PaymentSession


class ContactSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")


class BookingRequestSerializer(serializers.Serializer):
    """Raw booking request: a site visit, a short stay or a subscription purchase."""

    kind = serializers.CharField(required=False, allow_blank=True, default="")
    subject_id = serializers.CharField(required=False, allow_blank=True, default="")
    start_date = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    end_date = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    slot_time = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    occupant_count = serializers.JSONField(required=False, default=None)
    occupants = serializers.ListField(
        child=serializers.CharField(allow_blank=True),
        required=False,
        default=list,
    )
    contact = ContactSerializer(required=False, default=dict)
    payment_path = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    pickup_address = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentProofSerializer(serializers.Serializer):
    """Checkout success relayed by the client.

    Accepts the gateway's own field names (razorpay_order_id, ...) as well.
    """

    ALIASES = {
        "razorpay_order_id": "order_id",
        "razorpay_payment_id": "payment_id",
        "razorpay_signature": "signature",
    }

    order_id = serializers.CharField(max_length=64)
    payment_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    signature = serializers.CharField(max_length=128, required=False, allow_blank=True, allow_null=True, default=None)
    amount = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)

    def to_internal_value(self, data):  # type: ignore
        if hasattr(data, "items"):
            data = {self.ALIASES.get(key, key): value for key, value in data.items()}
        return super().to_internal_value(data)


class OrderReferenceSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=64)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class SettleSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Полное представление бронирования."""

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "kind",
            "subject_id",
            "subject_title",
            "start_date",
            "end_date",
            "slot_time",
            "occupants",
            "contact_name",
            "contact_email",
            "pickup_address",
            "notes",
            "status",
            "currency",
            "units",
            "unit_amount",
            "base_amount",
            "tax_amount",
            "fee_amount",
            "total_amount",
            "payment_method",
            "order_id",
            "payment_id",
            "settlement_reference",
            "settled_at",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentSessionSerializer(serializers.ModelSerializer):
    amount = serializers.SerializerMethodField()
    currency = serializers.SerializerMethodField()

    class Meta:
        model = PaymentSession
        fields = [
            "id",
            "state",
            "order_id",
            "amount",
            "currency",
            "failure_reason",
            "expires_at",
            "booking",
            "created_at",
        ]
        read_only_fields = fields

    def get_amount(self, obj: PaymentSession) -> int:
        return obj.pricing.get("total", 0)

    def get_currency(self, obj: PaymentSession) -> str:
        return obj.pricing.get("currency", "")
