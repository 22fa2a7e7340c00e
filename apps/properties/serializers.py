"""Serializers for the properties domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import BlackoutDate, Property, RatePlan


class BlackoutDateSerializer(serializers.ModelSerializer):
    class Meta:
        model = BlackoutDate
        fields = ["date", "reason"]


class RatePlanSerializer(serializers.ModelSerializer):
    """Публичное представление тарифа: цены и правила бронирования."""

    property = serializers.PrimaryKeyRelatedField(read_only=True)
    blackout_dates = BlackoutDateSerializer(many=True, read_only=True)

    class Meta:
        model = RatePlan
        fields = [
            "id",
            "code",
            "kind",
            "property",
            "title",
            "is_default",
            "audience",
            "currency",
            "unit",
            "unit_amount",
            "tax_percent",
            "fee_percent",
            "flat_fee",
            "included_occupants",
            "extra_occupant_amount",
            "min_occupants",
            "max_occupants",
            "min_units",
            "max_units",
            "horizon_days",
            "lead_days",
            "excluded_weekdays",
            "time_slots",
            "payment_paths",
            "duration_months",
            "listing_allowance",
            "blackout_dates",
        ]
        read_only_fields = fields


class PropertySerializer(serializers.ModelSerializer):
    owner = serializers.PrimaryKeyRelatedField(read_only=True)
    rate_plans = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = [
            "id",
            "owner",
            "title",
            "slug",
            "description",
            "city",
            "address_line",
            "status",
            "published_at",
            "rate_plans",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["owner", "slug", "status", "published_at", "rate_plans", "created_at", "updated_at"]

    def get_rate_plans(self, obj: Property) -> list[dict]:
        plans = [plan for plan in obj.rate_plans.all() if plan.is_active]
        return RatePlanSerializer(plans, many=True).data
