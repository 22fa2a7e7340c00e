"""Admin registrations for properties domain."""

from __future__ import annotations

from django.contrib import admin

from .models import BlackoutDate, Property, RatePlan


class RatePlanInline(admin.TabularInline):
    model = RatePlan
    extra = 0
    fields = ("code", "kind", "title", "unit", "unit_amount", "max_occupants", "is_active")
    show_change_link = True


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("title", "city", "status", "owner", "published_at")
    list_filter = ("status", "city")
    search_fields = ("title", "city", "owner__email")
    inlines = (RatePlanInline,)
    readonly_fields = ("created_at", "updated_at", "published_at")


class BlackoutDateInline(admin.TabularInline):
    model = BlackoutDate
    extra = 0
    fields = ("date", "reason")


@admin.register(RatePlan)
class RatePlanAdmin(admin.ModelAdmin):
    list_display = ("code", "kind", "title", "property", "unit", "unit_amount", "currency", "is_default", "is_active")
    list_filter = ("kind", "is_active", "is_default", "unit")
    search_fields = ("code", "title", "property__title")
    inlines = (BlackoutDateInline,)
    readonly_fields = ("created_at", "updated_at")
