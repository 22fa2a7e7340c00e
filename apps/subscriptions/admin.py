"""Admin registration for listing subscriptions."""

from __future__ import annotations

from django.contrib import admin

from .models import UserSubscription


@admin.register(UserSubscription)
class UserSubscriptionAdmin(admin.ModelAdmin):
    list_display = ("user", "plan_code", "status", "starts_at", "expires_at", "listing_allowance", "listings_used")
    list_filter = ("status", "plan_code")
    search_fields = ("user__email", "user__username", "plan_code")
    readonly_fields = ("booking", "amount", "currency", "created_at")
