"""URL routing for listing subscriptions."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import SubscriptionStatusView

urlpatterns = [
    path("status/", SubscriptionStatusView.as_view(), name="subscription-status"),
]
