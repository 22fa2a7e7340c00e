"""Tests for listing subscriptions bought through the booking flow."""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.finances.gateway import sign_payment
from apps.subscriptions.models import UserSubscription
from apps.properties.models import Property
from apps.subscriptions.services import add_months, consume_listing, expire_subscriptions

User = get_user_model()


def test_add_months_clamps_to_month_end():
    moment = datetime(2026, 1, 31, 9, 30)

    assert add_months(moment, 1) == datetime(2026, 2, 28, 9, 30)
    assert add_months(moment, 12) == datetime(2027, 1, 31, 9, 30)
    assert add_months(datetime(2026, 8, 15), 6) == datetime(2027, 2, 15)


class SubscriptionBuyerMixin:
    def setUp(self) -> None:
        self.user = User.objects.create_user(username="owner", email="owner@example.com", password="OwnerPass123")
        self.client.force_authenticate(self.user)

    def _buy(self, plan_code: str, order_id: str, payment_id: str) -> dict:
        payload = {
            "kind": "subscription",
            "subject_id": plan_code,
            "contact": {"name": "Owner One", "email": "owner@example.com"},
        }
        with patch("apps.finances.gateway.RazorpayGateway.create_order", return_value=order_id):
            started = self.client.post(reverse("booking-list"), payload, format="json")
        self.assertEqual(started.status_code, 201, started.data)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                reverse("booking-verify-payment"),
                {
                    "order_id": order_id,
                    "payment_id": payment_id,
                    "signature": sign_payment("test-key-secret", order_id, payment_id),
                },
                format="json",
            )
        self.assertEqual(response.status_code, 200, response.data)
        return response.data["booking"]


class SubscriptionPurchaseTests(SubscriptionBuyerMixin, APITestCase):
    def test_paid_plan_is_granted(self) -> None:
        before = timezone.now()
        booking = self._buy("ind_1m", "order_S1", "pay_S1")

        subscription = UserSubscription.objects.get(user=self.user)
        self.assertEqual(str(subscription.booking_id), booking["id"])
        self.assertEqual(subscription.plan_code, "ind_1m")
        self.assertEqual(subscription.amount, 10000)
        self.assertGreaterEqual(subscription.starts_at, before)
        self.assertEqual(subscription.expires_at, add_months(subscription.starts_at, 1))
        self.assertTrue(subscription.is_active)

    def test_second_purchase_extends_current_expiry(self) -> None:
        self._buy("ind_1m", "order_S1", "pay_S1")
        first = UserSubscription.objects.get()

        self._buy("ind_6m", "order_S2", "pay_S2")

        latest = UserSubscription.objects.exclude(pk=first.pk).get()
        self.assertEqual(latest.starts_at, first.expires_at)
        self.assertEqual(latest.expires_at, add_months(first.expires_at, 6))

    def test_developer_plan_allows_many_listings(self) -> None:
        self.user.groups.add(Group.objects.create(name="developer"))

        self._buy("dev_12m", "order_S3", "pay_S3")

        subscription = UserSubscription.objects.get()
        self.assertEqual(subscription.listing_allowance, 20)
        self.assertEqual(subscription.listings_left, 20)

    def test_site_visit_grants_nothing(self) -> None:
        day = timezone.localdate() + timedelta(days=2)
        if day.weekday() == 6:
            day += timedelta(days=1)
        payload = {
            "kind": "site_visit",
            "subject_id": "plot-9",
            "start_date": day.isoformat(),
            "slot_time": "12:00",
            "occupant_count": 1,
            "occupants": ["Owner One"],
            "contact": {"name": "Owner One", "email": "owner@example.com"},
            "payment_path": "deferred",
        }

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(reverse("booking-list"), payload, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertTrue(Booking.objects.exists())
        self.assertFalse(UserSubscription.objects.exists())

    def test_lapsed_subscriptions_expire(self) -> None:
        self._buy("ind_1m", "order_S1", "pay_S1")
        UserSubscription.objects.update(expires_at=timezone.now() - timedelta(minutes=1))

        self.assertEqual(expire_subscriptions(), 1)
        self.assertEqual(UserSubscription.objects.get().status, UserSubscription.Status.EXPIRED)

    def test_individual_account_cannot_buy_developer_plan(self) -> None:
        response = self.client.post(
            reverse("booking-list"),
            {
                "kind": "subscription",
                "subject_id": "dev_12m",
                "contact": {"name": "Owner One", "email": "owner@example.com"},
            },
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("subject_id", response.data["errors"])
        self.assertFalse(Booking.objects.exists())

    def test_builder_account_can_buy_developer_plan(self) -> None:
        self.user.groups.add(Group.objects.create(name="builder"))

        self._buy("dev_12m", "order_S4", "pay_S4")

        self.assertEqual(UserSubscription.objects.get().plan_code, "dev_12m")

    def test_consume_listing_stops_at_allowance(self) -> None:
        self._buy("ind_1m", "order_S1", "pay_S1")

        self.assertIsNotNone(consume_listing(self.user.id))
        self.assertIsNone(consume_listing(self.user.id))
        self.assertEqual(UserSubscription.objects.get().listings_used, 1)


class SubscriptionStatusTests(SubscriptionBuyerMixin, APITestCase):
    def test_status_requires_sign_in(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(reverse("subscription-status"))

        self.assertEqual(response.status_code, 401)

    def test_status_without_subscription(self) -> None:
        response = self.client.get(reverse("subscription-status"))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["is_subscribed"])
        self.assertIsNone(response.data["expires_at"])
        self.assertEqual(response.data["listings_left"], 0)

    def test_status_after_purchase_and_publish(self) -> None:
        self._buy("ind_1m", "order_S1", "pay_S1")
        self._buy("ind_6m", "order_S2", "pay_S2")
        prop = Property.objects.create(title="Canal view plot", owner=self.user)
        published = self.client.post(reverse("property-activate", args=[prop.id]))
        self.assertEqual(published.status_code, 200)

        response = self.client.get(reverse("subscription-status"))

        latest = UserSubscription.objects.order_by("-expires_at").first()
        self.assertTrue(response.data["is_subscribed"])
        self.assertEqual(response.data["plan_code"], "ind_1m")
        self.assertEqual(response.data["expires_at"], latest.expires_at)
        self.assertEqual(response.data["listing_allowance"], 1)
        self.assertEqual(response.data["listings_used"], 1)
        self.assertEqual(response.data["listings_left"], 0)
