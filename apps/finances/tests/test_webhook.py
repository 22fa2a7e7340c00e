"""Tests for the gateway webhook endpoint."""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from apps.bookings.models import Booking, PaymentSession, ReconciliationCase
from apps.finances.models import PaymentTransaction

WEBHOOK_SECRET = b"test-webhook-secret"
ORDER_ID = "order_Wh00k0001"


def visit_day():
    day = timezone.localdate() + timedelta(days=3)
    if day.weekday() == 6:
        day += timedelta(days=1)
    return day


class PaymentWebhookTests(TestCase):
    def setUp(self) -> None:
        self.url = reverse("payment-webhook")
        payload = {
            "kind": "site_visit",
            "subject_id": "riverside-plot",
            "start_date": visit_day().isoformat(),
            "slot_time": "10:00",
            "occupant_count": 1,
            "occupants": ["Ravi Nair"],
            "contact": {"name": "Ravi Nair", "email": "ravi@example.com"},
            "payment_path": "gateway",
        }
        with patch("apps.finances.gateway.RazorpayGateway.create_order", return_value=ORDER_ID):
            response = self.client.post(reverse("booking-list"), payload, content_type="application/json")
        self.assertEqual(response.status_code, 201)

    def _post(self, event: str, entity: dict, signature: str | None = None):
        body = json.dumps({"event": event, "payload": {"payment": {"entity": entity}}}).encode()
        signature = signature or hmac.new(WEBHOOK_SECRET, body, hashlib.sha256).hexdigest()
        return self.client.post(
            self.url,
            data=body,
            content_type="application/json",
            HTTP_X_RAZORPAY_SIGNATURE=signature,
        )

    def test_invalid_signature_is_rejected(self) -> None:
        response = self._post(
            "payment.captured",
            {"id": "pay_W1", "order_id": ORDER_ID, "amount": 30000},
            signature="f" * 64,
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(Booking.objects.exists())
        self.assertFalse(PaymentTransaction.objects.filter(event="webhook").exists())

    def test_captured_payment_creates_booking(self) -> None:
        response = self._post(
            "payment.captured",
            {"id": "pay_W1", "order_id": ORDER_ID, "amount": 30000, "currency": "INR", "status": "captured"},
        )

        self.assertEqual(response.status_code, 200)
        booking = Booking.objects.get()
        self.assertEqual(response.json()["booking_code"], booking.booking_code)
        self.assertEqual(booking.payment_id, "pay_W1")
        self.assertEqual(PaymentSession.objects.get().state, "payment_succeeded")

    def test_capture_after_checkout_callback_does_not_duplicate(self) -> None:
        entity = {"id": "pay_W1", "order_id": ORDER_ID, "amount": 30000}

        self._post("payment.captured", entity)
        response = self._post("payment.captured", entity)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Booking.objects.count(), 1)

    def test_capture_with_wrong_amount_is_escalated(self) -> None:
        response = self._post("payment.captured", {"id": "pay_W1", "order_id": ORDER_ID, "amount": 100})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Booking.objects.exists())
        self.assertTrue(ReconciliationCase.objects.filter(payment_id="pay_W1").exists())

    def test_failed_payment_closes_session(self) -> None:
        response = self._post(
            "payment.failed",
            {"id": "pay_W2", "order_id": ORDER_ID, "error_description": "Card declined"},
        )

        self.assertEqual(response.status_code, 200)
        session = PaymentSession.objects.get()
        self.assertEqual(session.state, "payment_failed")
        self.assertEqual(session.failure_reason, "Card declined")
        self.assertFalse(Booking.objects.exists())

    def test_capture_after_failure_needs_manual_reconciliation(self) -> None:
        self._post("payment.failed", {"id": "pay_W2", "order_id": ORDER_ID})

        response = self._post("payment.captured", {"id": "pay_W3", "order_id": ORDER_ID, "amount": 30000})

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()["status"], "manual_reconciliation")
        self.assertFalse(Booking.objects.exists())

    def test_failure_after_dismissal_keeps_cancelled_outcome(self) -> None:
        self.client.post(reverse("booking-cancel-payment"), {"order_id": ORDER_ID}, content_type="application/json")

        response = self._post("payment.failed", {"id": "pay_W4", "order_id": ORDER_ID, "error_code": "BAD_REQUEST_ERROR"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ignored")
        session = PaymentSession.objects.get()
        self.assertEqual(session.state, "payment_cancelled")
        self.assertEqual(session.failure_reason, "dismissed")

    def test_unknown_order_is_ignored(self) -> None:
        response = self._post("payment.captured", {"id": "pay_X", "order_id": "order_unknown", "amount": 30000})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ignored")

    def test_unhandled_event_is_ignored(self) -> None:
        response = self._post("refund.created", {"id": "rfnd_1", "order_id": ORDER_ID})

        self.assertEqual(response.json()["status"], "ignored")
        self.assertEqual(PaymentSession.objects.get().state, "payment_pending")

    def test_get_is_not_allowed(self) -> None:
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 405)
