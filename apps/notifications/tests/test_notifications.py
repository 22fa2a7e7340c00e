"""Tests for booking notifications."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

import requests
from django.core import mail
from django.test import TestCase, override_settings

from apps.bookings.domain.drafts import (
    BookingDraft,
    BookingKind,
    BookingWindow,
    ContactInfo,
    PaymentPath,
    SubjectRef,
)
from apps.bookings.domain.events import BookingConfirmed
from apps.bookings.domain.pricing import PricingBreakdown
from apps.bookings.infrastructure.ledger import BookingLedger
from apps.notifications.dispatcher import NotificationDispatcher
from apps.notifications.services import send_sms_notification
from apps.notifications.tasks import send_booking_notifications

PRICING = PricingBreakdown(base=30000, tax=0, fee=0, total=30000, currency="INR", units=1, unit_amount=30000, occupants=1)


def make_draft(**contact) -> BookingDraft:
    contact = {"name": "Leela Das", "email": "leela@example.com", "phone": "", **contact}
    return BookingDraft(
        subject=SubjectRef(kind=BookingKind.SITE_VISIT, subject_id="7", title="Hillside cottage"),
        window=BookingWindow(start_date=date(2026, 6, 3), slot_time="14:00"),
        occupants=("Leela Das",),
        contact=ContactInfo(**contact),
        payment_path=PaymentPath.DEFERRED,
    )


class NotificationDispatcherTests(TestCase):
    def test_enqueue_failure_is_swallowed(self) -> None:
        task = MagicMock()
        task.delay.side_effect = ConnectionError("broker down")
        dispatcher = NotificationDispatcher(task=task)

        self.assertFalse(dispatcher.dispatch("b1", "confirmed"))

    def test_confirmed_event_enqueues_task(self) -> None:
        task = MagicMock()
        dispatcher = NotificationDispatcher(task=task)
        event = BookingConfirmed(
            booking_id="b1",
            booking_code="SV-1",
            kind="site_visit",
            subject_id="7",
            status="confirmed_pending_settlement",
            total=30000,
            currency="INR",
        )

        dispatcher.on_booking_confirmed(event)

        task.delay.assert_called_once_with("b1", "confirmed")


class SendBookingNotificationsTests(TestCase):
    def test_contact_and_desk_are_emailed(self) -> None:
        booking = BookingLedger().create(make_draft(), PRICING)

        result = send_booking_notifications(str(booking.id), "confirmed")

        self.assertTrue(result["email"])
        self.assertTrue(result["admin"])
        self.assertFalse(result["sms"])
        recipients = sorted(message.to[0] for message in mail.outbox)
        self.assertEqual(recipients, ["leela@example.com", "ops@homestead.test"])
        self.assertIn(booking.booking_code, mail.outbox[0].subject)
        self.assertIn("Payment is due at the time of the visit", mail.outbox[0].body)

    def test_email_failure_does_not_raise(self) -> None:
        booking = BookingLedger().create(make_draft(), PRICING)

        with patch("apps.notifications.services.send_mail", side_effect=OSError("smtp down")):
            result = send_booking_notifications(str(booking.id), "confirmed")

        self.assertEqual(result, {"email": False, "sms": False, "admin": False})

    def test_missing_booking_is_skipped(self) -> None:
        result = send_booking_notifications("00000000-0000-0000-0000-000000000000")

        self.assertEqual(result, {"email": False, "sms": False, "admin": False})
        self.assertEqual(mail.outbox, [])


@override_settings(SMS_GATEWAY_URL="https://sms.example.test/send", SMS_API_KEY="k")
class SmsNotificationTests(TestCase):
    def test_provider_error_returns_false(self) -> None:
        with patch("apps.notifications.services.requests.post", side_effect=requests.Timeout("timed out")):
            self.assertFalse(send_sms_notification("+919800000000", "Booking confirmed"))

    def test_sms_is_posted_to_provider(self) -> None:
        with patch("apps.notifications.services.requests.post") as post:
            self.assertTrue(send_sms_notification("+919800000000", "Booking confirmed"))

        _, kwargs = post.call_args
        self.assertEqual(kwargs["json"]["to"], "+919800000000")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer k")
