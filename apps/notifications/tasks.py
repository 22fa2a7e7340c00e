"""Celery tasks for booking notifications."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore

from apps.bookings.domain.errors import BookingNotFound, NotificationFailed
from apps.bookings.infrastructure.ledger import BookingLedger

from .services import admin_message, booking_message, send_email_notification, send_sms_notification

logger = logging.getLogger(__name__)


@shared_task(name="notifications.send_booking_notifications")
def send_booking_notifications(booking_id: str, template: str = "confirmed") -> dict[str, bool]:
    """
    Отправка уведомлений по бронированию: email и SMS клиенту, email администраторам.

    Каждый канал независим; ошибки только логируются.
    """
    try:
        booking = BookingLedger().get(booking_id)
    except BookingNotFound:
        logger.warning(f"Booking {booking_id} not found, notification skipped")
        return {"email": False, "sms": False, "admin": False}

    contact = booking.draft.contact
    subject, body = booking_message(booking, template)
    results = {
        "email": send_email_notification(contact.email, subject, body) if contact.email else False,
        "sms": send_sms_notification(contact.phone, subject) if contact.phone else False,
        "admin": False,
    }

    admin_emails = getattr(settings, "BOOKING_ADMIN_EMAILS", [])
    if admin_emails:
        admin_subject, admin_body = admin_message(booking, template)
        results["admin"] = all(
            [send_email_notification(address, admin_subject, admin_body) for address in admin_emails]
        )

    if contact.is_reachable and not (results["email"] or results["sms"]):
        failure = NotificationFailed(f"No {template} notification delivered for booking {booking.booking_code}")
        logger.warning(str(failure))

    return results
