"""Notification services for sending booking emails and SMS."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests
from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.domain.entities import Booking

logger = logging.getLogger(__name__)


# ============================================================================
# CHANNELS
# ============================================================================

def send_email_notification(recipient_email: str, subject: str, message: str) -> bool:
    """
    Отправка email через стандартный почтовый backend Django.

    Returns:
        bool: True если письмо отправлено успешно
    """
    if not recipient_email:
        return False
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False

    logger.info(f"Email sent successfully to {recipient_email}: {subject}")
    return True


def send_sms_notification(phone: str, message: str) -> bool:
    """
    Отправка SMS через HTTP-провайдера (SMS_GATEWAY_URL).

    Without a configured provider the message is only logged.
    """
    if not phone:
        return False

    gateway_url = getattr(settings, "SMS_GATEWAY_URL", "")
    if not gateway_url:
        logger.info(f"SMS provider not configured, skipping SMS to {phone[-4:].rjust(len(phone), '*')}")
        return False

    try:
        response = requests.post(
            gateway_url,
            json={"to": phone, "message": message, "sender": getattr(settings, "SMS_SENDER_ID", "HMSTD")},
            headers={"Authorization": f"Bearer {getattr(settings, 'SMS_API_KEY', '')}"},
            timeout=getattr(settings, "SMS_TIMEOUT", 10),
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to send SMS: {e}")
        return False

    logger.info("SMS sent successfully")
    return True


# ============================================================================
# BOOKING MESSAGES
# ============================================================================

KIND_LABELS = {
    "site_visit": "site visit",
    "short_stay": "stay",
    "subscription": "subscription",
}


def format_amount(amount: int, currency: str) -> str:
    return f"{currency} {amount / 100:,.2f}"


def booking_summary(booking: "Booking") -> str:
    draft = booking.draft
    label = KIND_LABELS.get(draft.kind.value, draft.kind.value)
    lines = [
        f"Booking {booking.booking_code}: {label} - {draft.subject.title or draft.subject.subject_id}",
    ]
    if draft.window.end_date:
        lines.append(f"Dates: {draft.window.start_date:%d %b %Y} to {draft.window.end_date:%d %b %Y}")
    else:
        slot = f" at {draft.window.slot_time}" if draft.window.slot_time else ""
        lines.append(f"Date: {draft.window.start_date:%d %b %Y}{slot}")
    if draft.occupant_count > 1 or draft.kind.value == "site_visit":
        lines.append(f"People: {', '.join(draft.occupants)}")
    if draft.pickup_address:
        lines.append(f"Pickup: {draft.pickup_address}")
    lines.append(f"Total: {format_amount(booking.pricing.total, booking.pricing.currency)}")
    return "\n".join(lines)


def booking_message(booking: "Booking", template: str) -> tuple[str, str]:
    """Return (subject, body) for a contact-facing message."""
    summary = booking_summary(booking)
    name = booking.draft.contact.name
    if template == "settled":
        return (
            f"Payment received for booking {booking.booking_code}",
            f"Hello {name},\n\nWe have received your payment.\n\n{summary}\n",
        )
    if booking.status.value == "confirmed_pending_settlement":
        return (
            f"Booking {booking.booking_code} confirmed",
            f"Hello {name},\n\nYour booking is confirmed. Payment is due at the time of the visit.\n\n{summary}\n",
        )
    return (
        f"Booking {booking.booking_code} confirmed",
        f"Hello {name},\n\nYour payment was successful and your booking is confirmed.\n\n{summary}\n",
    )


def admin_message(booking: "Booking", template: str) -> tuple[str, str]:
    contact = booking.draft.contact
    summary = booking_summary(booking)
    return (
        f"[{template}] {booking.booking_code} ({booking.status.value})",
        f"{summary}\nContact: {contact.name} / {contact.email or '-'} / {contact.phone or '-'}\n"
        f"Payment: {booking.payment_id or 'pay later'}\n",
    )
