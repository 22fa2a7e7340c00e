"""
Notification Dispatcher

Subscribed to booking events on the message bus. Events arrive only after
the booking transaction committed; the dispatcher hands them to a Celery
task and returns. Nothing here may raise back into the booking flow.
"""

from __future__ import annotations

import logging

from apps.bookings.domain.errors import NotificationFailed
from apps.bookings.domain.events import BookingConfirmed, BookingSettled

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, task=None):
        self._task = task

    @property
    def task(self):
        if self._task is None:
            from .tasks import send_booking_notifications

            self._task = send_booking_notifications
        return self._task

    def dispatch(self, booking_id, template: str) -> bool:
        try:
            self.task.delay(str(booking_id), template)
        except Exception as exc:
            failure = NotificationFailed(f"Could not enqueue {template} notification for booking {booking_id}")
            logger.error("%s: %s", failure, exc, exc_info=True)
            return False
        return True

    def on_booking_confirmed(self, event: BookingConfirmed):
        self.dispatch(event.booking_id, "confirmed")

    def on_booking_settled(self, event: BookingSettled):
        self.dispatch(event.booking_id, "settled")


dispatcher = NotificationDispatcher()


def on_booking_confirmed(event: BookingConfirmed):
    dispatcher.on_booking_confirmed(event)


def on_booking_settled(event: BookingSettled):
    dispatcher.on_booking_settled(event)
