from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.notifications"

    def ready(self) -> None:
        from apps.bookings.domain.events import BookingConfirmed, BookingSettled
        from shared.application.message_bus import message_bus

        from .dispatcher import on_booking_confirmed, on_booking_settled

        message_bus.register_event_handler(BookingConfirmed, on_booking_confirmed)
        message_bus.register_event_handler(BookingSettled, on_booking_settled)
