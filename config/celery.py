import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("homestead")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Закрытие брошенных сессий оплаты - каждую минуту
    "expire-stale-payment-sessions": {
        "task": "bookings.expire_stale_payment_sessions",
        "schedule": 60.0,  # каждые 60 секунд
        "options": {"expires": 50},
    },
    # Повторная запись оплаченных броней - каждые 15 минут
    "retry-reconciliation-cases": {
        "task": "bookings.retry_reconciliation_cases",
        "schedule": crontab(minute="*/15"),
    },
    # Истечение подписок - каждый час
    "expire-subscriptions": {
        "task": "subscriptions.expire_subscriptions",
        "schedule": crontab(minute=5),  # каждый час в 5 минут
    },
}

app.conf.timezone = "Asia/Kolkata"
