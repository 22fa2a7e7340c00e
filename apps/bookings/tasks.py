"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from .domain.errors import BookingError
from .infrastructure.repositories import ReconciliationQueue
from .models import ReconciliationCase
from .services import build_guard, build_orchestrator

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (запускаются автоматически через Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_stale_payment_sessions")
def expire_stale_payment_sessions() -> dict[str, int]:
    """
    Закрывает брошенные сессии оплаты.

    Pending sessions past PAYMENT_SESSION_TTL_MINUTES without a booking
    become payment_cancelled with reason "expired".

    Запускается каждую минуту через Celery Beat.
    """
    expired = build_orchestrator().expire_stale(timezone.now())
    if expired:
        logger.info(f"Expired {expired} stale payment sessions")
    return {"expired": expired}


@shared_task(name="bookings.retry_reconciliation_cases")
def retry_reconciliation_cases() -> dict[str, int]:
    """
    Повторная запись брони для оплаченных платежей, которые не удалось сохранить.

    Only ledger_write_failed cases are retried; every other reason needs
    a person.

    Запускается каждые 15 минут через Celery Beat.
    """
    guard = build_guard()
    resolved = 0
    still_open = 0

    for case in ReconciliationQueue().open_cases(ReconciliationCase.Reason.LEDGER_WRITE_FAILED):
        try:
            guard.retry_case(case)
            resolved += 1
        except BookingError as exc:
            still_open += 1
            logger.warning(f"Reconciliation case {case.id} still open: {exc}")

    if resolved or still_open:
        logger.info(f"Reconciliation retry: {resolved} resolved, {still_open} still open")
    return {"resolved": resolved, "still_open": still_open}
