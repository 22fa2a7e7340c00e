"""Celery tasks for listing subscriptions."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import expire_subscriptions as expire_due_subscriptions

logger = logging.getLogger(__name__)


@shared_task(name="subscriptions.expire_subscriptions")
def expire_subscriptions() -> dict[str, int]:
    """Помечает истёкшие подписки. Запускается каждый час через Celery Beat."""
    expired = expire_due_subscriptions()
    if expired:
        logger.info(f"Expired {expired} subscriptions")
    return {"expired": expired}
