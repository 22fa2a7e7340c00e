"""Append-only audit trail of gateway interactions."""

from __future__ import annotations

import logging

from django.db import DatabaseError, transaction  # type: ignore

from .models import PaymentTransaction

logger = logging.getLogger(__name__)

SECRET_KEYS = {"signature", "razorpay_signature", "key_secret"}


def _redact(payload: dict | None) -> dict:
    if not payload:
        return {}
    return {key: ("***" if key in SECRET_KEYS else value) for key, value in payload.items()}


def record_transaction(
    event: str,
    *,
    order_id: str | None = "",
    payment_id: str | None = "",
    amount: int | None = None,
    currency: str = "",
    payload: dict | None = None,
    status: str = "",
) -> PaymentTransaction | None:
    """Write one audit row. A failed audit write is logged and never blocks a payment."""
    try:
        with transaction.atomic():
            return PaymentTransaction.objects.create(
                event=event,
                order_id=order_id or "",
                payment_id=payment_id or "",
                amount=amount,
                currency=currency,
                payload=_redact(payload),
                status=status,
            )
    except DatabaseError:
        logger.exception("Could not record %s audit entry for order %s", event, order_id)
        return None
