"""Gateway webhook endpoint.

The gateway calls this server-to-server for payment.captured and
payment.failed. The body signature is checked before anything is parsed;
a verified capture is then reconciled exactly like a checkout callback,
so a customer who closed the browser after paying still gets a booking.
"""

from __future__ import annotations

import json
import logging

from django.http import HttpRequest, JsonResponse  # type: ignore
from django.views.decorators.csrf import csrf_exempt  # type: ignore
from django.views.decorators.http import require_POST  # type: ignore

from apps.bookings.domain.errors import (
    InvalidTransition,
    ManualReconciliationRequired,
    PaymentCancelled,
    PaymentFailed,
    PaymentSessionNotFound,
    PaymentVerificationFailed,
)
from apps.bookings.domain.payment import PaymentProof, ProofSource
from apps.bookings.services import build_orchestrator

from .audit import record_transaction
from .gateway import RazorpayGateway

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"
CAPTURE_EVENTS = {"payment.captured", "order.paid"}
FAILURE_EVENTS = {"payment.failed"}


def _payment_entity(payload: dict) -> dict:
    return ((payload.get("payload") or {}).get("payment") or {}).get("entity") or {}


@csrf_exempt
@require_POST
def payment_webhook(request: HttpRequest) -> JsonResponse:
    """
    Обработка webhook от платёжного шлюза.

    403 on a bad signature, 400 on a malformed body, 202 when the payment
    had to be escalated for manual reconciliation, 200 otherwise
    (including events for unknown orders, so the gateway stops retrying).
    """
    gateway = RazorpayGateway()
    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not gateway.verify_webhook_signature(request.body, signature):
        logger.warning("Webhook rejected: invalid signature")
        return JsonResponse({"error": "Invalid signature"}, status=403)

    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.error("Webhook rejected: body is not JSON")
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    event = payload.get("event", "")
    entity = _payment_entity(payload)
    order_id = entity.get("order_id") or ""
    payment_id = entity.get("id") or ""

    record_transaction(
        "webhook",
        order_id=order_id,
        payment_id=payment_id,
        amount=entity.get("amount"),
        currency=entity.get("currency", ""),
        payload={"event": event, "status": entity.get("status", "")},
        status=event,
    )
    logger.info(f"Webhook {event} for order {order_id}, payment {payment_id}")

    if not order_id or event not in CAPTURE_EVENTS | FAILURE_EVENTS:
        return JsonResponse({"status": "ignored"})

    orchestrator = build_orchestrator(gateway)
    try:
        if event in CAPTURE_EVENTS:
            proof = PaymentProof(
                order_id=order_id,
                payment_id=payment_id,
                amount=entity.get("amount"),
                source=ProofSource.WEBHOOK,
                verified=True,
            )
            booking = orchestrator.confirm(order_id, proof)
            return JsonResponse({"status": "ok", "booking_code": booking.booking_code})

        reason = entity.get("error_description") or entity.get("error_code") or "failed"
        orchestrator.fail(order_id, reason)
        return JsonResponse({"status": "ok"})

    except PaymentSessionNotFound:
        logger.warning(f"Webhook for unknown order {order_id}")
        return JsonResponse({"status": "ignored"})
    except (InvalidTransition, PaymentCancelled, PaymentFailed) as exc:
        logger.info(f"Webhook {event} for order {order_id} ignored: {exc}")
        return JsonResponse({"status": "ignored"})
    except ManualReconciliationRequired as exc:
        return JsonResponse(
            {"status": "manual_reconciliation", "case_id": str(exc.case_id) if exc.case_id else None},
            status=202,
        )
    except PaymentVerificationFailed as exc:
        return JsonResponse({"error": str(exc)}, status=400)
