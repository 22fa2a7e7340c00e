"""Application services wiring the booking flow together.

Views and tasks call these helpers instead of assembling the
orchestrator, guard and repositories themselves.
"""

from __future__ import annotations

from datetime import date

from django.utils import timezone  # type: ignore

from apps.finances.audit import record_transaction
from apps.finances.gateway import RazorpayGateway
from apps.properties.catalog import resolve_plan

from .application.orchestrator import PaymentOrchestrator
from .application.reconciliation import ReconciliationGuard
from .domain.drafts import BookingDraft
from .domain.errors import ValidationError
from .domain.intent import BookingIntentBuilder
from .domain.pricing import PricingBreakdown, PricingEngine
from .infrastructure.ledger import BookingLedger
from .infrastructure.repositories import PaymentSessionRepository, ReconciliationQueue


def build_guard(gateway: RazorpayGateway | None = None) -> ReconciliationGuard:
    gateway = gateway or RazorpayGateway()
    return ReconciliationGuard(BookingLedger(), ReconciliationQueue(), gateway.verify_payment_signature)


def build_orchestrator(gateway: RazorpayGateway | None = None) -> PaymentOrchestrator:
    gateway = gateway or RazorpayGateway()
    ledger = BookingLedger()
    guard = ReconciliationGuard(ledger, ReconciliationQueue(), gateway.verify_payment_signature)
    return PaymentOrchestrator(
        gateway,
        guard,
        PaymentSessionRepository(),
        ledger,
        audit=record_transaction,
    )


def prepare_booking(raw: dict, *, today: date | None = None, user=None) -> tuple[BookingDraft, PricingBreakdown]:
    """Validate raw input against the subject's rate plan and price it on the server.

    Any total the client sends is ignored. ``user`` decides access to
    plans sold to developer accounts only.
    """
    if not raw.get("kind"):
        raise ValidationError.single("kind", "This field is required.")
    resolved = resolve_plan(raw.get("kind"), raw.get("subject_id"))
    if not resolved.plan.is_available_to(user):
        raise ValidationError.single("subject_id", "This plan is available to developer and builder accounts only.")
    builder = BookingIntentBuilder(today=today or timezone.localdate())
    draft = builder.build({**raw, "subject_title": resolved.title}, resolved.policy)
    pricing = PricingEngine(resolved.rate_card).compute(draft)
    return draft, pricing
