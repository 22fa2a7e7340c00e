"""
Payment Orchestrator

Drives a draft through the payment session state machine:

- start():   pay later -> booking now; pay now -> gateway order + pending session
- confirm(): gateway success -> ReconciliationGuard -> booking
- dismiss(): checkout closed by the customer -> cancelled, no booking
- fail():    gateway reported a failure -> failed, no booking
- expire_stale(): pending sessions past their TTL -> cancelled ("expired")

The gateway callback may arrive zero, one or many times and in any order
relative to dismiss/fail; every entry point is safe to repeat.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from django.conf import settings
from django.db import IntegrityError

from shared.domain.base import utcnow

from ..domain.drafts import BookingDraft
from ..domain.entities import Booking
from ..domain.errors import (
    InvalidTransition,
    ManualReconciliationRequired,
    PaymentCancelled,
    PaymentFailed,
    ValidationError,
)
from ..domain.payment import PaymentProof, PaymentSession, SessionState
from ..domain.pricing import PricingBreakdown
from ..infrastructure.ledger import BookingLedger
from ..infrastructure.repositories import PaymentSessionRepository
from ..models import ReconciliationCase
from .reconciliation import ReconciliationGuard

logger = logging.getLogger(__name__)


def _noop_audit(event: str, **kwargs):
    return None


@dataclass
class StartResult:
    """Outcome of start(): a booking (pay later) or a pending session with checkout options."""
    booking: Booking | None = None
    session: PaymentSession | None = None
    checkout: dict | None = None

    @property
    def is_deferred(self) -> bool:
        return self.booking is not None and self.session is None


def default_session_ttl() -> timedelta:
    return timedelta(minutes=int(getattr(settings, 'PAYMENT_SESSION_TTL_MINUTES', 30)))


class PaymentOrchestrator:
    def __init__(
        self,
        gateway,
        guard: ReconciliationGuard,
        sessions: PaymentSessionRepository,
        ledger: BookingLedger,
        *,
        session_ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
        audit: Callable = _noop_audit,
    ):
        self.gateway = gateway
        self.guard = guard
        self.sessions = sessions
        self.ledger = ledger
        self.session_ttl = session_ttl or default_session_ttl()
        self.clock = clock
        self.audit = audit

    # ------------------------------------------------------------------ start

    def start(
        self,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        *,
        guest_id: int | None = None,
        idempotency_key: str | None = None,
    ) -> StartResult:
        """
        Begin payment for a validated, priced draft.

        Raises GatewayUnavailable when no order can be opened; nothing is
        persisted in that case.
        """
        if idempotency_key:
            replay = self._replay(idempotency_key, guest_id)
            if replay is not None:
                logger.info("Replaying start for idempotency key %s", idempotency_key)
                return replay

        session = PaymentSession(draft=draft, pricing=pricing, guest_id=guest_id, idempotency_key=idempotency_key)

        if draft.is_deferred:
            session.defer()
            booking = self.guard.commit_deferred(draft, pricing, idempotency_key, guest_id=guest_id)
            logger.info("Pay-later booking %s created", booking.booking_code)
            return StartResult(booking=booking)

        order_id = self.gateway.create_order(
            pricing.total,
            pricing.currency,
            receipt=f"session_{session.id.hex[:24]}",
            notes={'kind': draft.kind.value, 'subject_id': draft.subject.subject_id},
        )
        session.open(order_id, expires_at=self.clock() + self.session_ttl)
        try:
            self.sessions.add(session)
        except IntegrityError:
            # Same idempotency key started concurrently; the other request owns the session
            replay = self._replay(idempotency_key, guest_id) if idempotency_key else None
            if replay is None:
                raise
            return replay
        self.audit(
            'order_created',
            order_id=order_id,
            amount=pricing.total,
            currency=pricing.currency,
            payload={'session_id': str(session.id), 'kind': draft.kind.value},
            status=session.state.value,
        )
        logger.info("Payment session %s pending on order %s", session.id, order_id)
        return StartResult(session=session, checkout=self.gateway.checkout_options(session))

    def _replay(self, idempotency_key: str, guest_id: int | None) -> StartResult | None:
        """Earlier result for the same caller and key. Keys are never shared between callers."""
        session = self.sessions.find_by_idempotency_key(idempotency_key, guest_id=guest_id)
        if session is not None and session.order_id:
            booking = self.ledger.get(session.booking_id) if session.booking_id else None
            return StartResult(booking=booking, session=session, checkout=self.gateway.checkout_options(session))
        booking = self.ledger.find_by_idempotency_key(idempotency_key, guest_id=guest_id)
        if booking is not None:
            return StartResult(booking=booking)
        if self.sessions.idempotency_key_in_use(idempotency_key) or self.ledger.idempotency_key_in_use(idempotency_key):
            logger.warning("Idempotency key %s reused by another caller", idempotency_key)
            raise ValidationError.single('idempotency_key', 'This key was already used for another request.')
        return None

    # ---------------------------------------------------------------- confirm

    def confirm(self, order_id: str, proof: PaymentProof) -> Booking:
        """
        Reconcile a gateway success for ``order_id``.

        The draft and price come from the stored session, never from the
        caller. Raises PaymentVerificationFailed or
        ManualReconciliationRequired when no booking can be shown as paid.
        """
        session = self.sessions.get_by_order_id(order_id)
        self.audit(
            'checkout_callback' if proof.source.value == 'checkout' else 'webhook',
            order_id=order_id,
            payment_id=proof.payment_id,
            amount=proof.amount,
            currency=session.pricing.currency,
            payload=proof.to_dict(),
            status=session.state.value,
        )

        if session.is_resolved_unpaid:
            self._escalate_after_verification(
                session, proof, ReconciliationCase.Reason.LATE_SUCCESS,
                f"Payment succeeded after the session was {session.state.value}",
            )

        if session.state == SessionState.PAYMENT_SUCCEEDED and proof.payment_id != session.payment_id:
            self._escalate_after_verification(
                session, proof, ReconciliationCase.Reason.DUPLICATE_CHARGE,
                f"Second payment {proof.payment_id} for an order already paid by {session.payment_id}",
            )

        if session.state not in (SessionState.PAYMENT_PENDING, SessionState.PAYMENT_SUCCEEDED):
            raise InvalidTransition(f"Cannot confirm a payment session in state {session.state.value}")

        booking = self.guard.commit_on_success(
            session.draft,
            session.pricing,
            proof,
            expected_order_id=order_id,
            guest_id=session.guest_id,
            session_id=session.id,
        )

        previous_state = session.state
        if session.is_pending:
            session.succeed(proof.payment_id)
        if session.booking_id is None:
            session.link_booking(booking.id)
        if not self.sessions.save(session, expected_state=previous_state):
            logger.warning("Payment session %s changed while confirming order %s", session.id, order_id)
        return booking

    def _escalate_after_verification(self, session: PaymentSession, proof: PaymentProof, reason: str, message: str):
        self.guard.verify(
            proof,
            expected_order_id=session.order_id,
            draft=session.draft,
            pricing=session.pricing,
            session_id=session.id,
            guest_id=session.guest_id,
        )
        logger.warning("%s (order %s)", message, session.order_id)
        case_id = self.guard.escalate(
            reason,
            proof,
            draft=session.draft,
            pricing=session.pricing,
            error=message,
            session_id=session.id,
            guest_id=session.guest_id,
        )
        raise ManualReconciliationRequired(message, case_id=case_id)

    # ------------------------------------------------------ dismiss / fail

    def dismiss(self, order_id: str) -> PaymentSession:
        """Customer closed checkout. No booking is created; repeating is harmless."""
        return self._resolve_unpaid(order_id, SessionState.PAYMENT_CANCELLED, 'dismissed', 'checkout_dismissed')

    def fail(self, order_id: str, reason: str = '') -> PaymentSession:
        return self._resolve_unpaid(order_id, SessionState.PAYMENT_FAILED, reason or 'failed', 'payment_failed')

    def _resolve_unpaid(self, order_id: str, target: SessionState, reason: str, audit_event: str) -> PaymentSession:
        session = self.sessions.get_by_order_id(order_id)
        if session.state == target:
            return session
        if not session.is_pending:
            self._reject_resolution(session, target)

        if target == SessionState.PAYMENT_CANCELLED:
            session.cancel(reason)
        else:
            session.fail(reason)
        if not self.sessions.save(session, expected_state=SessionState.PAYMENT_PENDING):
            # Resolved by a concurrent callback; report what actually happened
            current = self.sessions.get_by_order_id(order_id)
            if current.state != target:
                self._reject_resolution(current, target)
            return current
        self.audit(
            audit_event,
            order_id=order_id,
            amount=session.pricing.total,
            currency=session.pricing.currency,
            payload={'reason': reason},
            status=session.state.value,
        )
        logger.info("Payment session %s resolved as %s (%s)", session.id, session.state.value, reason)
        return session

    @staticmethod
    def _reject_resolution(session: PaymentSession, target: SessionState):
        """A session already closed as the other unpaid outcome keeps that outcome."""
        reason = session.failure_reason or session.state.value
        if session.state == SessionState.PAYMENT_CANCELLED:
            raise PaymentCancelled(f"Payment for order {session.order_id} was already cancelled ({reason})")
        if session.state == SessionState.PAYMENT_FAILED:
            raise PaymentFailed(f"Payment for order {session.order_id} already failed ({reason})")
        raise InvalidTransition(f"Cannot move payment session from {session.state.value} to {target.value}")

    # ----------------------------------------------------------------- expiry

    def expire_stale(self, now: datetime | None = None) -> int:
        now = now or self.clock()
        expired = 0
        for session in list(self.sessions.stale(now)):
            session.cancel('expired')
            if self.sessions.save(session, expected_state=SessionState.PAYMENT_PENDING):
                expired += 1
        if expired:
            logger.info("Expired %d abandoned payment sessions", expired)
        return expired
