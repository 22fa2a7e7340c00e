"""
Reconciliation Guard

Sits between a confirmed payment and the ledger. Its contract: a charge
that the gateway reports as successful ends either as exactly one
Booking or as an open case in the manual reconciliation queue, never as
nothing.

Steps for a gateway success:
1. Verify the proof (payment id, order id, signature, amount)
2. Return the existing booking if this payment id was already committed
3. Write the booking, retrying transient database errors with backoff
4. Escalate to the queue when the retries run out
"""

import time
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

import structlog
from django.conf import settings
from django.db import DatabaseError, IntegrityError

from ..domain.drafts import BookingDraft
from ..domain.entities import Booking
from ..domain.errors import LedgerWriteFailed, ManualReconciliationRequired, PaymentVerificationFailed
from ..domain.payment import PaymentAttempt, PaymentProof, ProofSource
from ..domain.pricing import PricingBreakdown
from ..infrastructure.ledger import BookingLedger
from ..infrastructure.repositories import ReconciliationQueue
from ..models import ReconciliationCase

logger = structlog.get_logger(__name__)

SignatureVerifier = Callable[[str, str, str | None], bool]


@dataclass(frozen=True)
class ReconciliationConfig:
    max_attempts: int = 3
    backoff_seconds: float = 0.2
    max_backoff_seconds: float = 5.0
    require_signature: bool = True

    @classmethod
    def from_settings(cls) -> 'ReconciliationConfig':
        gateway = getattr(settings, 'PAYMENT_GATEWAY', {}) or {}
        return cls(
            max_attempts=max(int(getattr(settings, 'BOOKING_LEDGER_MAX_ATTEMPTS', 3)), 1),
            backoff_seconds=float(getattr(settings, 'BOOKING_LEDGER_BACKOFF_SECONDS', 0.2)),
            max_backoff_seconds=float(getattr(settings, 'BOOKING_LEDGER_MAX_BACKOFF_SECONDS', 5.0)),
            require_signature=bool(gateway.get('REQUIRE_SIGNATURE', True)),
        )


class ReconciliationGuard:
    """
    Usage:
        guard = ReconciliationGuard(ledger, queue, gateway.verify_payment_signature)
        booking = guard.commit_on_success(draft, pricing, proof, expected_order_id=order_id)

    The guard keeps no state between calls; idempotency comes from the
    unique payment id on the booking table.
    """

    def __init__(
        self,
        ledger: BookingLedger,
        queue: ReconciliationQueue,
        verify_signature: SignatureVerifier,
        config: ReconciliationConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ledger = ledger
        self.queue = queue
        self.verify_signature = verify_signature
        self.config = config or ReconciliationConfig.from_settings()
        self._sleep = sleep

    # ------------------------------------------------------------------ verify

    def verification_problem(self, proof: PaymentProof, expected_order_id: str, pricing: PricingBreakdown) -> str | None:
        if not proof.payment_id:
            return "Payment proof has no payment id"
        if proof.order_id != expected_order_id:
            return f"Payment proof is for order {proof.order_id!r}, expected {expected_order_id!r}"
        if not proof.verified:
            if proof.source == ProofSource.WEBHOOK:
                return "Webhook proof was not authenticated"
            if proof.signature:
                if not self.verify_signature(proof.order_id, proof.payment_id, proof.signature):
                    return "Payment signature does not match"
            elif self.config.require_signature:
                return "Payment proof is not signed"
        if proof.amount is not None and proof.amount != pricing.total:
            return f"Paid amount {proof.amount} does not match the booking total {pricing.total}"
        return None

    def verify(
        self,
        proof: PaymentProof,
        *,
        expected_order_id: str,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        session_id: UUID | None = None,
        guest_id: int | None = None,
    ) -> None:
        """Raise PaymentVerificationFailed (after escalating) unless the proof checks out."""
        problem = self.verification_problem(proof, expected_order_id, pricing)
        if problem is None:
            return
        logger.warning(
            "reconciliation.verification_failed",
            order_id=proof.order_id,
            payment_id=proof.payment_id,
            source=proof.source.value,
            problem=problem,
        )
        case_id = self.escalate(
            ReconciliationCase.Reason.VERIFICATION_FAILED,
            proof,
            draft=draft,
            pricing=pricing,
            error=problem,
            session_id=session_id,
            guest_id=guest_id,
        )
        raise PaymentVerificationFailed(problem, case_id=case_id)

    # ------------------------------------------------------------------ commit

    def commit_on_success(
        self,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        proof: PaymentProof,
        *,
        expected_order_id: str,
        guest_id: int | None = None,
        session_id: UUID | None = None,
    ) -> Booking:
        self.verify(
            proof,
            expected_order_id=expected_order_id,
            draft=draft,
            pricing=pricing,
            session_id=session_id,
            guest_id=guest_id,
        )

        existing = self._existing(proof.payment_id)
        if existing is not None:
            logger.info(
                "reconciliation.duplicate_callback",
                payment_id=proof.payment_id,
                booking_code=existing.booking_code,
            )
            return existing

        booking, error, attempts = self._write_with_retry(draft, pricing, proof.to_attempt(), guest_id=guest_id)
        if booking is not None:
            return booking

        case_id = self.escalate(
            ReconciliationCase.Reason.LEDGER_WRITE_FAILED,
            proof,
            draft=draft,
            pricing=pricing,
            error=error,
            session_id=session_id,
            guest_id=guest_id,
            attempts=attempts,
        )
        raise LedgerWriteFailed(
            "Payment received but the booking could not be saved. It has been queued for manual reconciliation.",
            case_id=case_id,
        )

    def commit_deferred(
        self,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        idempotency_key: str | None = None,
        *,
        guest_id: int | None = None,
    ) -> Booking:
        """Pay-later path: no money moved, so no verification and no retries."""
        existing = self.ledger.find_by_idempotency_key(idempotency_key, guest_id=guest_id) if idempotency_key else None
        if existing is not None:
            return existing
        try:
            return self.ledger.create(draft, pricing, None, guest_id=guest_id, idempotency_key=idempotency_key)
        except IntegrityError:
            existing = self.ledger.find_by_idempotency_key(idempotency_key, guest_id=guest_id) if idempotency_key else None
            if existing is None:
                raise
            return existing

    def retry_case(self, case: ReconciliationCase) -> Booking:
        """
        Re-drive an open ledger_write_failed case.

        Resolves the case with the booking on success; otherwise records
        the attempt and raises LedgerWriteFailed with the same case id.
        """
        if case.reason != ReconciliationCase.Reason.LEDGER_WRITE_FAILED or case.status != ReconciliationCase.Status.OPEN:
            raise ManualReconciliationRequired(
                f"Case {case.id} ({case.reason}, {case.status}) needs a person, not a retry",
                case_id=case.id,
            )

        existing = self._existing(case.payment_id)
        if existing is None:
            draft = BookingDraft.from_dict(case.draft)
            pricing = PricingBreakdown.from_dict(case.pricing)
            attempt = PaymentProof(
                order_id=case.order_id,
                payment_id=case.payment_id,
                signature=case.signature or None,
                amount=case.amount,
                source=ProofSource(case.source),
                verified=case.proof_verified,
            ).to_attempt()
            existing, error, attempts = self._write_with_retry(draft, pricing, attempt, guest_id=case.guest_id)
            if existing is None:
                self.queue.record_attempt(case, error, attempts)
                raise LedgerWriteFailed(f"Case {case.id} still cannot be written: {error}", case_id=case.id)

        self.queue.resolve(case, existing.id)
        logger.info("reconciliation.case_resolved", case_id=str(case.id), booking_code=existing.booking_code)
        return existing

    # ---------------------------------------------------------------- internals

    def _existing(self, payment_id: str) -> Booking | None:
        try:
            return self.ledger.find_by_payment_id(payment_id)
        except DatabaseError as exc:
            logger.warning("reconciliation.lookup_failed", payment_id=payment_id, error=repr(exc))
            return None

    def _backoff(self, attempt: int) -> float:
        delay = self.config.backoff_seconds * (2 ** max(attempt - 1, 0))
        return min(delay, self.config.max_backoff_seconds)

    def _write_with_retry(
        self,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        attempt: PaymentAttempt,
        *,
        guest_id: int | None,
    ) -> tuple[Booking | None, str, int]:
        last_error = ''
        for attempt_no in range(1, self.config.max_attempts + 1):
            try:
                return self.ledger.create(draft, pricing, attempt, guest_id=guest_id), '', attempt_no
            except IntegrityError as exc:
                # A concurrent callback for the same payment won the insert
                existing = self._existing(attempt.payment_id)
                if existing is not None:
                    logger.info(
                        "reconciliation.duplicate_resolved",
                        payment_id=attempt.payment_id,
                        booking_code=existing.booking_code,
                    )
                    return existing, '', attempt_no
                last_error = repr(exc)
            except DatabaseError as exc:
                last_error = repr(exc)
            except Exception as exc:
                logger.exception("reconciliation.ledger_write_error", payment_id=attempt.payment_id)
                return None, repr(exc), attempt_no

            logger.warning(
                "reconciliation.ledger_write_failed",
                payment_id=attempt.payment_id,
                attempt=attempt_no,
                max_attempts=self.config.max_attempts,
                error=last_error,
            )
            if attempt_no < self.config.max_attempts:
                self._sleep(self._backoff(attempt_no))

        return None, last_error, self.config.max_attempts

    def escalate(
        self,
        reason: str,
        proof: PaymentProof | None,
        *,
        draft: BookingDraft | None = None,
        pricing: PricingBreakdown | None = None,
        error: str = '',
        session_id: UUID | None = None,
        guest_id: int | None = None,
        attempts: int = 0,
    ) -> UUID | None:
        """
        Write a case to the durable queue and return its id.

        When even that write fails, the whole proof goes to the CRITICAL
        log so the payment can still be found.
        """
        try:
            case = self.queue.escalate(
                reason,
                proof,
                draft=draft,
                pricing=pricing,
                error=error,
                session_id=session_id,
                guest_id=guest_id,
                attempts=attempts,
            )
        except Exception as exc:
            logger.critical(
                "reconciliation.escalation_failed",
                reason=str(reason),
                proof=proof.to_dict() if proof else None,
                draft=draft.to_dict() if draft else None,
                pricing=pricing.to_dict() if pricing else None,
                session_id=str(session_id) if session_id else None,
                error=error,
                queue_error=repr(exc),
            )
            return None

        logger.warning(
            "reconciliation.escalated",
            case_id=str(case.id),
            reason=str(reason),
            payment_id=proof.payment_id if proof else None,
        )
        return case.id
