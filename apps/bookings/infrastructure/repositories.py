"""
Payment session and reconciliation case repositories.

Sessions are the persisted "future" of a gateway checkout; the
reconciliation queue is where payments that could not be matched to a
booking wait for a person.
"""

import logging
from datetime import datetime
from typing import Callable, Iterator, List
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork

from ..domain.drafts import BookingDraft
from ..domain.errors import PaymentSessionNotFound
from ..domain.payment import PaymentProof, PaymentSession, SessionState
from ..domain.pricing import PricingBreakdown
from ..models import PaymentSession as PaymentSessionModel
from ..models import ReconciliationCase

logger = logging.getLogger(__name__)


def session_from_row(row: PaymentSessionModel) -> PaymentSession:
    return PaymentSession(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        draft=BookingDraft.from_dict(row.draft),
        pricing=PricingBreakdown.from_dict(row.pricing),
        state=SessionState(row.state),
        order_id=row.order_id,
        payment_id=row.payment_id or None,
        failure_reason=row.failure_reason,
        expires_at=row.expires_at,
        booking_id=row.booking_id,
        guest_id=row.guest_id,
        idempotency_key=row.idempotency_key,
    )


class PaymentSessionRepository:
    def __init__(self, uow_factory: Callable[[], DjangoUnitOfWork] = DjangoUnitOfWork):
        self._uow_factory = uow_factory

    def add(self, session: PaymentSession) -> PaymentSession:
        with self._uow_factory() as uow:
            PaymentSessionModel.objects.create(
                id=session.id,
                state=session.state.value,
                order_id=session.order_id,
                payment_id=session.payment_id or '',
                draft=session.draft.to_dict(),
                pricing=session.pricing.to_dict(),
                failure_reason=session.failure_reason,
                expires_at=session.expires_at,
                booking_id=session.booking_id,
                guest_id=session.guest_id,
                idempotency_key=session.idempotency_key,
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
            uow.collect_events(session)
        return session

    def save(self, session: PaymentSession, expected_state: SessionState | None = None) -> bool:
        """
        Persist the session. With ``expected_state`` the row is only
        updated while it is still in that state; returns False otherwise.
        """
        rows = PaymentSessionModel.objects.filter(pk=session.id)
        if expected_state is not None:
            rows = rows.filter(state=expected_state.value)
        with self._uow_factory() as uow:
            updated = rows.update(
                state=session.state.value,
                payment_id=session.payment_id or '',
                failure_reason=session.failure_reason,
                expires_at=session.expires_at,
                booking_id=session.booking_id,
                updated_at=session.updated_at,
            )
            if updated:
                uow.collect_events(session)
            else:
                session.clear_events()
        return bool(updated)

    def get_by_order_id(self, order_id: str) -> PaymentSession:
        row = PaymentSessionModel.objects.filter(order_id=order_id).first() if order_id else None
        if row is None:
            raise PaymentSessionNotFound(f"No payment session for order {order_id!r}")
        return session_from_row(row)

    def find_by_idempotency_key(self, key: str, *, guest_id: int | None = None) -> PaymentSession | None:
        """Session this guest started with ``key``; ``guest_id=None`` matches anonymous sessions."""
        if not key:
            return None
        row = PaymentSessionModel.objects.filter(idempotency_key=key, guest_id=guest_id).first()
        return session_from_row(row) if row else None

    def idempotency_key_in_use(self, key: str) -> bool:
        return bool(key) and PaymentSessionModel.objects.filter(idempotency_key=key).exists()

    def stale(self, now: datetime) -> Iterator[PaymentSession]:
        rows = PaymentSessionModel.objects.filter(
            state=SessionState.PAYMENT_PENDING.value,
            expires_at__lte=now,
            booking__isnull=True,
        ).order_by('expires_at')
        for row in rows.iterator():
            yield session_from_row(row)


class ReconciliationQueue:
    """
    Durable manual-reconciliation queue

    Each write is its own short transaction so an escalation survives even
    when the surrounding request fails afterwards.
    """

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
    ) -> ReconciliationCase:
        """Open a case, or return the open case already filed for this payment and reason."""
        payment_id = (proof.payment_id or '') if proof else ''
        existing = self._open_case(reason, payment_id)
        if existing is not None:
            self.record_attempt(existing, error or existing.error, attempts)
            logger.info("Reconciliation case %s already open for payment %s", existing.id, payment_id)
            return existing

        try:
            with transaction.atomic():
                case = ReconciliationCase.objects.create(
                    reason=reason,
                    order_id=(proof.order_id or '') if proof else '',
                    payment_id=payment_id,
                    signature=(proof.signature or '') if proof else '',
                    amount=proof.amount if proof else None,
                    source=proof.source.value if proof else ReconciliationCase.Source.CHECKOUT,
                    proof_verified=proof.verified if proof else False,
                    draft=draft.to_dict() if draft else None,
                    pricing=pricing.to_dict() if pricing else None,
                    session_id=session_id,
                    guest_id=guest_id,
                    error=error[:2000],
                    attempts=attempts,
                )
        except IntegrityError:
            # A concurrent callback filed the same case first
            existing = self._open_case(reason, payment_id)
            if existing is None:
                raise
            return existing
        logger.warning("Reconciliation case %s opened: %s (payment %s)", case.id, reason, case.payment_id)
        return case

    def _open_case(self, reason: str, payment_id: str) -> ReconciliationCase | None:
        if not payment_id:
            return None
        return ReconciliationCase.objects.filter(
            reason=reason,
            payment_id=payment_id,
            status=ReconciliationCase.Status.OPEN,
        ).first()

    def open_cases(self, reason: str | None = None) -> List[ReconciliationCase]:
        cases = ReconciliationCase.objects.filter(status=ReconciliationCase.Status.OPEN)
        if reason:
            cases = cases.filter(reason=reason)
        return list(cases.order_by('created_at'))

    def record_attempt(self, case: ReconciliationCase, error: str, attempts: int):
        case.attempts += attempts
        case.error = error[:2000]
        case.save(update_fields=['attempts', 'error', 'updated_at'])

    def resolve(self, case: ReconciliationCase, booking_id: UUID):
        with transaction.atomic():
            case.status = ReconciliationCase.Status.RESOLVED
            case.booking_id = booking_id
            case.resolved_at = timezone.now()
            case.save(update_fields=['status', 'booking', 'resolved_at', 'updated_at'])
            if case.session_id:
                PaymentSessionModel.objects.filter(pk=case.session_id, booking__isnull=True).update(
                    booking_id=booking_id, updated_at=timezone.now()
                )
        logger.info("Reconciliation case %s resolved with booking %s", case.id, booking_id)
