"""
Payment Domain

- PaymentAttempt: how a booking was (or will be) paid
- PaymentProof: what the gateway claims happened, as received
- PaymentSession: one gateway checkout, persisted between the create and
  verify requests. It is the only state machine with transitions driven
  from outside the system.

Session state machine:

    draft -> payment_pending -> payment_succeeded
                             -> payment_cancelled   (dismissed or expired)
                             -> payment_failed
    draft -> awaiting_fulfillment_payment           (pay later)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from shared.domain.base import Aggregate, ValueObject

from .drafts import BookingDraft, PaymentPath
from .errors import InvalidTransition
from .events import PaymentSessionResolved
from .pricing import PricingBreakdown


class PaymentOutcome(str, Enum):
    PENDING = 'pending'
    SUCCEEDED = 'succeeded'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


class ProofSource(str, Enum):
    CHECKOUT = 'checkout'   # Relayed by the client after the checkout handler fired
    WEBHOOK = 'webhook'     # Sent server-to-server by the gateway


@dataclass(frozen=True)
class PaymentAttempt(ValueObject):
    method: PaymentPath
    order_id: str | None = None
    payment_id: str | None = None
    signature: str | None = None
    outcome: PaymentOutcome = PaymentOutcome.PENDING


@dataclass(frozen=True)
class PaymentProof(ValueObject):
    """
    Raw success proof

    `verified` is set only by the webhook endpoint, after it checked the
    signature over the whole request body. Checkout proofs are verified
    by the reconciliation guard.
    """
    order_id: str
    payment_id: str
    signature: str | None = None
    amount: int | None = None
    source: ProofSource = ProofSource.CHECKOUT
    verified: bool = False

    def to_attempt(self) -> PaymentAttempt:
        return PaymentAttempt(
            method=PaymentPath.GATEWAY,
            order_id=self.order_id,
            payment_id=self.payment_id,
            signature=self.signature,
            outcome=PaymentOutcome.SUCCEEDED,
        )

    def to_dict(self) -> dict:
        return {
            'order_id': self.order_id,
            'payment_id': self.payment_id,
            'signature': self.signature,
            'amount': self.amount,
            'source': self.source.value,
            'verified': self.verified,
        }


class SessionState(str, Enum):
    DRAFT = 'draft'
    PAYMENT_PENDING = 'payment_pending'
    PAYMENT_SUCCEEDED = 'payment_succeeded'
    PAYMENT_CANCELLED = 'payment_cancelled'
    PAYMENT_FAILED = 'payment_failed'
    AWAITING_FULFILLMENT_PAYMENT = 'awaiting_fulfillment_payment'


ALLOWED_TRANSITIONS = {
    SessionState.DRAFT: {SessionState.PAYMENT_PENDING, SessionState.AWAITING_FULFILLMENT_PAYMENT},
    SessionState.PAYMENT_PENDING: {
        SessionState.PAYMENT_SUCCEEDED,
        SessionState.PAYMENT_CANCELLED,
        SessionState.PAYMENT_FAILED,
    },
}

UNPAID_TERMINAL_STATES = frozenset({SessionState.PAYMENT_CANCELLED, SessionState.PAYMENT_FAILED})


@dataclass(eq=False, kw_only=True)
class PaymentSession(Aggregate):
    """
    Payment Session Aggregate

    Holds the server-side copy of the draft and its price so the verify
    step never depends on what the client sends back.
    """
    draft: BookingDraft
    pricing: PricingBreakdown
    state: SessionState = SessionState.DRAFT
    order_id: str | None = None
    payment_id: str | None = None
    failure_reason: str = ''
    expires_at: datetime | None = None
    booking_id: UUID | None = None
    guest_id: int | None = None
    idempotency_key: str | None = None

    def _transition(self, target: SessionState):
        if target not in ALLOWED_TRANSITIONS.get(self.state, set()):
            raise InvalidTransition(f"Payment session cannot move from {self.state.value} to {target.value}")
        self.state = target
        self.touch()

    def open(self, order_id: str, expires_at: datetime):
        """draft -> payment_pending"""
        self._transition(SessionState.PAYMENT_PENDING)
        self.order_id = order_id
        self.expires_at = expires_at

    def defer(self):
        """draft -> awaiting_fulfillment_payment"""
        self._transition(SessionState.AWAITING_FULFILLMENT_PAYMENT)

    def succeed(self, payment_id: str):
        """payment_pending -> payment_succeeded"""
        self._transition(SessionState.PAYMENT_SUCCEEDED)
        self.payment_id = payment_id
        self.expires_at = None

    def link_booking(self, booking_id: UUID):
        if self.state not in (SessionState.PAYMENT_SUCCEEDED, SessionState.AWAITING_FULFILLMENT_PAYMENT):
            raise InvalidTransition(f"Cannot link a booking to a {self.state.value} payment session")
        self.booking_id = booking_id
        self.touch()

    def cancel(self, reason: str = 'dismissed'):
        """payment_pending -> payment_cancelled; the draft is kept only as an audit snapshot"""
        self._transition(SessionState.PAYMENT_CANCELLED)
        self._resolve_unpaid(reason)

    def fail(self, reason: str = ''):
        """payment_pending -> payment_failed"""
        self._transition(SessionState.PAYMENT_FAILED)
        self._resolve_unpaid(reason or 'failed')

    def _resolve_unpaid(self, reason: str):
        self.failure_reason = reason
        self.expires_at = None
        self.add_event(PaymentSessionResolved(
            aggregate_id=self.id,
            session_id=self.id,
            order_id=self.order_id,
            state=self.state.value,
            reason=reason,
        ))

    @property
    def is_pending(self) -> bool:
        return self.state == SessionState.PAYMENT_PENDING

    @property
    def is_resolved_unpaid(self) -> bool:
        return self.state in UNPAID_TERMINAL_STATES

    def is_expired(self, now: datetime) -> bool:
        return self.is_pending and self.expires_at is not None and self.expires_at <= now
