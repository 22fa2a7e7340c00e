"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Main aggregate representing a committed reservation or purchase
- BookingStatus: FSM states for booking lifecycle
"""

import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from shared.domain.base import Aggregate, utcnow

from .drafts import BookingDraft, BookingKind
from .errors import InvalidTransition
from .events import BookingCancelled, BookingConfirmed, BookingSettled
from .payment import PaymentAttempt, PaymentOutcome
from .pricing import PricingBreakdown


class BookingStatus(str, Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - (create, paid) -> CONFIRMED
    - (create, pay later) -> CONFIRMED_PENDING_SETTLEMENT
    - CONFIRMED_PENDING_SETTLEMENT -> CONFIRMED (paid at fulfilment)
    - CONFIRMED_PENDING_SETTLEMENT -> CANCELLED (visitor or desk cancelled)

    Paid bookings are never cancelled here; refunds go through the
    reconciliation desk.
    """
    CONFIRMED_PENDING_SETTLEMENT = 'confirmed_pending_settlement'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'


CODE_PREFIXES = {
    BookingKind.SITE_VISIT: 'SV',
    BookingKind.SHORT_STAY: 'ST',
    BookingKind.SUBSCRIPTION: 'SB',
}


def generate_booking_code(kind: BookingKind) -> str:
    """Human-readable booking code, e.g. SV-3F9A0C1B"""
    return f"{CODE_PREFIXES[kind]}-{secrets.token_hex(4).upper()}"


@dataclass(eq=False, kw_only=True)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Key invariants:
    - Status is derived from the payment attempt at creation and only
      moves forward afterwards
    - The total is the one the PricingEngine produced
    - A paid booking carries the gateway payment id it was created for
    """
    booking_code: str
    draft: BookingDraft
    pricing: PricingBreakdown
    status: BookingStatus
    payment_attempt: PaymentAttempt | None = None
    idempotency_key: str | None = None
    guest_id: int | None = None

    settlement_reference: str = ''
    settled_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str = ''

    @classmethod
    def create(
        cls,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        payment_attempt: PaymentAttempt | None = None,
        *,
        guest_id: int | None = None,
        idempotency_key: str | None = None,
    ) -> 'Booking':
        """
        Create a booking from a draft and its price.

        No attempt means pay later; a succeeded attempt means paid. Any
        other attempt outcome cannot produce a booking.
        Events: BookingConfirmed
        """
        if payment_attempt is None:
            status = BookingStatus.CONFIRMED_PENDING_SETTLEMENT
        elif payment_attempt.outcome == PaymentOutcome.SUCCEEDED and payment_attempt.payment_id:
            status = BookingStatus.CONFIRMED
        else:
            raise InvalidTransition(
                f"Cannot create a booking from a {payment_attempt.outcome.value} payment attempt"
            )

        booking = cls(
            booking_code=generate_booking_code(draft.kind),
            draft=draft,
            pricing=pricing,
            status=status,
            payment_attempt=payment_attempt,
            idempotency_key=idempotency_key,
            guest_id=guest_id,
        )
        booking.add_event(BookingConfirmed(
            aggregate_id=booking.id,
            booking_id=booking.id,
            booking_code=booking.booking_code,
            kind=draft.kind.value,
            subject_id=draft.subject.subject_id,
            status=status.value,
            total=pricing.total,
            currency=pricing.currency,
            payment_id=booking.payment_id,
            guest_id=guest_id,
        ))
        return booking

    @property
    def payment_id(self) -> str | None:
        return self.payment_attempt.payment_id if self.payment_attempt else None

    @property
    def is_confirmed(self) -> bool:
        return self.status in (BookingStatus.CONFIRMED, BookingStatus.CONFIRMED_PENDING_SETTLEMENT)

    def settle(self, reference: str = ''):
        """
        Record payment at fulfilment (CONFIRMED_PENDING_SETTLEMENT -> CONFIRMED)

        Events: BookingSettled
        """
        if self.status != BookingStatus.CONFIRMED_PENDING_SETTLEMENT:
            raise InvalidTransition(f"Cannot settle a booking in status {self.status.value}")

        self.status = BookingStatus.CONFIRMED
        self.settlement_reference = reference
        self.settled_at = utcnow()
        self.touch()

        self.add_event(BookingSettled(
            aggregate_id=self.id,
            booking_id=self.id,
            booking_code=self.booking_code,
            kind=self.draft.kind.value,
            settlement_reference=reference,
        ))

    def cancel(self, reason: str = ''):
        """
        Cancel an unpaid booking (CONFIRMED_PENDING_SETTLEMENT -> CANCELLED)

        Events: BookingCancelled
        """
        if self.status != BookingStatus.CONFIRMED_PENDING_SETTLEMENT:
            raise InvalidTransition(f"Cannot cancel a booking in status {self.status.value}")

        self.status = BookingStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = utcnow()
        self.touch()

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            booking_code=self.booking_code,
            reason=reason,
        ))
