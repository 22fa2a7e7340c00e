"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent


# ===== Booking Events =====

@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """
    Event: A booking was committed to the ledger

    Emitted for both paid (confirmed) and pay-later
    (confirmed_pending_settlement) bookings.

    Triggers:
    - Send confirmation email and SMS to the contact
    - Notify the booking desk
    - Grant or extend a listing subscription
    """
    booking_id: UUID
    booking_code: str
    kind: str
    subject_id: str
    status: str
    total: int
    currency: str
    payment_id: str | None = None
    guest_id: int | None = None


@dataclass(kw_only=True)
class BookingSettled(DomainEvent):
    """
    Event: A pay-later booking was paid at fulfilment
    (confirmed_pending_settlement -> confirmed)
    """
    booking_id: UUID
    booking_code: str
    kind: str
    settlement_reference: str = ''


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    booking_id: UUID
    booking_code: str
    reason: str = ''


# ===== Payment Session Events =====

@dataclass(kw_only=True)
class PaymentSessionResolved(DomainEvent):
    """
    Event: A gateway checkout ended without a booking (cancelled, failed
    or expired)
    """
    session_id: UUID
    order_id: str | None
    state: str
    reason: str = ''
