"""
Booking Drafts

Validated, not yet persisted intent to book:
- SubjectRef: what is being booked (a property, a tour, a listing plan)
- BookingWindow: stay dates or visit date and slot
- ContactInfo: how to reach the person who booked
- BookingDraft: everything above plus occupants and the payment path

Drafts are immutable and round-trip through plain dicts so a pending
payment session can carry them between the create and verify requests.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterator, Tuple

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange


class BookingKind(str, Enum):
    SITE_VISIT = 'site_visit'
    SHORT_STAY = 'short_stay'
    SUBSCRIPTION = 'subscription'


class PaymentPath(str, Enum):
    """Pay now through the gateway, or pay later at fulfilment."""
    GATEWAY = 'gateway'
    DEFERRED = 'deferred'


@dataclass(frozen=True)
class SubjectRef(ValueObject):
    kind: BookingKind
    subject_id: str
    title: str = ''


@dataclass(frozen=True)
class BookingWindow(ValueObject):
    """
    Requested window

    Stays use start_date (check-in) and end_date (check-out, exclusive).
    Visits use start_date and slot_time. Subscriptions only start_date.
    """
    start_date: date
    end_date: date | None = None
    slot_time: str | None = None

    @property
    def stay(self) -> DateRange | None:
        if self.end_date is None or self.end_date <= self.start_date:
            return None
        return DateRange(self.start_date, self.end_date)

    @property
    def nights(self) -> int:
        stay = self.stay
        return len(stay) if stay is not None else 0

    def dates(self) -> Iterator[date]:
        """Every calendar date the booking occupies."""
        stay = self.stay
        if stay is None:
            yield self.start_date
            return
        yield from stay.days()


@dataclass(frozen=True)
class ContactInfo(ValueObject):
    name: str
    email: str = ''
    phone: str = ''

    @property
    def is_reachable(self) -> bool:
        return bool(self.email or self.phone)


@dataclass(frozen=True)
class BookingDraft(ValueObject):
    """
    A well-formed booking request

    `occupants` holds the names of everyone included, lead occupant first.
    """
    subject: SubjectRef
    window: BookingWindow
    occupants: Tuple[str, ...]
    contact: ContactInfo
    payment_path: PaymentPath
    notes: str = ''
    pickup_address: str = ''

    @property
    def kind(self) -> BookingKind:
        return self.subject.kind

    @property
    def occupant_count(self) -> int:
        return len(self.occupants)

    @property
    def is_deferred(self) -> bool:
        return self.payment_path == PaymentPath.DEFERRED

    def to_dict(self) -> dict:
        return {
            'kind': self.subject.kind.value,
            'subject_id': self.subject.subject_id,
            'subject_title': self.subject.title,
            'start_date': self.window.start_date.isoformat(),
            'end_date': self.window.end_date.isoformat() if self.window.end_date else None,
            'slot_time': self.window.slot_time,
            'occupants': list(self.occupants),
            'contact': {
                'name': self.contact.name,
                'email': self.contact.email,
                'phone': self.contact.phone,
            },
            'payment_path': self.payment_path.value,
            'notes': self.notes,
            'pickup_address': self.pickup_address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BookingDraft':
        end_date = data.get('end_date')
        contact = data.get('contact') or {}
        return cls(
            subject=SubjectRef(
                kind=BookingKind(data['kind']),
                subject_id=str(data['subject_id']),
                title=data.get('subject_title', ''),
            ),
            window=BookingWindow(
                start_date=date.fromisoformat(data['start_date']),
                end_date=date.fromisoformat(end_date) if end_date else None,
                slot_time=data.get('slot_time'),
            ),
            occupants=tuple(data.get('occupants') or ()),
            contact=ContactInfo(
                name=contact.get('name', ''),
                email=contact.get('email', ''),
                phone=contact.get('phone', ''),
            ),
            payment_path=PaymentPath(data['payment_path']),
            notes=data.get('notes', ''),
            pickup_address=data.get('pickup_address', ''),
        )
