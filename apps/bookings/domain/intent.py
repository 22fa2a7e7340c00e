"""
Booking Intent

BookingIntentBuilder turns raw request data into a BookingDraft, applying
one BookingPolicy. Site visits, short stays and subscription purchases
all go through the same rules; only the policy differs.
"""

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, FrozenSet, List, Tuple

from .drafts import BookingDraft, BookingKind, BookingWindow, ContactInfo, PaymentPath, SubjectRef
from .errors import ValidationError

WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PHONE_RE = re.compile(r'^\+?[0-9][0-9 \-]{5,18}[0-9]$')
SLOT_RE = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')


@dataclass(frozen=True)
class BookingPolicy:
    """
    Booking rules for one subject

    Weekdays follow date.weekday(): Monday is 0, Sunday is 6.
    """
    kind: BookingKind
    horizon_days: int = 30
    lead_days: int = 0
    excluded_weekdays: FrozenSet[int] = frozenset()
    blackout_dates: FrozenSet[date] = frozenset()
    time_slots: Tuple[str, ...] = ()
    min_occupants: int = 1
    max_occupants: int = 1
    requires_occupant_names: bool = True
    min_units: int = 1
    max_units: int | None = None
    payment_paths: Tuple[PaymentPath, ...] = (PaymentPath.GATEWAY,)
    fail_fast: bool = False


class _Errors:
    def __init__(self, fail_fast: bool):
        self.fail_fast = fail_fast
        self.fields: Dict[str, List[str]] = {}

    def add(self, field_name: str, message: str):
        self.fields.setdefault(field_name, []).append(message)
        if self.fail_fast:
            raise ValidationError(self.fields)

    def raise_if_any(self):
        if self.fields:
            raise ValidationError(self.fields)


def _parse_date(value) -> date | None:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ''


@dataclass
class BookingIntentBuilder:
    """
    Validates raw input into a BookingDraft.

    `today` is injected so the date window is reproducible; it defaults to
    the current local date. Every failing field is reported unless the
    policy asks to fail fast on the first one.
    """
    today: date = field(default_factory=date.today)

    def build(self, raw: dict, policy: BookingPolicy) -> BookingDraft:
        errors = _Errors(policy.fail_fast)

        kind = self._kind(raw, policy, errors)
        subject_id = raw.get('subject_id')
        subject_id = str(subject_id).strip() if subject_id not in (None, '') else ''
        if not subject_id:
            errors.add('subject_id', "This field is required.")

        contact_data = raw.get('contact') or {}
        window = self._window(raw, policy, errors)
        occupants = self._occupants(raw, policy, contact_data, errors)
        contact = self._contact(contact_data, errors)
        payment_path = self._payment_path(raw, policy, errors)

        errors.raise_if_any()
        return BookingDraft(
            subject=SubjectRef(kind=kind, subject_id=subject_id, title=_clean(raw.get('subject_title'))),
            window=window,
            occupants=occupants,
            contact=contact,
            payment_path=payment_path,
            notes=_clean(raw.get('notes')),
            pickup_address=_clean(raw.get('pickup_address')),
        )

    def _kind(self, raw, policy, errors) -> BookingKind:
        value = raw.get('kind')
        if value in (None, ''):
            return policy.kind
        try:
            kind = BookingKind(value)
        except ValueError:
            errors.add('kind', f"Unknown booking kind '{value}'.")
            return policy.kind
        if kind != policy.kind:
            errors.add('kind', f"Booking kind '{kind.value}' does not match this subject.")
        return policy.kind

    def _window(self, raw, policy, errors) -> BookingWindow | None:
        if policy.kind == BookingKind.SUBSCRIPTION:
            return BookingWindow(start_date=self.today)

        start = _parse_date(raw.get('start_date'))
        if start is None:
            errors.add('start_date', "A valid date (YYYY-MM-DD) is required.")
            return None

        earliest = self.today + timedelta(days=policy.lead_days)
        latest = self.today + timedelta(days=policy.horizon_days)
        if start < earliest:
            errors.add('start_date', f"Date must be on or after {earliest.isoformat()}.")
        elif start > latest:
            errors.add('start_date', f"Date must be on or before {latest.isoformat()}.")
        if start.weekday() in policy.excluded_weekdays:
            errors.add('start_date', f"Bookings are not available on {WEEKDAY_NAMES[start.weekday()]}s.")

        end = None
        slot = None
        if policy.kind == BookingKind.SHORT_STAY:
            end = _parse_date(raw.get('end_date'))
            if end is None:
                errors.add('end_date', "A valid check-out date (YYYY-MM-DD) is required.")
                return None
            if end <= start:
                errors.add('end_date', "Check-out must be after check-in.")
                return None
            nights = (end - start).days
            if nights < policy.min_units or (policy.max_units is not None and nights > policy.max_units):
                upper = policy.max_units if policy.max_units is not None else 'unlimited'
                errors.add('end_date', f"Stay must be between {policy.min_units} and {upper} nights.")
        else:
            slot = _clean(raw.get('slot_time'))
            if not slot:
                errors.add('slot_time', "This field is required.")
            elif not SLOT_RE.match(slot):
                errors.add('slot_time', "Time slot must use the HH:MM format.")
            elif policy.time_slots and slot not in policy.time_slots:
                errors.add('slot_time', f"Time slot must be one of: {', '.join(policy.time_slots)}.")

        window = BookingWindow(start_date=start, end_date=end, slot_time=slot or None)
        blocked = sorted(d for d in window.dates() if d in policy.blackout_dates)
        if blocked:
            errors.add('start_date', f"Not available on {', '.join(d.isoformat() for d in blocked)}.")
        return window

    def _occupants(self, raw, policy, contact_data, errors) -> Tuple[str, ...]:
        names = raw.get('occupants') or []
        if not isinstance(names, (list, tuple)):
            errors.add('occupants', "Occupants must be a list of names.")
            names = []
        names = [_clean(n) for n in names]

        count = raw.get('occupant_count')
        if count in (None, ''):
            count = max(len(names), 1)
        elif isinstance(count, str) and count.strip().isdigit():
            count = int(count)
        if isinstance(count, bool) or not isinstance(count, int):
            errors.add('occupant_count', "Occupant count must be a whole number.")
            return tuple(names)
        if not policy.min_occupants <= count <= policy.max_occupants:
            errors.add(
                'occupant_count',
                f"Occupant count must be between {policy.min_occupants} and {policy.max_occupants}.",
            )
            return tuple(names[:max(count, 0)])

        if not names and isinstance(contact_data, dict):
            names = [_clean(contact_data.get('name'))]
        names = (names + [''] * count)[:count]

        if not names[0]:
            errors.add('occupants.0', "Lead occupant name is required.")
        if policy.requires_occupant_names:
            for index in range(1, count):
                if not names[index]:
                    errors.add(f'occupants.{index}', f"Name is required for occupant {index + 1}.")
        return tuple(names)

    def _contact(self, data, errors) -> ContactInfo:
        if not isinstance(data, dict):
            errors.add('contact', "Contact must be an object with name, email and phone.")
            data = {}
        contact = ContactInfo(
            name=_clean(data.get('name')),
            email=_clean(data.get('email')).lower(),
            phone=_clean(data.get('phone')),
        )
        if not contact.name:
            errors.add('contact.name', "This field is required.")
        if not contact.is_reachable:
            errors.add('contact.channel', "Provide an email address or a phone number.")
        if contact.email and not EMAIL_RE.match(contact.email):
            errors.add('contact.email', "Enter a valid email address.")
        if contact.phone:
            digits = sum(ch.isdigit() for ch in contact.phone)
            if not PHONE_RE.match(contact.phone) or not 7 <= digits <= 15:
                errors.add('contact.phone', "Enter a valid phone number.")
        return contact

    def _payment_path(self, raw, policy, errors) -> PaymentPath:
        value = raw.get('payment_path')
        if value in (None, ''):
            return policy.payment_paths[0]
        try:
            path = PaymentPath(value)
        except ValueError:
            errors.add('payment_path', f"Unknown payment path '{value}'.")
            return policy.payment_paths[0]
        if path not in policy.payment_paths:
            allowed = ', '.join(p.value for p in policy.payment_paths)
            errors.add('payment_path', f"Payment path must be one of: {allowed}.")
        return path
