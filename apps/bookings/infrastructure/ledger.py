"""
Booking Ledger

The only code that writes Booking rows. Every write is one atomic insert
or update inside a DjangoUnitOfWork, so a booking is never observed half
populated and its events are published only after the commit.
"""

import logging
from typing import Callable
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError

from shared.application.uow import DjangoUnitOfWork

from ..domain.drafts import BookingDraft, BookingKind, BookingWindow, ContactInfo, PaymentPath, SubjectRef
from ..domain.entities import Booking, BookingStatus
from ..domain.errors import BookingNotFound
from ..domain.payment import PaymentAttempt, PaymentOutcome
from ..domain.pricing import PricingBreakdown
from ..models import Booking as BookingModel

logger = logging.getLogger(__name__)


def booking_to_row(booking: Booking) -> dict:
    draft = booking.draft
    pricing = booking.pricing
    attempt = booking.payment_attempt
    return {
        'id': booking.id,
        'booking_code': booking.booking_code,
        'guest_id': booking.guest_id,
        'kind': draft.kind.value,
        'subject_id': draft.subject.subject_id,
        'subject_title': draft.subject.title,
        'start_date': draft.window.start_date,
        'end_date': draft.window.end_date,
        'slot_time': draft.window.slot_time or '',
        'occupants': list(draft.occupants),
        'contact_name': draft.contact.name,
        'contact_email': draft.contact.email,
        'contact_phone': draft.contact.phone,
        'notes': draft.notes,
        'pickup_address': draft.pickup_address,
        'currency': pricing.currency,
        'units': pricing.units,
        'unit_amount': pricing.unit_amount,
        'base_amount': pricing.base,
        'tax_amount': pricing.tax,
        'fee_amount': pricing.fee,
        'total_amount': pricing.total,
        'status': booking.status.value,
        'payment_method': attempt.method.value if attempt else '',
        'order_id': (attempt.order_id or '') if attempt else '',
        'payment_id': attempt.payment_id if attempt else None,
        'payment_signature': (attempt.signature or '') if attempt else '',
        'payment_outcome': attempt.outcome.value if attempt else '',
        'idempotency_key': booking.idempotency_key,
        'settlement_reference': booking.settlement_reference,
        'settled_at': booking.settled_at,
        'cancelled_at': booking.cancelled_at,
        'cancellation_reason': booking.cancellation_reason,
        'created_at': booking.created_at,
        'updated_at': booking.updated_at,
    }


def booking_from_row(row: BookingModel) -> Booking:
    draft = BookingDraft(
        subject=SubjectRef(kind=BookingKind(row.kind), subject_id=row.subject_id, title=row.subject_title),
        window=BookingWindow(
            start_date=row.start_date,
            end_date=row.end_date,
            slot_time=row.slot_time or None,
        ),
        occupants=tuple(row.occupants or ()),
        contact=ContactInfo(name=row.contact_name, email=row.contact_email, phone=row.contact_phone or ''),
        payment_path=PaymentPath(row.payment_method) if row.payment_method else PaymentPath.DEFERRED,
        notes=row.notes,
        pickup_address=row.pickup_address,
    )
    pricing = PricingBreakdown(
        base=row.base_amount,
        tax=row.tax_amount,
        fee=row.fee_amount,
        total=row.total_amount,
        currency=row.currency,
        units=row.units,
        unit_amount=row.unit_amount,
        occupants=len(draft.occupants),
    )
    attempt = None
    if row.payment_method:
        attempt = PaymentAttempt(
            method=PaymentPath(row.payment_method),
            order_id=row.order_id or None,
            payment_id=row.payment_id,
            signature=row.payment_signature or None,
            outcome=PaymentOutcome(row.payment_outcome or PaymentOutcome.PENDING.value),
        )
    return Booking(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        booking_code=row.booking_code,
        draft=draft,
        pricing=pricing,
        status=BookingStatus(row.status),
        payment_attempt=attempt,
        idempotency_key=row.idempotency_key,
        guest_id=row.guest_id,
        settlement_reference=row.settlement_reference,
        settled_at=row.settled_at,
        cancelled_at=row.cancelled_at,
        cancellation_reason=row.cancellation_reason,
    )


class BookingLedger:
    """
    Booking store

    create() raises django.db.IntegrityError when the payment id or the
    idempotency key is already taken; callers resolve that race by
    looking the existing booking up.
    """

    MUTABLE_FIELDS = (
        'status',
        'settlement_reference',
        'settled_at',
        'cancelled_at',
        'cancellation_reason',
        'updated_at',
    )

    def __init__(self, uow_factory: Callable[[], DjangoUnitOfWork] = DjangoUnitOfWork):
        self._uow_factory = uow_factory

    def create(
        self,
        draft: BookingDraft,
        pricing: PricingBreakdown,
        payment_attempt: PaymentAttempt | None = None,
        *,
        guest_id: int | None = None,
        idempotency_key: str | None = None,
    ) -> Booking:
        booking = Booking.create(
            draft,
            pricing,
            payment_attempt,
            guest_id=guest_id,
            idempotency_key=idempotency_key,
        )
        with self._uow_factory() as uow:
            BookingModel.objects.create(**booking_to_row(booking))
            uow.collect_events(booking)

        logger.info(
            "Booking %s committed (%s, %s, total %s %s)",
            booking.booking_code,
            draft.kind.value,
            booking.status.value,
            pricing.total,
            pricing.currency,
        )
        return booking

    def save(self, booking: Booking) -> Booking:
        """Persist a forward transition (settle, cancel) of an existing booking."""
        row = booking_to_row(booking)
        with self._uow_factory() as uow:
            updated = BookingModel.objects.filter(pk=booking.id).update(
                **{name: row[name] for name in self.MUTABLE_FIELDS}
            )
            if not updated:
                raise BookingNotFound(f"Booking {booking.id} does not exist")
            uow.collect_events(booking)
        return booking

    def get(self, booking_id: UUID | str) -> Booking:
        try:
            return booking_from_row(BookingModel.objects.get(pk=booking_id))
        except (BookingModel.DoesNotExist, DjangoValidationError, ValueError):
            raise BookingNotFound(f"Booking {booking_id} does not exist")

    def find_by_payment_id(self, payment_id: str) -> Booking | None:
        if not payment_id:
            return None
        row = BookingModel.objects.filter(payment_id=payment_id).first()
        return booking_from_row(row) if row else None

    def find_by_idempotency_key(self, key: str, *, guest_id: int | None = None) -> Booking | None:
        if not key:
            return None
        row = BookingModel.objects.filter(idempotency_key=key, guest_id=guest_id).first()
        return booking_from_row(row) if row else None

    def idempotency_key_in_use(self, key: str) -> bool:
        return bool(key) and BookingModel.objects.filter(idempotency_key=key).exists()
