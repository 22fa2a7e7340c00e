"""Tests for the ledger and the reconciliation guard."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

from django.db import OperationalError, connection
from django.test import TestCase

from apps.bookings.application.reconciliation import ReconciliationConfig, ReconciliationGuard
from apps.bookings.domain.drafts import (
    BookingDraft,
    BookingKind,
    BookingWindow,
    ContactInfo,
    PaymentPath,
    SubjectRef,
)
from apps.bookings.domain.entities import Booking as BookingAggregate, BookingStatus
from apps.bookings.domain.events import BookingConfirmed
from apps.bookings.domain.errors import LedgerWriteFailed, ManualReconciliationRequired, PaymentVerificationFailed
from apps.bookings.domain.payment import PaymentProof, ProofSource
from apps.bookings.domain.pricing import PricingBreakdown
from apps.bookings.infrastructure.ledger import BookingLedger
from apps.bookings.infrastructure.repositories import ReconciliationQueue
from apps.bookings.models import Booking, ReconciliationCase
from shared.application.uow import DjangoUnitOfWork

ORDER_ID = "order_N1a2b3c4d5"
PAYMENT_ID = "pay_N9z8y7x6w5"
GOOD_SIGNATURE = "good-signature"


def make_draft(payment_path: PaymentPath = PaymentPath.GATEWAY) -> BookingDraft:
    return BookingDraft(
        subject=SubjectRef(kind=BookingKind.SITE_VISIT, subject_id="11", title="Palm Grove villa"),
        window=BookingWindow(start_date=date(2026, 5, 12), slot_time="10:00"),
        occupants=("Meera Iyer", "Karthik Iyer"),
        contact=ContactInfo(name="Meera Iyer", email="meera@example.com", phone="+919811111111"),
        payment_path=payment_path,
    )


PRICING = PricingBreakdown(base=30000, tax=0, fee=0, total=30000, currency="INR", units=1, unit_amount=30000, occupants=2)


def make_proof(**overrides) -> PaymentProof:
    values = {"order_id": ORDER_ID, "payment_id": PAYMENT_ID, "signature": GOOD_SIGNATURE, "amount": 30000}
    values.update(overrides)
    return PaymentProof(**values)


def verify_signature(order_id: str, payment_id: str, signature: str | None) -> bool:
    return signature == GOOD_SIGNATURE


class FlakyLedger(BookingLedger):
    """Fails the first ``failures`` creates with a transient database error."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def create(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("database is locked")
        return super().create(*args, **kwargs)


class BookingLedgerTests(TestCase):
    def test_pay_later_booking_waits_for_settlement(self) -> None:
        booking = BookingLedger().create(make_draft(PaymentPath.DEFERRED), PRICING)

        row = Booking.objects.get(pk=booking.id)
        self.assertEqual(row.status, BookingStatus.CONFIRMED_PENDING_SETTLEMENT.value)
        self.assertEqual(row.payment_method, "")
        self.assertIsNone(row.payment_id)
        self.assertTrue(row.booking_code.startswith("SV-"))

    def test_round_trip_keeps_contact_and_price(self) -> None:
        ledger = BookingLedger()
        created = ledger.create(make_draft(PaymentPath.DEFERRED), PRICING)

        loaded = ledger.get(created.id)

        self.assertEqual(loaded.draft.contact.phone, "+919811111111")
        self.assertEqual(loaded.draft.occupants, ("Meera Iyer", "Karthik Iyer"))
        self.assertEqual(loaded.pricing.total, 30000)

    def test_phone_is_not_stored_in_plain_text(self) -> None:
        booking = BookingLedger().create(make_draft(PaymentPath.DEFERRED), PRICING)

        with connection.cursor() as cursor:
            cursor.execute("SELECT contact_phone FROM bookings_booking WHERE id = %s", [booking.id.hex])
            stored = cursor.fetchone()[0]
        self.assertNotIn("9811111111", stored)

    def test_settle_confirms_pending_booking(self) -> None:
        ledger = BookingLedger()
        booking = ledger.create(make_draft(PaymentPath.DEFERRED), PRICING)

        booking.settle("CASH-0001")
        ledger.save(booking)

        row = Booking.objects.get(pk=booking.id)
        self.assertEqual(row.status, BookingStatus.CONFIRMED.value)
        self.assertEqual(row.settlement_reference, "CASH-0001")
        self.assertIsNotNone(row.settled_at)


class ReconciliationGuardTests(TestCase):
    def setUp(self) -> None:
        self.queue = ReconciliationQueue()
        self.config = ReconciliationConfig(max_attempts=3, backoff_seconds=0, max_backoff_seconds=0)
        self.sleep = MagicMock()

    def make_guard(self, ledger: BookingLedger | None = None) -> ReconciliationGuard:
        return ReconciliationGuard(
            ledger or BookingLedger(),
            self.queue,
            verify_signature,
            config=self.config,
            sleep=self.sleep,
        )

    def test_success_creates_confirmed_booking(self) -> None:
        booking = self.make_guard().commit_on_success(make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID)

        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(Booking.objects.get().payment_id, PAYMENT_ID)

    def test_same_payment_twice_yields_one_booking(self) -> None:
        guard = self.make_guard()

        first = guard.commit_on_success(make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID)
        second = guard.commit_on_success(make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID)

        self.assertEqual(first.id, second.id)
        self.assertEqual(Booking.objects.count(), 1)

    def test_transient_failure_is_retried(self) -> None:
        ledger = FlakyLedger(failures=1)

        booking = self.make_guard(ledger).commit_on_success(
            make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID
        )

        self.assertEqual(ledger.calls, 2)
        self.assertEqual(Booking.objects.count(), 1)
        self.assertEqual(Booking.objects.get().id, booking.id)
        self.assertFalse(ReconciliationCase.objects.exists())
        self.sleep.assert_called_once()

    def test_exhausted_retries_escalate(self) -> None:
        ledger = FlakyLedger(failures=10)

        with self.assertRaises(LedgerWriteFailed) as ctx:
            self.make_guard(ledger).commit_on_success(make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID)

        self.assertEqual(ledger.calls, 3)
        self.assertFalse(Booking.objects.exists())
        case = ReconciliationCase.objects.get()
        self.assertEqual(ctx.exception.case_id, case.id)
        self.assertEqual(case.reason, ReconciliationCase.Reason.LEDGER_WRITE_FAILED)
        self.assertEqual(case.payment_id, PAYMENT_ID)
        self.assertEqual(case.attempts, 3)
        self.assertEqual(case.draft["subject_id"], "11")
        self.assertIsInstance(ctx.exception, ManualReconciliationRequired)

    def test_bad_signature_is_escalated_without_booking(self) -> None:
        with self.assertRaises(PaymentVerificationFailed) as ctx:
            self.make_guard().commit_on_success(
                make_draft(), PRICING, make_proof(signature="forged"), expected_order_id=ORDER_ID
            )

        self.assertFalse(Booking.objects.exists())
        case = ReconciliationCase.objects.get()
        self.assertEqual(case.reason, ReconciliationCase.Reason.VERIFICATION_FAILED)
        self.assertEqual(ctx.exception.case_id, case.id)

    def test_unsigned_checkout_proof_is_rejected(self) -> None:
        with self.assertRaises(PaymentVerificationFailed):
            self.make_guard().commit_on_success(
                make_draft(), PRICING, make_proof(signature=None), expected_order_id=ORDER_ID
            )
        self.assertFalse(Booking.objects.exists())

    def test_amount_mismatch_is_rejected(self) -> None:
        with self.assertRaises(PaymentVerificationFailed):
            self.make_guard().commit_on_success(make_draft(), PRICING, make_proof(amount=100), expected_order_id=ORDER_ID)
        self.assertFalse(Booking.objects.exists())

    def test_proof_for_another_order_is_rejected(self) -> None:
        with self.assertRaises(PaymentVerificationFailed):
            self.make_guard().commit_on_success(
                make_draft(), PRICING, make_proof(order_id="order_other"), expected_order_id=ORDER_ID
            )

    def test_authenticated_webhook_proof_needs_no_signature(self) -> None:
        proof = make_proof(signature=None, source=ProofSource.WEBHOOK, verified=True)

        booking = self.make_guard().commit_on_success(make_draft(), PRICING, proof, expected_order_id=ORDER_ID)

        self.assertEqual(booking.payment_id, PAYMENT_ID)

    def test_queue_failure_is_logged_critical(self) -> None:
        queue = MagicMock()
        queue.escalate.side_effect = OperationalError("disk full")
        guard = ReconciliationGuard(
            FlakyLedger(failures=10), queue, verify_signature, config=self.config, sleep=self.sleep
        )

        with self.assertRaises(LedgerWriteFailed) as ctx:
            guard.commit_on_success(make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID)

        self.assertIsNone(ctx.exception.case_id)

    def test_retry_case_resolves_with_booking(self) -> None:
        with self.assertRaises(LedgerWriteFailed):
            self.make_guard(FlakyLedger(failures=10)).commit_on_success(
                make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID
            )
        case = ReconciliationCase.objects.get()

        booking = self.make_guard().retry_case(case)

        case.refresh_from_db()
        self.assertEqual(case.status, ReconciliationCase.Status.RESOLVED)
        self.assertEqual(case.booking_id, booking.id)
        self.assertEqual(Booking.objects.get().payment_id, PAYMENT_ID)

    def test_verification_cases_are_not_retried(self) -> None:
        with self.assertRaises(PaymentVerificationFailed):
            self.make_guard().commit_on_success(
                make_draft(), PRICING, make_proof(signature="forged"), expected_order_id=ORDER_ID
            )
        case = ReconciliationCase.objects.get()

        with self.assertRaises(ManualReconciliationRequired):
            self.make_guard().retry_case(case)
        self.assertFalse(Booking.objects.exists())

    def test_repeated_failures_share_one_open_case(self) -> None:
        guard = self.make_guard(FlakyLedger(failures=10))

        case_ids = set()
        for _ in range(2):
            with self.assertRaises(LedgerWriteFailed) as ctx:
                guard.commit_on_success(make_draft(), PRICING, make_proof(), expected_order_id=ORDER_ID)
            case_ids.add(ctx.exception.case_id)

        case = ReconciliationCase.objects.get()
        self.assertEqual(case_ids, {case.id})
        self.assertEqual(case.attempts, 6)

    def test_resolved_case_does_not_absorb_new_escalation(self) -> None:
        first = self.queue.escalate(ReconciliationCase.Reason.LATE_SUCCESS, make_proof())
        first.status = ReconciliationCase.Status.DISMISSED
        first.save(update_fields=["status"])

        second = self.queue.escalate(ReconciliationCase.Reason.LATE_SUCCESS, make_proof())

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(ReconciliationCase.objects.filter(status=ReconciliationCase.Status.OPEN).count(), 1)


class UnitOfWorkTests(TestCase):
    def test_events_are_published_after_commit(self) -> None:
        with patch("shared.application.message_bus.message_bus.publish_events") as publish:
            with self.captureOnCommitCallbacks(execute=True):
                with DjangoUnitOfWork() as uow:
                    booking = BookingAggregate.create(make_draft(PaymentPath.DEFERRED), PRICING, None)
                    uow.collect_events(booking)
                    publish.assert_not_called()

        (events,), _ = publish.call_args
        self.assertEqual([type(event) for event in events], [BookingConfirmed])
        self.assertEqual(booking.events, [])

    def test_events_are_dropped_on_rollback(self) -> None:
        with patch("shared.application.message_bus.message_bus.publish_events") as publish:
            with self.captureOnCommitCallbacks(execute=True):
                with self.assertRaises(RuntimeError):
                    with DjangoUnitOfWork() as uow:
                        uow.collect_events(BookingAggregate.create(make_draft(PaymentPath.DEFERRED), PRICING, None))
                        raise RuntimeError("ledger write failed")

        publish.assert_not_called()
