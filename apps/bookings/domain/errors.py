"""
Booking Domain Errors

The taxonomy of failures in the reservation and settlement flow. Views
translate them into HTTP responses in exactly one place
(apps.bookings.views.domain_error_response).
"""

from __future__ import annotations

from typing import Dict, List
from uuid import UUID


class BookingError(Exception):
    """Base class for everything the booking core raises on purpose."""

    code = "booking_error"


class ValidationError(BookingError):
    """
    Bad or missing input, or a request outside the booking policy.

    `errors` maps a field name to every message for that field so a
    client can highlight all of them at once.
    """

    code = "validation_error"

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = {field: list(messages) for field, messages in errors.items()}
        summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in self.errors.items())
        super().__init__(summary or "Invalid booking request")

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]})

    @property
    def fields(self) -> List[str]:
        return list(self.errors)


class GatewayUnavailable(BookingError):
    """The payment gateway could not be reached or refused to open an order."""

    code = "gateway_unavailable"


class PaymentCancelled(BookingError):
    """The customer dismissed the gateway checkout before paying."""

    code = "payment_cancelled"


class PaymentFailed(BookingError):
    """The gateway reported an explicit payment failure."""

    code = "payment_failed"


class PaymentVerificationFailed(BookingError):
    """A success proof was malformed, unsigned or carried a bad signature."""

    code = "payment_verification_failed"

    def __init__(self, message: str, case_id: UUID | None = None):
        super().__init__(message)
        self.case_id = case_id


class ManualReconciliationRequired(BookingError):
    """
    Money may have been collected but no booking could be committed
    automatically. The case sits in the reconciliation queue.
    """

    code = "manual_reconciliation_required"

    def __init__(self, message: str, case_id: UUID | None = None):
        super().__init__(message)
        self.case_id = case_id


class LedgerWriteFailed(ManualReconciliationRequired):
    """The ledger write kept failing after a confirmed payment."""

    code = "ledger_write_failed"


class NotificationFailed(BookingError):
    """Email or SMS delivery failed. Logged only, never raised to callers."""

    code = "notification_failed"


class InvalidTransition(BookingError):
    """A state change that the booking or payment state machine forbids."""

    code = "invalid_transition"


class PaymentSessionNotFound(BookingError):
    """No checkout session is known for the given gateway order id."""

    code = "payment_session_not_found"


class BookingNotFound(BookingError):
    code = "booking_not_found"
