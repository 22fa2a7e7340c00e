"""API views for the booking domain."""

from __future__ import annotations

import logging

from rest_framework import exceptions, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .domain.drafts import BookingKind
from .domain.errors import (
    BookingError,
    BookingNotFound,
    GatewayUnavailable,
    InvalidTransition,
    ManualReconciliationRequired,
    PaymentCancelled,
    PaymentFailed,
    PaymentSessionNotFound,
    PaymentVerificationFailed,
    ValidationError,
)
from .domain.payment import PaymentProof, ProofSource
from .infrastructure.ledger import BookingLedger
from .models import Booking, PaymentSession
from .serializers import (
    BookingRequestSerializer,
    BookingSerializer,
    CancelSerializer,
    OrderReferenceSerializer,
    PaymentProofSerializer,
    PaymentSessionSerializer,
    SettleSerializer,
)
from .services import build_orchestrator, prepare_booking

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


def domain_error_response(exc: BookingError) -> Response:
    """Map booking errors to HTTP responses. Escalated payments are never reported as success."""
    body = {"detail": str(exc), "code": exc.code}
    case_id = getattr(exc, "case_id", None)
    if case_id:
        body["case_id"] = str(case_id)

    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, GatewayUnavailable):
        return Response(body, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(exc, ManualReconciliationRequired):
        body["status"] = "manual_reconciliation"
        return Response(body, status=status.HTTP_202_ACCEPTED)
    if isinstance(exc, PaymentVerificationFailed):
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, (PaymentSessionNotFound, BookingNotFound)):
        return Response(body, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, (InvalidTransition, PaymentCancelled, PaymentFailed)):
        return Response(body, status=status.HTTP_409_CONFLICT)
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def booking_data(booking_id) -> dict:
    return BookingSerializer(Booking.objects.get(pk=booking_id)).data


def session_data(session_id) -> dict:
    return PaymentSessionSerializer(PaymentSession.objects.get(pk=session_id)).data


class IsBookingStakeholder(permissions.BasePermission):
    """Гость, оформивший бронирование, и администраторы."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.guest_id == user.id


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Бронирования: визиты на объект, краткосрочная аренда и подписки.

    Checkout endpoints (create, verify-payment, cancel-payment,
    payment-failed) are open to anonymous visitors; the gateway order id
    they carry is issued by the server and every success is verified.
    """

    queryset = Booking.objects.select_related("guest").all()
    serializer_class = BookingSerializer
    lookup_value_regex = "[0-9a-f-]{32,36}"
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]

    def get_permissions(self):  # type: ignore
        if self.action in {"create", "quote", "verify_payment", "cancel_payment", "payment_failed"}:
            return [permissions.AllowAny()]
        if self.action == "settle":
            return [permissions.IsAdminUser()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(guest=user)

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, BookingError):
            logger.info("Booking request rejected: %s (%s)", exc.code, exc)
            return domain_error_response(exc)
        return super().handle_exception(exc)

    def _prepare(self, request):
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        raw = dict(serializer.validated_data)
        if raw.get("kind") == BookingKind.SUBSCRIPTION.value and not request.user.is_authenticated:
            raise exceptions.NotAuthenticated("Sign in to buy a subscription.")
        return prepare_booking(raw, user=request.user)

    @action(detail=False, methods=["post"], url_path="quote")
    def quote(self, request):  # type: ignore
        draft, pricing = self._prepare(request)
        return Response(
            {
                "kind": draft.kind.value,
                "subject_id": draft.subject.subject_id,
                "subject_title": draft.subject.title,
                "payment_path": draft.payment_path.value,
                "pricing": pricing.to_dict(),
            }
        )

    def create(self, request, *args, **kwargs):  # type: ignore
        draft, pricing = self._prepare(request)
        idempotency_key = (request.headers.get(IDEMPOTENCY_HEADER) or "").strip()[:128] or None
        guest_id = request.user.id if request.user.is_authenticated else None

        result = build_orchestrator().start(draft, pricing, guest_id=guest_id, idempotency_key=idempotency_key)

        if result.session is None:
            return Response(
                {"payment_path": "deferred", "booking": booking_data(result.booking.id)},
                status=status.HTTP_201_CREATED,
            )
        body = {
            "payment_path": "gateway",
            "session": session_data(result.session.id),
            "checkout": result.checkout,
            "pricing": pricing.to_dict(),
        }
        if result.booking is not None:
            body["booking"] = booking_data(result.booking.id)
        return Response(body, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path="verify-payment")
    def verify_payment(self, request):  # type: ignore
        serializer = PaymentProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        proof = PaymentProof(
            order_id=data["order_id"],
            payment_id=data["payment_id"],
            signature=data.get("signature") or None,
            amount=data.get("amount"),
            source=ProofSource.CHECKOUT,
        )
        booking = build_orchestrator().confirm(data["order_id"], proof)
        return Response({"booking": booking_data(booking.id)}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="cancel-payment")
    def cancel_payment(self, request):  # type: ignore
        serializer = OrderReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = build_orchestrator().dismiss(serializer.validated_data["order_id"])
        return Response({"session": session_data(session.id)}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="payment-failed")
    def payment_failed(self, request):  # type: ignore
        serializer = OrderReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = build_orchestrator().fail(
            serializer.validated_data["order_id"],
            serializer.validated_data.get("reason", ""),
        )
        return Response({"session": session_data(session.id)}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def settle(self, request, pk=None):  # type: ignore
        """Оплата на месте для брони «оплатить позже»."""
        row: Booking = self.get_object()  # type: ignore
        serializer = SettleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ledger = BookingLedger()
        booking = ledger.get(row.pk)
        booking.settle(serializer.validated_data.get("reference", ""))
        ledger.save(booking)
        return Response(booking_data(booking.id), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        row: Booking = self.get_object()  # type: ignore
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ledger = BookingLedger()
        booking = ledger.get(row.pk)
        booking.cancel(serializer.validated_data.get("reason", ""))
        ledger.save(booking)
        return Response(booking_data(booking.id), status=status.HTTP_200_OK)
