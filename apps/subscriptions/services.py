"""Subscription activation."""

from __future__ import annotations

import calendar
import logging
from datetime import datetime

from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.domain.drafts import BookingKind
from apps.bookings.domain.entities import Booking, BookingStatus
from apps.bookings.domain.events import BookingConfirmed, BookingSettled
from apps.bookings.infrastructure.ledger import BookingLedger
from apps.properties.models import RatePlan

from .models import UserSubscription

logger = logging.getLogger(__name__)


def add_months(moment: datetime, months: int) -> datetime:
    """Same day ``months`` later, clamped to the last day of a shorter month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def current_expiry(user_id: int, now: datetime | None = None) -> datetime | None:
    now = now or timezone.now()
    latest = (
        UserSubscription.objects.filter(user_id=user_id, status=UserSubscription.Status.ACTIVE, expires_at__gt=now)
        .order_by("-expires_at")
        .first()
    )
    return latest.expires_at if latest else None


def current_subscription(user_id: int, now: datetime | None = None) -> UserSubscription | None:
    """The subscription in effect right now; later extensions are not counted yet."""
    now = now or timezone.now()
    return (
        UserSubscription.objects.filter(
            user_id=user_id,
            status=UserSubscription.Status.ACTIVE,
            starts_at__lte=now,
            expires_at__gt=now,
        )
        .order_by("expires_at")
        .first()
    )


def subscription_status(user_id: int, now: datetime | None = None) -> dict:
    now = now or timezone.now()
    current = current_subscription(user_id, now)
    if current is None:
        return {
            "is_subscribed": False,
            "plan_code": None,
            "plan_title": None,
            "expires_at": None,
            "listing_allowance": 0,
            "listings_used": 0,
            "listings_left": 0,
        }
    return {
        "is_subscribed": True,
        "plan_code": current.plan_code,
        "plan_title": current.plan_title,
        "expires_at": current_expiry(user_id, now),
        "listing_allowance": current.listing_allowance,
        "listings_used": current.listings_used,
        "listings_left": current.listings_left,
    }


def consume_listing(user_id: int, now: datetime | None = None) -> UserSubscription | None:
    """
    Use one listing from the user's active subscriptions.

    Returns the subscription charged, or None when no listing is left.
    """
    now = now or timezone.now()
    candidates = UserSubscription.objects.filter(
        user_id=user_id,
        status=UserSubscription.Status.ACTIVE,
        starts_at__lte=now,
        expires_at__gt=now,
        listings_used__lt=F("listing_allowance"),
    ).order_by("expires_at")
    for subscription in candidates:
        charged = UserSubscription.objects.filter(
            pk=subscription.pk,
            listings_used__lt=F("listing_allowance"),
        ).update(listings_used=F("listings_used") + 1)
        if charged:
            subscription.refresh_from_db(fields=["listings_used"])
            logger.info(
                f"Listing charged to subscription {subscription.plan_code} of user {user_id}: "
                f"{subscription.listings_used}/{subscription.listing_allowance}"
            )
            return subscription
    return None


def activate_subscription(booking: Booking, now: datetime | None = None) -> UserSubscription | None:
    """
    Grant the listing plan bought with ``booking``.

    The new period starts at the current expiry when the user still has an
    active subscription, otherwise now. Activating the same booking twice
    returns the existing row.
    """
    if booking.draft.kind != BookingKind.SUBSCRIPTION or booking.status != BookingStatus.CONFIRMED:
        return None
    if booking.guest_id is None:
        logger.warning(f"Subscription booking {booking.booking_code} has no user, nothing to activate")
        return None

    existing = UserSubscription.objects.filter(booking_id=booking.id).first()
    if existing is not None:
        return existing

    plan = RatePlan.objects.filter(code=booking.draft.subject.subject_id, kind=RatePlan.Kind.SUBSCRIPTION).first()
    if plan is None or not plan.duration_months:
        logger.error(f"Subscription booking {booking.booking_code} refers to unknown plan {booking.draft.subject.subject_id}")
        return None

    now = now or timezone.now()
    with transaction.atomic():
        starts_at = current_expiry(booking.guest_id, now) or now
        subscription, created = UserSubscription.objects.get_or_create(
            booking_id=booking.id,
            defaults={
                "user_id": booking.guest_id,
                "plan_code": plan.code,
                "plan_title": plan.title,
                "amount": booking.pricing.total,
                "currency": booking.pricing.currency,
                "listing_allowance": plan.listing_allowance or 1,
                "starts_at": starts_at,
                "expires_at": add_months(starts_at, plan.duration_months),
            },
        )
    if created:
        logger.info(
            f"Subscription {plan.code} activated for user {booking.guest_id} until {subscription.expires_at:%Y-%m-%d}"
        )
    return subscription


def expire_subscriptions(now: datetime | None = None) -> int:
    now = now or timezone.now()
    return UserSubscription.objects.filter(
        status=UserSubscription.Status.ACTIVE,
        expires_at__lte=now,
    ).update(status=UserSubscription.Status.EXPIRED)


def on_booking_confirmed(event: BookingConfirmed):
    if event.kind != BookingKind.SUBSCRIPTION.value or event.status != BookingStatus.CONFIRMED.value:
        return
    activate_subscription(BookingLedger().get(event.booking_id))


def on_booking_settled(event: BookingSettled):
    if event.kind != BookingKind.SUBSCRIPTION.value:
        return
    activate_subscription(BookingLedger().get(event.booking_id))
