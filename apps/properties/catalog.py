"""Rate plan lookup for the booking flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from apps.bookings.domain.drafts import BookingKind
from apps.bookings.domain.errors import ValidationError
from apps.bookings.domain.intent import BookingPolicy
from apps.bookings.domain.pricing import RateCard

from .models import Property, RatePlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPlan:
    plan: RatePlan
    title: str
    rate_card: RateCard
    policy: BookingPolicy


def resolve_plan(kind: str | BookingKind, subject_id: str) -> ResolvedPlan:
    """
    Find the rate plan for a subject.

    Lookup order: the active plan bound to the property ``subject_id``,
    then the active plan whose code is ``subject_id``, then the default
    plan of the kind. A numeric ``subject_id`` names a property and must
    point at a published one; only other subjects fall back to the default
    site visit plan. Raises ValidationError when none applies.
    """
    try:
        kind = BookingKind(kind)
    except ValueError:
        raise ValidationError.single("kind", f"Unknown booking kind '{kind}'.")

    subject_id = str(subject_id or "").strip()
    if not subject_id:
        raise ValidationError.single("subject_id", "This field is required.")

    plans = RatePlan.objects.filter(kind=kind.value, is_active=True).select_related("property")

    prop = None
    if subject_id.isdigit():
        prop = Property.objects.filter(pk=int(subject_id), status=Property.Status.ACTIVE).first()

    plan = None
    if prop is not None:
        plan = plans.filter(property=prop).first()
    if plan is None:
        plan = plans.filter(code=subject_id).first()
    if plan is None and subject_id.isdigit() and prop is None:
        logger.info("Property %s is missing or not published", subject_id)
        raise ValidationError.single("subject_id", "Property not found.")
    if plan is None and (prop is not None or kind == BookingKind.SITE_VISIT):
        plan = plans.filter(property__isnull=True, is_default=True).first()

    if plan is None:
        logger.info("No rate plan for %s subject %s", kind.value, subject_id)
        raise ValidationError.single("subject_id", "This subject cannot be booked.")

    title = prop.title if prop is not None else plan.title
    return ResolvedPlan(plan=plan, title=title, rate_card=plan.to_rate_card(), policy=plan.to_policy())
