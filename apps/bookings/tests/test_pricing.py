"""Tests for the pricing engine."""

from datetime import date
from decimal import Decimal

import pytest

from apps.bookings.domain.drafts import (
    BookingDraft,
    BookingKind,
    BookingWindow,
    ContactInfo,
    PaymentPath,
    SubjectRef,
)
from apps.bookings.domain.errors import ValidationError
from apps.bookings.domain.pricing import PricingBreakdown, PricingEngine, PricingUnit, RateCard


def make_stay(nights: int = 1, occupants: int = 1) -> BookingDraft:
    start = date(2026, 3, 10)
    return BookingDraft(
        subject=SubjectRef(kind=BookingKind.SHORT_STAY, subject_id="42", title="Lake house"),
        window=BookingWindow(start_date=start, end_date=date(2026, 3, 10 + nights)),
        occupants=tuple(f"Guest {i}" for i in range(1, occupants + 1)),
        contact=ContactInfo(name="Guest 1", email="guest@example.com"),
        payment_path=PaymentPath.GATEWAY,
    )


def make_visit(occupants: int = 1) -> BookingDraft:
    return BookingDraft(
        subject=SubjectRef(kind=BookingKind.SITE_VISIT, subject_id="7"),
        window=BookingWindow(start_date=date(2026, 3, 10), slot_time="10:00"),
        occupants=tuple(f"Visitor {i}" for i in range(1, occupants + 1)),
        contact=ContactInfo(name="Visitor 1", phone="+919800000000"),
        payment_path=PaymentPath.DEFERRED,
    )


STAY_CARD = RateCard(
    unit=PricingUnit.NIGHT,
    unit_amount=1000,
    tax_percent=Decimal("18"),
    max_occupants=4,
    max_units=14,
)


def test_one_night_with_gst():
    breakdown = PricingEngine(STAY_CARD).compute(make_stay())

    assert (breakdown.base, breakdown.tax, breakdown.fee, breakdown.total) == (1000, 180, 0, 1180)
    assert breakdown.currency == "INR"
    assert breakdown.units == 1


def test_total_is_base_plus_tax_plus_fee():
    card = RateCard(
        unit=PricingUnit.NIGHT,
        unit_amount=250000,
        tax_percent=Decimal("18"),
        fee_percent=Decimal("2.5"),
        flat_fee=50000,
        included_occupants=2,
        extra_occupant_amount=50000,
        max_occupants=4,
    )
    breakdown = PricingEngine(card).compute(make_stay(nights=3, occupants=3))

    assert breakdown.base == 3 * (250000 + 50000)
    assert breakdown.tax == 162000
    assert breakdown.fee == 22500 + 50000
    assert breakdown.total == breakdown.base + breakdown.tax + breakdown.fee


def test_percentages_round_half_up():
    card = RateCard(unit=PricingUnit.VISIT, unit_amount=25, tax_percent=Decimal("18"), max_occupants=3)
    # 18 % of 25 is 4.5
    assert PricingEngine(card).compute(make_visit()).tax == 5


def test_same_inputs_give_same_breakdown():
    engine = PricingEngine(STAY_CARD)
    draft = make_stay(nights=2, occupants=2)

    assert engine.compute(draft) == engine.compute(draft)


def test_visit_is_priced_once_per_visit():
    card = RateCard(unit=PricingUnit.VISIT, unit_amount=30000, max_occupants=3, included_occupants=3)
    breakdown = PricingEngine(card).compute(make_visit(occupants=3))

    assert breakdown.units == 1
    assert breakdown.total == 30000


def test_rejects_too_many_occupants_instead_of_clamping():
    card = RateCard(unit=PricingUnit.VISIT, unit_amount=30000, max_occupants=3)

    with pytest.raises(ValidationError) as exc_info:
        PricingEngine(card).compute(make_visit(occupants=4))

    assert "occupant_count" in exc_info.value.errors


def test_rejects_zero_occupants_instead_of_clamping():
    card = RateCard(unit=PricingUnit.VISIT, unit_amount=30000, max_occupants=3)

    with pytest.raises(ValidationError) as exc_info:
        PricingEngine(card).compute(make_visit(occupants=0))

    assert "occupant_count" in exc_info.value.errors


def test_rejects_stay_longer_than_allowed():
    with pytest.raises(ValidationError) as exc_info:
        PricingEngine(STAY_CARD).compute(make_stay(nights=15))

    assert "end_date" in exc_info.value.errors


def test_breakdown_survives_session_storage():
    breakdown = PricingEngine(STAY_CARD).compute(make_stay(nights=2))

    assert PricingBreakdown.from_dict(breakdown.to_dict()) == breakdown
