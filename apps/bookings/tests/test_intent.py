"""Tests for BookingIntentBuilder."""

from datetime import date, timedelta

import pytest

from apps.bookings.domain.drafts import BookingKind, PaymentPath
from apps.bookings.domain.errors import ValidationError
from apps.bookings.domain.intent import BookingIntentBuilder, BookingPolicy

# A Wednesday
TODAY = date(2026, 3, 4)

VISIT_POLICY = BookingPolicy(
    kind=BookingKind.SITE_VISIT,
    horizon_days=30,
    excluded_weekdays=frozenset({6}),
    time_slots=("10:00", "11:00", "16:00"),
    max_occupants=3,
    payment_paths=(PaymentPath.GATEWAY, PaymentPath.DEFERRED),
)

STAY_POLICY = BookingPolicy(
    kind=BookingKind.SHORT_STAY,
    horizon_days=180,
    lead_days=1,
    max_occupants=4,
    min_units=2,
    max_units=14,
    requires_occupant_names=False,
)


def visit_request(**overrides) -> dict:
    raw = {
        "kind": "site_visit",
        "subject_id": "17",
        "start_date": "2026-03-06",
        "slot_time": "11:00",
        "occupant_count": 2,
        "occupants": ["Asha Rao", "Vikram Rao"],
        "contact": {"name": "Asha Rao", "email": "Asha@Example.com", "phone": "+91 98000 00000"},
        "payment_path": "deferred",
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def builder():
    return BookingIntentBuilder(today=TODAY)


def test_builds_visit_draft(builder):
    draft = builder.build(visit_request(), VISIT_POLICY)

    assert draft.kind == BookingKind.SITE_VISIT
    assert draft.subject.subject_id == "17"
    assert draft.window.start_date == date(2026, 3, 6)
    assert draft.window.slot_time == "11:00"
    assert draft.occupants == ("Asha Rao", "Vikram Rao")
    assert draft.contact.email == "asha@example.com"
    assert draft.payment_path == PaymentPath.DEFERRED


def test_four_visitors_exceed_limit_of_three(builder):
    raw = visit_request(occupant_count=4, occupants=["A", "B", "C", "D"])

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, VISIT_POLICY)

    assert "occupant_count" in exc_info.value.errors


@pytest.mark.parametrize("count", [0, "0"])
def test_zero_visitors_is_rejected(builder, count):
    raw = visit_request(occupant_count=count, occupants=[])

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, VISIT_POLICY)

    assert "occupant_count" in exc_info.value.errors


def test_contact_that_is_not_an_object_is_a_validation_error(builder):
    raw = visit_request(occupant_count=None, occupants=[], contact="someone")

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, VISIT_POLICY)

    assert "contact" in exc_info.value.errors
    assert "occupants.0" in exc_info.value.errors


def test_sunday_is_rejected(builder):
    # 2026-03-08 is a Sunday
    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(start_date="2026-03-08"), VISIT_POLICY)

    assert exc_info.value.errors["start_date"] == ["Bookings are not available on Sundays."]


def test_date_beyond_horizon_is_rejected(builder):
    too_late = (TODAY + timedelta(days=31)).isoformat()

    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(start_date=too_late), VISIT_POLICY)

    assert "start_date" in exc_info.value.errors


def test_past_date_is_rejected(builder):
    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(start_date="2026-03-03"), VISIT_POLICY)

    assert "start_date" in exc_info.value.errors


def test_every_visitor_needs_a_name(builder):
    raw = visit_request(occupant_count=3, occupants=["Asha Rao", "", "  "])

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, VISIT_POLICY)

    assert set(exc_info.value.errors) == {"occupants.1", "occupants.2"}


def test_slot_must_be_offered(builder):
    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(slot_time="13:00"), VISIT_POLICY)

    assert "slot_time" in exc_info.value.errors


def test_all_errors_are_reported_together(builder):
    raw = visit_request(
        subject_id="",
        start_date="2026-03-08",
        slot_time="",
        occupant_count=5,
        contact={"name": "", "email": "not-an-email"},
        payment_path="cash",
    )

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, VISIT_POLICY)

    assert {
        "subject_id",
        "start_date",
        "slot_time",
        "occupant_count",
        "contact.name",
        "contact.email",
        "payment_path",
    } <= set(exc_info.value.errors)


def test_fail_fast_policy_stops_at_first_error(builder):
    policy = BookingPolicy(kind=BookingKind.SITE_VISIT, max_occupants=3, fail_fast=True)
    raw = visit_request(subject_id="", occupant_count=5)

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, policy)

    assert exc_info.value.fields == ["subject_id"]


def test_contact_needs_email_or_phone(builder):
    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(contact={"name": "Asha Rao"}), VISIT_POLICY)

    assert "contact.channel" in exc_info.value.errors


def test_payment_path_defaults_to_first_allowed(builder):
    raw = visit_request()
    del raw["payment_path"]

    assert builder.build(raw, VISIT_POLICY).payment_path == PaymentPath.GATEWAY


def test_lead_defaults_to_contact_name(builder):
    raw = visit_request(occupants=[], occupant_count=None)

    assert builder.build(raw, VISIT_POLICY).occupants == ("Asha Rao",)


def test_blackout_date_is_rejected(builder):
    policy = BookingPolicy(
        kind=BookingKind.SITE_VISIT,
        max_occupants=3,
        blackout_dates=frozenset({date(2026, 3, 6)}),
    )

    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(), policy)

    assert exc_info.value.errors["start_date"] == ["Not available on 2026-03-06."]


def test_stay_needs_checkout_after_checkin(builder):
    raw = {
        "kind": "short_stay",
        "subject_id": "3",
        "start_date": "2026-03-10",
        "end_date": "2026-03-10",
        "occupant_count": 2,
        "contact": {"name": "Asha Rao", "phone": "+919800000000"},
    }

    with pytest.raises(ValidationError) as exc_info:
        builder.build(raw, STAY_POLICY)

    assert "end_date" in exc_info.value.errors


def test_stay_without_companion_names(builder):
    raw = {
        "kind": "short_stay",
        "subject_id": "3",
        "start_date": "2026-03-10",
        "end_date": "2026-03-13",
        "occupant_count": 3,
        "occupants": ["Asha Rao"],
        "contact": {"name": "Asha Rao", "phone": "+919800000000"},
        "payment_path": "gateway",
    }
    draft = builder.build(raw, STAY_POLICY)

    assert draft.window.nights == 3
    assert draft.occupant_count == 3
    assert draft.occupants[0] == "Asha Rao"


def test_subscription_starts_today(builder):
    policy = BookingPolicy(kind=BookingKind.SUBSCRIPTION, horizon_days=0, requires_occupant_names=False)
    raw = {"kind": "subscription", "subject_id": "ind_6m", "contact": {"name": "Asha", "email": "a@example.com"}}

    draft = builder.build(raw, policy)

    assert draft.window.start_date == TODAY
    assert draft.occupants == ("Asha",)


def test_kind_must_match_subject(builder):
    with pytest.raises(ValidationError) as exc_info:
        builder.build(visit_request(kind="short_stay"), VISIT_POLICY)

    assert "kind" in exc_info.value.errors
