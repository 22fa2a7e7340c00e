"""
Pricing

PricingEngine turns a draft and a rate card into a PricingBreakdown. It
is a pure function of its inputs: no clock, no database, no settings.
The rate card comes from the subject's RatePlan (see
apps.properties.models.RatePlan.to_rate_card).
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from shared.domain.value_objects import Money

from .drafts import BookingDraft
from .errors import ValidationError


class PricingUnit(str, Enum):
    NIGHT = 'night'
    VISIT = 'visit'
    PLAN = 'plan'


@dataclass(frozen=True)
class RateCard:
    """
    Prices and bounds for one bookable subject.

    Amounts are in minor currency units; percentages are applied to the
    base amount only. `max_units=None` leaves the duration unbounded.
    """
    unit: PricingUnit
    unit_amount: int
    currency: str = 'INR'
    tax_percent: Decimal = Decimal('0')
    fee_percent: Decimal = Decimal('0')
    flat_fee: int = 0
    included_occupants: int = 1
    extra_occupant_amount: int = 0
    min_occupants: int = 1
    max_occupants: int = 1
    min_units: int = 1
    max_units: int | None = None


@dataclass(frozen=True)
class PricingBreakdown:
    base: int
    tax: int
    fee: int
    total: int
    currency: str
    units: int = 1
    unit_amount: int = 0
    occupants: int = 1

    @property
    def total_money(self) -> Money:
        return Money(self.total, self.currency)

    def to_dict(self) -> dict:
        return {
            'base': self.base,
            'tax': self.tax,
            'fee': self.fee,
            'total': self.total,
            'currency': self.currency,
            'units': self.units,
            'unit_amount': self.unit_amount,
            'occupants': self.occupants,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingBreakdown':
        return cls(
            base=int(data['base']),
            tax=int(data['tax']),
            fee=int(data['fee']),
            total=int(data['total']),
            currency=data['currency'],
            units=int(data.get('units', 1)),
            unit_amount=int(data.get('unit_amount', 0)),
            occupants=int(data.get('occupants', 1)),
        )


class PricingEngine:
    """
    Deterministic price computation

    Usage:
        breakdown = PricingEngine(plan.to_rate_card()).compute(draft)

    Out-of-range occupancy or duration is rejected with ValidationError,
    never clamped into range.
    """

    def __init__(self, rate_card: RateCard):
        self.rate_card = rate_card

    def units_for(self, draft: BookingDraft) -> int:
        if self.rate_card.unit == PricingUnit.NIGHT:
            return draft.window.nights
        return 1

    def compute(self, draft: BookingDraft) -> PricingBreakdown:
        card = self.rate_card
        units = self.units_for(draft)
        occupants = draft.occupant_count

        errors = {}
        if not card.min_occupants <= occupants <= card.max_occupants:
            errors['occupant_count'] = [
                f"Occupant count must be between {card.min_occupants} and {card.max_occupants}, got {occupants}"
            ]
        if units < card.min_units or (card.max_units is not None and units > card.max_units):
            field_name = 'end_date' if card.unit == PricingUnit.NIGHT else 'units'
            upper = card.max_units if card.max_units is not None else 'unlimited'
            errors[field_name] = [f"Duration must be between {card.min_units} and {upper} {card.unit.value}s, got {units}"]
        if errors:
            raise ValidationError(errors)

        extra_occupants = max(occupants - card.included_occupants, 0)
        per_unit = Money(card.unit_amount, card.currency) + Money(
            extra_occupants * card.extra_occupant_amount, card.currency
        )
        base = per_unit * units
        tax = base.percent(card.tax_percent)
        fee = base.percent(card.fee_percent) + Money(card.flat_fee, card.currency)
        total = base + tax + fee

        return PricingBreakdown(
            base=base.amount,
            tax=tax.amount,
            fee=fee.amount,
            total=total.amount,
            currency=card.currency,
            units=units,
            unit_amount=card.unit_amount,
            occupants=occupants,
        )
