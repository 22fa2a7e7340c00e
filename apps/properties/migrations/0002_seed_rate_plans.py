from decimal import Decimal

from django.db import migrations

SITE_VISIT_PLAN = {
    "code": "site-visit",
    "kind": "site_visit",
    "title": "Site visit",
    "is_default": True,
    "unit": "visit",
    "unit_amount": 30000,
    "min_occupants": 1,
    "max_occupants": 3,
    "included_occupants": 3,
    "horizon_days": 30,
    "lead_days": 0,
    "excluded_weekdays": [6],
    "time_slots": ["10:00", "11:00", "12:00", "14:00", "15:00", "16:00", "17:00"],
    "requires_occupant_names": True,
    "payment_paths": ["gateway", "deferred"],
}

SHORT_STAY_PLAN = {
    "code": "short-stay",
    "kind": "short_stay",
    "title": "Short stay",
    "is_default": True,
    "unit": "night",
    "unit_amount": 250000,
    "tax_percent": Decimal("18.00"),
    "flat_fee": 50000,
    "min_occupants": 1,
    "max_occupants": 4,
    "included_occupants": 2,
    "extra_occupant_amount": 50000,
    "min_units": 1,
    "max_units": 30,
    "horizon_days": 180,
    "lead_days": 1,
    "payment_paths": ["gateway"],
}

SUBSCRIPTION_PLANS = [
    ("ind_1m", "Individual, 1 month", 10000, 1, 1),
    ("ind_6m", "Individual, 6 months", 40000, 6, 1),
    ("ind_12m", "Individual, 12 months", 70000, 12, 1),
    ("dev_12m", "Developer, 12 months", 2000000, 12, 20),
]


def seed_rate_plans(apps, schema_editor):
    RatePlan = apps.get_model("properties", "RatePlan")

    for defaults in (SITE_VISIT_PLAN, SHORT_STAY_PLAN):
        values = dict(defaults)
        RatePlan.objects.get_or_create(code=values.pop("code"), defaults=values)

    for code, title, amount, months, listings in SUBSCRIPTION_PLANS:
        RatePlan.objects.get_or_create(
            code=code,
            defaults={
                "kind": "subscription",
                "title": title,
                "unit": "plan",
                "unit_amount": amount,
                "max_occupants": 1,
                "requires_occupant_names": False,
                "horizon_days": 0,
                "payment_paths": ["gateway"],
                "duration_months": months,
                "listing_allowance": listings,
            },
        )


def unseed_rate_plans(apps, schema_editor):
    RatePlan = apps.get_model("properties", "RatePlan")
    codes = [SITE_VISIT_PLAN["code"], SHORT_STAY_PLAN["code"]] + [plan[0] for plan in SUBSCRIPTION_PLANS]
    RatePlan.objects.filter(code__in=codes).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("properties", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_rate_plans, unseed_rate_plans),
    ]
