from django.db import migrations, models

DEVELOPER_PLANS = ["dev_12m"]


def mark_developer_plans(apps, schema_editor):
    RatePlan = apps.get_model("properties", "RatePlan")
    RatePlan.objects.filter(code__in=DEVELOPER_PLANS).update(audience="developers")


def unmark_developer_plans(apps, schema_editor):
    RatePlan = apps.get_model("properties", "RatePlan")
    RatePlan.objects.filter(code__in=DEVELOPER_PLANS).update(audience="everyone")


class Migration(migrations.Migration):

    dependencies = [
        ("properties", "0002_seed_rate_plans"),
    ]

    operations = [
        migrations.AddField(
            model_name="rateplan",
            name="audience",
            field=models.CharField(
                choices=[("everyone", "Everyone"), ("developers", "Developer and builder accounts")],
                default="everyone",
                max_length=16,
            ),
        ),
        migrations.AlterField(
            model_name="rateplan",
            name="currency",
            field=models.CharField(
                choices=[("INR", "INR"), ("KZT", "KZT"), ("USD", "USD"), ("EUR", "EUR")],
                default="INR",
                max_length=3,
            ),
        ),
        migrations.AddConstraint(
            model_name="rateplan",
            constraint=models.CheckConstraint(
                check=models.Q(("currency__in", ("INR", "KZT", "USD", "EUR"))),
                name="rateplan_supported_currency",
            ),
        ),
        migrations.RunPython(mark_developer_plans, unmark_developer_plans),
    ]
