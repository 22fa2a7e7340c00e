from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="reconciliationcase",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status", "open"), models.Q(("payment_id", ""), _negated=True)),
                fields=("reason", "payment_id"),
                name="recon_one_open_case_per_payment",
            ),
        ),
    ]
