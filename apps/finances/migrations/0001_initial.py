from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event",
                    models.CharField(
                        choices=[
                            ("order_created", "Order created"),
                            ("checkout_callback", "Checkout callback"),
                            ("checkout_dismissed", "Checkout dismissed"),
                            ("payment_failed", "Payment failed"),
                            ("webhook", "Webhook"),
                        ],
                        max_length=50,
                    ),
                ),
                ("order_id", models.CharField(blank=True, max_length=64)),
                ("payment_id", models.CharField(blank=True, max_length=64)),
                ("amount", models.PositiveIntegerField(blank=True, null=True)),
                ("currency", models.CharField(blank=True, max_length=3)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("status", models.CharField(blank=True, max_length=32)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Payment transaction",
                "verbose_name_plural": "Payment transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order_id"], name="paytx_order_idx"),
                    models.Index(fields=["payment_id"], name="paytx_payment_idx"),
                ],
            },
        ),
    ]
