# Generated manually for Spending App - snapshots and reconciled records

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("accounts", "0001_initial"),
        ("billing", "0001_initial"),
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SpendSnapshot",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("observation_date", models.DateField()),
                ("cumulative_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("observed_at", models.DateTimeField()),
                (
                    "source",
                    models.CharField(
                        choices=[("manual", "Manual"), ("import", "Import")], default="manual", max_length=10
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="snapshots",
                        to="accounts.account",
                    ),
                ),
                (
                    "billing_entity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="snapshots",
                        to="billing.billingentity",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="snapshots",
                        to="customers.customer",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Spend Snapshot",
                "verbose_name_plural": "Spend Snapshots",
                "db_table": "spend_snapshot",
                "ordering": ("account", "observation_date", "observed_at", "id"),
                "indexes": [
                    models.Index(
                        fields=["account", "observation_date", "observed_at"], name="spend_snaps_account_3e1a90_idx"
                    ),
                    models.Index(fields=["observation_date"], name="spend_snaps_observa_7b2c15_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SpendRecord",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("observation_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("period_start", models.DateTimeField()),
                ("period_end", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="spend_records",
                        to="accounts.account",
                    ),
                ),
                (
                    "billing_entity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="spend_records",
                        to="billing.billingentity",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="spend_records",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "Spend Record",
                "verbose_name_plural": "Spend Records",
                "db_table": "spend_record",
                "ordering": ("account", "observation_date", "period_end"),
                "indexes": [
                    models.Index(fields=["observation_date"], name="spend_recor_observa_0d6f42_idx"),
                    models.Index(fields=["billing_entity", "observation_date"], name="spend_recor_billing_5c8e21_idx"),
                    models.Index(fields=["customer", "observation_date"], name="spend_recor_custome_a41b73_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("account", "observation_date", "period_end"),
                        name="spend_record_unique_period_end",
                    ),
                ],
            },
        ),
    ]
