# Generated manually for Accounts App - batches, accounts and assignment history

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

REASON_CHOICES = [
    ("initial", "Initial"),
    ("reassign", "Reassign"),
    ("migration", "Migration"),
    ("manual_unlink", "Manual Unlink"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("billing", "0001_initial"),
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Batch",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                (
                    "external_id",
                    models.CharField(
                        help_text="Manager account id on the ad platform", max_length=64, unique=True
                    ),
                ),
                ("timezone", models.CharField(help_text='Timezone of the accounts, e.g. "UTC+7"', max_length=64)),
                ("currency_class", models.CharField(default="USD", max_length=3)),
                ("year", models.PositiveSmallIntegerField()),
                ("is_mixed_year", models.BooleanField(default=False)),
                ("is_prelinked", models.BooleanField(default=False)),
                (
                    "readiness",
                    models.PositiveSmallIntegerField(
                        default=0,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(10),
                        ],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("total_accounts", models.PositiveIntegerField(default=0)),
                ("live_accounts", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "partner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="batches",
                        to="billing.partner",
                    ),
                ),
            ],
            options={
                "verbose_name": "Batch",
                "verbose_name_plural": "Batches",
                "db_table": "batch",
                "ordering": ("-readiness", "id"),
                "indexes": [
                    models.Index(fields=["timezone", "year", "status"], name="batch_timezon_4c2d9a_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "external_id",
                    models.CharField(help_text="Ad platform account id", max_length=64, unique=True),
                ),
                ("name", models.CharField(max_length=255)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("timezone", models.CharField(blank=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                (
                    "total_spend",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18),
                ),
                ("last_synced", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accounts",
                        to="accounts.batch",
                    ),
                ),
                (
                    "billing_entity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accounts",
                        to="billing.billingentity",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accounts",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "db_table": "account",
                "ordering": ("id",),
                "indexes": [
                    models.Index(fields=["batch", "status"], name="account_batch_i_1e8f37_idx"),
                    models.Index(fields=["billing_entity", "status"], name="account_billing_9a3b52_idx"),
                    models.Index(fields=["customer", "status"], name="account_custome_6d07c4_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillingAssignment",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("reason", models.CharField(choices=REASON_CHOICES, max_length=20)),
                ("end_reason", models.CharField(blank=True, choices=REASON_CHOICES, max_length=20)),
                (
                    "started_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "ended_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="billing_assignments",
                        to="accounts.account",
                    ),
                ),
                (
                    "billing_entity",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assignment_history",
                        to="billing.billingentity",
                    ),
                ),
            ],
            options={
                "db_table": "billing_assignment",
                "ordering": ("started_at", "id"),
                "indexes": [
                    models.Index(fields=["account", "ended_at"], name="billing_ass_account_2b7e11_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("ended_at__isnull", True)),
                        fields=("account",),
                        name="billing_assignment_one_open_per_account",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerAssignment",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("reason", models.CharField(choices=REASON_CHOICES, max_length=20)),
                ("end_reason", models.CharField(blank=True, choices=REASON_CHOICES, max_length=20)),
                (
                    "started_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "ended_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customer_assignments",
                        to="accounts.account",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assignment_history",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "db_table": "customer_assignment",
                "ordering": ("started_at", "id"),
                "indexes": [
                    models.Index(fields=["account", "ended_at"], name="customer_as_account_8c4f60_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("ended_at__isnull", True)),
                        fields=("account",),
                        name="customer_assignment_one_open_per_account",
                    ),
                ],
            },
        ),
    ]
