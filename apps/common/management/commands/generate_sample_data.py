"""
Django management command to generate sample data for AdLedger
Partners, batches, accounts, billing entities, customers, assignments and a
day of spend snapshots, reconciled into spend records.
"""

import random
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError, CommandParser
from django.db import transaction
from django.utils import timezone
from faker import Faker

from apps.accounts.models import Account, Batch
from apps.accounts.services import CountSyncService, billing_ledger, customer_ledger
from apps.billing.models import BillingEntity, Partner
from apps.customers.models import Customer
from apps.spending.services import SnapshotService, SpendReconciliationService

User = get_user_model()

TIMEZONES = ('UTC+7', 'UTC-5', 'UTC+0')
CURRENCIES = ('USD', 'EUR')


@dataclass
class SampleDataConfig:
    """Configuration parameters for sample data generation"""

    batches: int
    accounts_per_batch: int
    billing_entities: int
    customers: int
    snapshots_per_account: int


class Command(BaseCommand):
    help = "Generate sample batches, accounts, assignments and spend"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument("--batches", type=int, default=4, help="Number of batches to create")
        parser.add_argument("--accounts-per-batch", type=int, default=10, help="Accounts per batch")
        parser.add_argument("--billing-entities", type=int, default=3, help="Number of billing entities")
        parser.add_argument("--customers", type=int, default=5, help="Number of customers")
        parser.add_argument("--snapshots", type=int, default=4, help="Spend snapshots per linked account today")

    def handle(self, *args: Any, **options: Any) -> None:
        # Simple safety check - must be in DEBUG mode
        if not settings.DEBUG:
            raise CommandError(
                "🚫 Sample data generation only works in DEBUG mode. This prevents accidental production usage."
            )

        config = SampleDataConfig(
            batches=options["batches"],
            accounts_per_batch=options["accounts_per_batch"],
            billing_entities=options["billing_entities"],
            customers=options["customers"],
            snapshots_per_account=options["snapshots"],
        )

        fake = Faker()
        Faker.seed(42)  # Consistent data
        rng = random.Random(42)

        self.stdout.write("🌱 Generating AdLedger sample data...")

        with transaction.atomic():
            operator = self.create_operator()
            partners = self.create_partners(fake)
            batches = self.create_batches(fake, rng, partners, config)
            entities = self.create_billing_entities(fake, partners, config)
            customers = self.create_customers(fake, operator, config)
            linked = self.assign_accounts(rng, batches, entities, customers, operator)

        self.record_spend(rng, linked, operator, config)
        summary = CountSyncService.sync_all()

        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Sample data ready: {summary['batches']} batches, "
                f"{summary['billing_entities']} billing entities, {summary['customers']} customers"
            )
        )

    def create_operator(self) -> Any:
        operator, created = User.objects.get_or_create(
            username='operator',
            defaults={'email': 'operator@example.com', 'is_staff': True},
        )
        if created:
            operator.set_password('operator123')  # Dev only - protected by DEBUG check
            operator.save()
            self.stdout.write(f'  ✓ Operator: {operator.username}')
        return operator

    def create_partners(self, fake: Faker) -> list[Partner]:
        self.stdout.write('Creating partners...')
        partners = [
            Partner.objects.create(name=fake.company(), partner_type=partner_type, contact_info=fake.email())
            for partner_type in ('account_supplier', 'invoice_provider', 'both')
        ]
        for partner in partners:
            self.stdout.write(f'  ✓ Partner: {partner.name} ({partner.partner_type})')
        return partners

    def create_batches(
        self, fake: Faker, rng: random.Random, partners: list[Partner], config: SampleDataConfig
    ) -> list[Batch]:
        self.stdout.write('Creating batches and accounts...')
        suppliers = [partner for partner in partners if partner.supplies_accounts]
        batches = []
        for index in range(config.batches):
            currency = rng.choice(CURRENCIES)
            batch = Batch.objects.create(
                name=f"MA {fake.company()}",
                external_id=fake.unique.numerify('###-###-####'),
                partner=rng.choice(suppliers),
                timezone=TIMEZONES[index % len(TIMEZONES)],
                currency_class=currency,
                year=rng.choice((2022, 2023, 2024)),
                readiness=rng.randint(0, 10),
            )
            Account.objects.bulk_create(
                Account(
                    external_id=fake.unique.numerify('###-###-####'),
                    name=fake.bs().title(),
                    currency=currency,
                    timezone=batch.timezone,
                    batch=batch,
                )
                for _ in range(config.accounts_per_batch)
            )
            batches.append(batch)
            self.stdout.write(f'  ✓ Batch: {batch.name} ({config.accounts_per_batch} accounts)')
        return batches

    def create_billing_entities(
        self, fake: Faker, partners: list[Partner], config: SampleDataConfig
    ) -> list[BillingEntity]:
        self.stdout.write('Creating billing entities...')
        providers = [partner for partner in partners if partner.provides_invoices]
        entities = []
        for index in range(config.billing_entities):
            entity = BillingEntity.objects.create(
                name=f"MI {fake.company()}",
                external_id=fake.unique.numerify('MI-#####'),
                partner=providers[index % len(providers)],
                credit_status='connected',
            )
            entities.append(entity)
            self.stdout.write(f'  ✓ Billing entity: {entity.name}')
        return entities

    def create_customers(self, fake: Faker, operator: Any, config: SampleDataConfig) -> list[Customer]:
        self.stdout.write('Creating customers...')
        customers = [
            Customer.objects.create(name=fake.company(), contact_info=fake.email(), assigned_staff=operator)
            for _ in range(config.customers)
        ]
        self.stdout.write(f'  ✓ {len(customers)} customers')
        return customers

    def assign_accounts(
        self,
        rng: random.Random,
        batches: list[Batch],
        entities: list[BillingEntity],
        customers: list[Customer],
        operator: Any,
    ) -> list[int]:
        """Link roughly half of every batch and assign those accounts to customers."""
        self.stdout.write('Linking accounts...')
        linked: list[int] = []
        for batch in batches:
            account_ids = list(batch.accounts.order_by('id').values_list('id', flat=True))
            chosen = account_ids[: len(account_ids) // 2]
            if not chosen or not entities:
                continue
            billing_ledger.bulk_reassign(chosen, rng.choice(entities).pk, user=operator)
            if customers:
                customer_ledger.bulk_reassign(chosen, rng.choice(customers).pk, user=operator)
            linked.extend(chosen)
        self.stdout.write(f'  ✓ {len(linked)} accounts linked and assigned')
        return linked

    def record_spend(self, rng: random.Random, account_ids: list[int], operator: Any, config: SampleDataConfig) -> None:
        self.stdout.write('Recording spend snapshots...')
        today = timezone.localdate()
        day_start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
        for account_id in account_ids:
            cumulative = Decimal('0.00')
            for step in range(config.snapshots_per_account):
                cumulative += Decimal(rng.randint(0, 50000)) / 100
                SnapshotService.record_snapshot(
                    account_id,
                    cumulative,
                    observed_at=day_start + timedelta(hours=2 * (step + 1)),
                    observation_date=today,
                    source='import',
                    user=operator,
                )
        summary = SpendReconciliationService.reconcile_day(today, user=operator)
        self.stdout.write(f"  ✓ {summary['records_written']} spend records for {summary['accounts']} accounts")
