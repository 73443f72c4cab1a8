# ===============================================================================
# 🔢 COUNT SYNC TESTS - cached counters always match source rows
# ===============================================================================

from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from apps.accounts.models import Account, Batch
from apps.accounts.services import AccountService, CountSyncService, billing_ledger, customer_ledger
from apps.billing.models import BillingEntity
from apps.customers.models import Customer
from apps.spending.services import SpendReconciliationService
from tests.factories.ledger_factories import (
    create_accounts,
    create_batch,
    create_billing_entity,
    create_customer,
    create_snapshot,
)


class CountSyncTestCase(TestCase):
    """Counters are overwritten from source rows, never incremented"""

    def setUp(self):
        self.batch = create_batch()
        self.accounts = create_accounts(self.batch, 3)
        self.inactive = create_accounts(self.batch, 2, status='inactive')
        self.entity = create_billing_entity()
        self.customer = create_customer()

    def test_batch_counts_total_and_live(self):
        self.assertTrue(CountSyncService.sync_batch_counts(self.batch.pk))

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.total_accounts, 5)
        self.assertEqual(self.batch.live_accounts, 3)

    def test_drifted_counter_is_repaired(self):
        Batch.objects.filter(pk=self.batch.pk).update(total_accounts=99, live_accounts=42)

        CountSyncService.sync_batch_counts(self.batch.pk)

        self.batch.refresh_from_db()
        self.assertEqual((self.batch.total_accounts, self.batch.live_accounts), (5, 3))

    def test_billing_entity_linked_and_active(self):
        Account.objects.filter(pk__in=[self.accounts[0].pk, self.inactive[0].pk]).update(billing_entity=self.entity)

        CountSyncService.sync_billing_entity_counts(self.entity.pk)

        self.entity.refresh_from_db()
        self.assertEqual(self.entity.linked_accounts, 2)
        self.assertEqual(self.entity.active_accounts, 1)

    def test_customer_counts_include_attributed_spend(self):
        account = self.accounts[0]
        customer_ledger.assign(account.pk, self.customer.pk)
        observed = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        create_snapshot(account, '40.00', observed, customer=self.customer)
        SpendReconciliationService.reconcile(account.pk, observed.date())

        CountSyncService.sync_customer_counts(self.customer.pk)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_accounts, 1)
        self.assertEqual(self.customer.active_accounts, 1)
        self.assertEqual(self.customer.total_spend, Decimal('40.00'))

    def test_missing_entities_are_skipped_silently(self):
        self.assertFalse(CountSyncService.sync_batch_counts(999999))
        self.assertFalse(CountSyncService.sync_billing_entity_counts(999999))
        self.assertFalse(CountSyncService.sync_customer_counts(999999))

    def test_sync_touched_deduplicates_and_ignores_none(self):
        summary = CountSyncService.sync_touched(
            batch_ids=[self.batch.pk, self.batch.pk, None],
            billing_entity_ids=[None, self.entity.pk],
            customer_ids=[self.customer.pk, 999999],
        )

        self.assertEqual(summary, {'batches': 1, 'billing_entities': 1, 'customers': 1})

    def test_bulk_status_change_resyncs_every_touched_entity(self):
        ids = [account.pk for account in self.accounts]
        billing_ledger.bulk_reassign(ids, self.entity.pk)
        customer_ledger.bulk_reassign(ids, self.customer.pk)

        changed = AccountService.bulk_update_status(ids[:2], 'inactive')

        self.assertEqual(changed, 2)
        self.batch.refresh_from_db()
        self.entity.refresh_from_db()
        self.customer.refresh_from_db()
        self.assertEqual(self.batch.live_accounts, 1)
        self.assertEqual(self.entity.linked_accounts, 3)
        self.assertEqual(self.entity.active_accounts, 1)
        self.assertEqual(self.customer.active_accounts, 1)


class SyncCountsCommandTestCase(TestCase):
    """sync_counts management command"""

    def test_command_recounts_everything(self):
        batch = create_batch()
        accounts = create_accounts(batch, 2)
        entity = create_billing_entity()
        customer = create_customer()
        Account.objects.filter(pk=accounts[0].pk).update(billing_entity=entity, customer=customer)
        BillingEntity.objects.filter(pk=entity.pk).update(linked_accounts=7)
        Customer.objects.filter(pk=customer.pk).update(total_accounts=7)

        call_command('sync_counts', stdout=StringIO())

        batch.refresh_from_db()
        entity.refresh_from_db()
        customer.refresh_from_db()
        self.assertEqual(batch.total_accounts, 2)
        self.assertEqual(entity.linked_accounts, 1)
        self.assertEqual(customer.total_accounts, 1)
