# ===============================================================================
# 🧮 ALLOCATION TESTS - greedy suggest and atomic execute
# ===============================================================================

from unittest import mock

from django.test import TestCase

from apps.accounts.models import Account, BillingAssignment
from apps.accounts.services import AllocationService, NewBillingEntity, Requirement, billing_ledger, customer_ledger
from apps.audit.models import AuditEvent
from apps.billing.models import BillingEntity
from apps.common.types import BadRequestError, ConflictError, NotFoundError
from tests.factories.ledger_factories import (
    BatchRequest,
    create_accounts,
    create_batch,
    create_billing_entity,
    create_customer,
    create_user,
)


def requirement(count: int, timezone: str = 'UTC+7', currency: str = 'USD', year: int = 2024) -> Requirement:
    return Requirement(timezone=timezone, currency_class=currency, year=year, count=count)


class AllocationSuggestTestCase(TestCase):
    """AllocationService.suggest"""

    def test_exhaustion_reports_missing_count(self):
        batch = create_batch()
        create_accounts(batch, 3)

        [proposal] = AllocationService.suggest([requirement(5)])

        self.assertFalse(proposal['is_fulfilled'])
        self.assertEqual(proposal['missing_count'], 2)
        self.assertEqual(sum(len(link['account_ids']) for link in proposal['links']), 3)

    def test_batches_consumed_by_readiness_descending(self):
        low = create_batch(BatchRequest(readiness=2))
        high = create_batch(BatchRequest(readiness=9))
        create_accounts(low, 3)
        high_accounts = create_accounts(high, 2)

        [proposal] = AllocationService.suggest([requirement(3)])

        self.assertTrue(proposal['is_fulfilled'])
        self.assertEqual([link['batch_id'] for link in proposal['links']], [high.pk, low.pk])
        self.assertEqual(proposal['links'][0]['account_ids'], [account.pk for account in high_accounts])
        self.assertEqual(len(proposal['links'][1]['account_ids']), 1)

    def test_equal_readiness_breaks_ties_by_batch_id(self):
        first = create_batch(BatchRequest(readiness=7))
        second = create_batch(BatchRequest(readiness=7))
        create_accounts(second, 2)
        create_accounts(first, 2)

        for _ in range(3):
            [proposal] = AllocationService.suggest([requirement(2)])
            self.assertEqual([link['batch_id'] for link in proposal['links']], [first.pk])

    def test_only_unassigned_active_matching_currency_accounts_are_candidates(self):
        batch = create_batch()
        eligible = create_accounts(batch, 1)
        create_accounts(batch, 1, status='inactive')
        create_accounts(batch, 1, currency='EUR')
        linked = create_accounts(batch, 2)
        billing_ledger.assign(linked[0].pk, create_billing_entity().pk)
        customer_ledger.assign(linked[1].pk, create_customer().pk)

        [proposal] = AllocationService.suggest([requirement(4)])

        self.assertEqual(proposal['links'][0]['account_ids'], [eligible[0].pk])
        self.assertEqual(proposal['missing_count'], 3)

    def test_non_matching_batches_are_ignored(self):
        create_accounts(create_batch(BatchRequest(timezone='UTC-5')), 2)
        create_accounts(create_batch(BatchRequest(year=2021)), 2)
        create_accounts(create_batch(BatchRequest(status='inactive')), 2)

        [proposal] = AllocationService.suggest([requirement(1)])

        self.assertEqual(proposal['links'], [])
        self.assertEqual(proposal['missing_count'], 1)

    def test_accounts_are_not_proposed_twice_across_requirements(self):
        batch = create_batch()
        create_accounts(batch, 3)

        first, second = AllocationService.suggest([requirement(2), requirement(2)])

        first_ids = set(first['links'][0]['account_ids'])
        second_ids = set(second['links'][0]['account_ids'])
        self.assertFalse(first_ids & second_ids)
        self.assertEqual(second['missing_count'], 1)

    def test_alternatives_list_other_batches_with_spare_accounts(self):
        best = create_batch(BatchRequest(readiness=9))
        spare = create_batch(BatchRequest(readiness=3))
        create_batch(BatchRequest(readiness=5))
        create_accounts(best, 2)
        create_accounts(spare, 4)

        [proposal] = AllocationService.suggest([requirement(2)])

        [link] = proposal['links']
        self.assertEqual(link['batch_id'], best.pk)
        self.assertEqual(
            link['alternatives'],
            [{'batch_id': spare.pk, 'name': spare.name, 'readiness': 3, 'available_count': 4}],
        )

    def test_zero_count_is_trivially_fulfilled(self):
        [proposal] = AllocationService.suggest([requirement(0)])

        self.assertTrue(proposal['is_fulfilled'])
        self.assertEqual(proposal['links'], [])

    def test_negative_count_is_rejected(self):
        with self.assertRaises(BadRequestError):
            AllocationService.suggest([requirement(-1)])

    def test_suggest_does_not_mutate(self):
        create_accounts(create_batch(), 2)

        AllocationService.suggest([requirement(2)])

        self.assertFalse(Account.objects.filter(billing_entity__isnull=False).exists())


class AllocationExecuteTestCase(TestCase):
    """AllocationService.execute"""

    def setUp(self):
        self.user = create_user()
        self.batch = create_batch()
        self.accounts = create_accounts(self.batch, 3)
        self.ids = [account.pk for account in self.accounts]

    def test_execute_links_to_existing_billing_entity(self):
        entity = create_billing_entity()

        result = AllocationService.execute(
            [{'account_ids': self.ids[:2]}, {'account_ids': self.ids[2:]}],
            billing_entity_id=entity.pk,
            user=self.user,
        )

        self.assertEqual(result, {'billing_entity_id': entity.pk, 'account_count': 3})
        entity.refresh_from_db()
        self.assertEqual(entity.linked_accounts, 3)
        self.assertEqual(BillingAssignment.objects.open().filter(billing_entity=entity).count(), 3)

    def test_execute_creates_new_billing_entity(self):
        with self.captureOnCommitCallbacks(execute=True):
            result = AllocationService.execute(
                [{'account_ids': self.ids}],
                new_billing_entity=NewBillingEntity(name='Fresh MI', external_id='MI-NEW-1'),
                user=self.user,
            )

        entity = BillingEntity.objects.get(external_id='MI-NEW-1')
        self.assertEqual(result['billing_entity_id'], entity.pk)
        self.assertEqual(entity.linked_accounts, 3)
        self.assertTrue(AuditEvent.objects.filter(action='allocate', entity_id=str(entity.pk)).exists())
        self.assertTrue(AuditEvent.objects.filter(action='create', entity_type='billing_entity').exists())

    def test_execute_requires_exactly_one_target(self):
        entity = create_billing_entity()
        with self.assertRaises(BadRequestError):
            AllocationService.execute([{'account_ids': self.ids}])
        with self.assertRaises(BadRequestError):
            AllocationService.execute(
                [{'account_ids': self.ids}],
                billing_entity_id=entity.pk,
                new_billing_entity=NewBillingEntity(name='X', external_id='MI-X'),
            )

    def test_execute_with_unknown_billing_entity(self):
        with self.assertRaises(NotFoundError):
            AllocationService.execute([{'account_ids': self.ids}], billing_entity_id=999999)

    def test_execute_is_atomic_when_an_account_is_missing(self):
        with self.assertRaises(NotFoundError):
            AllocationService.execute(
                [{'account_ids': [*self.ids, 999999]}],
                new_billing_entity=NewBillingEntity(name='Doomed MI', external_id='MI-DOOMED'),
            )

        self.assertFalse(BillingEntity.objects.filter(external_id='MI-DOOMED').exists())
        self.assertFalse(Account.objects.filter(billing_entity__isnull=False).exists())
        self.assertFalse(BillingAssignment.objects.exists())

    def test_execute_is_atomic_when_count_sync_fails(self):
        entity = create_billing_entity()

        with mock.patch(
            'apps.accounts.count_sync_service.CountSyncService.sync_billing_entity_counts',
            side_effect=RuntimeError('database went away'),
        ), self.assertRaises(RuntimeError):
            AllocationService.execute([{'account_ids': self.ids}], billing_entity_id=entity.pk)

        self.assertFalse(Account.objects.filter(billing_entity=entity).exists())
        self.assertFalse(BillingAssignment.objects.exists())

    def test_execute_with_duplicate_external_id_conflicts(self):
        existing = create_billing_entity()

        with self.assertRaises(ConflictError):
            AllocationService.execute(
                [{'account_ids': self.ids}],
                new_billing_entity=NewBillingEntity(name='Dup', external_id=existing.external_id),
            )

        self.assertFalse(Account.objects.filter(billing_entity__isnull=False).exists())

    def test_execute_rejects_empty_selection(self):
        with self.assertRaises(BadRequestError):
            AllocationService.execute([{'account_ids': []}], billing_entity_id=create_billing_entity().pk)
