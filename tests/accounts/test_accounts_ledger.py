# ===============================================================================
# 🔗 ASSIGNMENT LEDGER TESTS - current pointers and interval history
# ===============================================================================
"""
Tests for the billing entity and customer assignment ledgers.

Covers exclusivity of the open interval, pointer/interval consistency,
idempotent assign, reason defaults and transactional rollback.
"""

from datetime import UTC, datetime

from django.test import TestCase
from freezegun import freeze_time

from apps.accounts.models import Account, AssignmentReason, BillingAssignment, CustomerAssignment, IntervalState
from apps.accounts.services import billing_ledger, customer_ledger
from apps.audit.models import AuditEvent
from apps.common.types import BadRequestError, NotFoundError
from tests.factories.ledger_factories import (
    create_account,
    create_accounts,
    create_batch,
    create_billing_entity,
    create_customer,
    create_user,
)


class BillingLedgerAssignTestCase(TestCase):
    """Single-account assign / unassign through the billing ledger"""

    def setUp(self):
        self.user = create_user()
        self.batch = create_batch()
        self.account = create_account(self.batch)
        self.entity_a = create_billing_entity()
        self.entity_b = create_billing_entity()

    def test_initial_assign_opens_interval_and_sets_pointer(self):
        change = billing_ledger.assign(self.account.pk, self.entity_a.pk, user=self.user)

        self.assertTrue(change.changed)
        self.assertIsNone(change.previous_target_id)
        self.account.refresh_from_db()
        self.assertEqual(self.account.billing_entity_id, self.entity_a.pk)

        current = billing_ledger.current(self.account.pk)
        self.assertEqual(current.billing_entity_id, self.entity_a.pk)
        self.assertEqual(current.state, IntervalState.OPEN)
        self.assertEqual(current.reason, AssignmentReason.INITIAL)
        self.assertEqual(current.started_by, self.user)

    def test_reassign_closes_previous_interval_in_same_operation(self):
        with freeze_time('2024-05-01 08:00:00'):
            billing_ledger.assign(self.account.pk, self.entity_a.pk, user=self.user)
        with freeze_time('2024-05-02 09:30:00'):
            change = billing_ledger.assign(self.account.pk, self.entity_b.pk, user=self.user)

        self.assertEqual(change.previous_target_id, self.entity_a.pk)
        history = billing_ledger.history(self.account.pk)
        self.assertEqual([interval.billing_entity_id for interval in history], [self.entity_a.pk, self.entity_b.pk])

        closed, opened = history
        self.assertEqual(closed.state, IntervalState.CLOSED)
        self.assertEqual(closed.ended_at, datetime(2024, 5, 2, 9, 30, tzinfo=UTC))
        self.assertEqual(closed.ended_by, self.user)
        self.assertEqual(closed.end_reason, AssignmentReason.REASSIGN)
        self.assertEqual(opened.started_at, closed.ended_at)
        self.assertEqual(opened.reason, AssignmentReason.REASSIGN)

    def test_at_most_one_open_interval_after_many_reassignments(self):
        for entity in (self.entity_a, self.entity_b, self.entity_a, self.entity_b):
            billing_ledger.assign(self.account.pk, entity.pk)

        self.assertEqual(BillingAssignment.objects.for_account(self.account.pk).open().count(), 1)
        self.assertEqual(BillingAssignment.objects.for_account(self.account.pk).closed().count(), 3)

    def test_assign_to_current_target_is_noop(self):
        billing_ledger.assign(self.account.pk, self.entity_a.pk)
        change = billing_ledger.assign(self.account.pk, self.entity_a.pk)

        self.assertFalse(change.changed)
        self.assertEqual(len(billing_ledger.history(self.account.pk)), 1)

    def test_unassign_closes_interval_and_clears_pointer(self):
        billing_ledger.assign(self.account.pk, self.entity_a.pk)
        change = billing_ledger.unassign(self.account.pk, user=self.user)

        self.assertEqual(change.previous_target_id, self.entity_a.pk)
        self.assertIsNone(change.target_id)
        self.account.refresh_from_db()
        self.assertIsNone(self.account.billing_entity_id)
        self.assertIsNone(billing_ledger.current(self.account.pk))

        interval = billing_ledger.history(self.account.pk)[0]
        self.assertEqual(interval.end_reason, AssignmentReason.MANUAL_UNLINK)

    def test_unassign_of_unlinked_account_writes_nothing(self):
        change = billing_ledger.unassign(self.account.pk)

        self.assertFalse(change.changed)
        self.assertEqual(billing_ledger.history(self.account.pk), [])

    def test_explicit_migration_reason_is_recorded(self):
        billing_ledger.assign(self.account.pk, self.entity_a.pk)
        billing_ledger.assign(self.account.pk, self.entity_b.pk, reason=AssignmentReason.MIGRATION)

        closed, opened = billing_ledger.history(self.account.pk)
        self.assertEqual(closed.end_reason, AssignmentReason.MIGRATION)
        self.assertEqual(opened.reason, AssignmentReason.MIGRATION)

    def test_invalid_reason_is_rejected(self):
        with self.assertRaises(BadRequestError):
            billing_ledger.assign(self.account.pk, self.entity_a.pk, reason='manual_unlink')
        with self.assertRaises(BadRequestError):
            billing_ledger.unassign(self.account.pk, reason='initial')

    def test_unknown_account_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            billing_ledger.assign(999999, self.entity_a.pk)

    def test_unknown_target_raises_not_found_and_keeps_pointer(self):
        billing_ledger.assign(self.account.pk, self.entity_a.pk)

        with self.assertRaises(NotFoundError):
            billing_ledger.assign(self.account.pk, 999999)

        self.account.refresh_from_db()
        self.assertEqual(self.account.billing_entity_id, self.entity_a.pk)
        self.assertEqual(billing_ledger.current(self.account.pk).billing_entity_id, self.entity_a.pk)

    def test_assign_updates_counts_of_old_and_new_target(self):
        billing_ledger.assign(self.account.pk, self.entity_a.pk)
        billing_ledger.assign(self.account.pk, self.entity_b.pk)

        self.entity_a.refresh_from_db()
        self.entity_b.refresh_from_db()
        self.assertEqual(self.entity_a.linked_accounts, 0)
        self.assertEqual(self.entity_b.linked_accounts, 1)
        self.assertEqual(self.entity_b.active_accounts, 1)


class BulkLedgerTestCase(TestCase):
    """Bulk reassign / unassign run as one transaction"""

    def setUp(self):
        self.batch = create_batch()
        self.accounts = create_accounts(self.batch, 4)
        self.ids = [account.pk for account in self.accounts]
        self.entity = create_billing_entity()
        self.other = create_billing_entity()

    def test_bulk_reassign_links_every_account(self):
        changes = billing_ledger.bulk_reassign(self.ids, self.entity.pk)

        self.assertEqual([change.account_id for change in changes], sorted(self.ids))
        self.assertEqual(Account.objects.filter(billing_entity=self.entity).count(), 4)
        self.entity.refresh_from_db()
        self.assertEqual(self.entity.linked_accounts, 4)

    def test_bulk_reassign_deduplicates_ids(self):
        changes = billing_ledger.bulk_reassign([*self.ids, self.ids[0]], self.entity.pk)

        self.assertEqual(len(changes), 4)
        self.assertEqual(BillingAssignment.objects.open().count(), 4)

    def test_bulk_reassign_with_unknown_account_rolls_back_everything(self):
        with self.assertRaises(NotFoundError):
            billing_ledger.bulk_reassign([*self.ids, 999999], self.entity.pk)

        self.assertFalse(Account.objects.filter(billing_entity__isnull=False).exists())
        self.assertFalse(BillingAssignment.objects.exists())

    def test_bulk_unassign_keeps_counts_consistent(self):
        billing_ledger.bulk_reassign(self.ids[:2], self.entity.pk)
        billing_ledger.bulk_reassign(self.ids[2:], self.other.pk)

        billing_ledger.bulk_unassign([self.ids[0], self.ids[2], self.ids[3]])

        for entity in (self.entity, self.other):
            entity.refresh_from_db()
            self.assertEqual(entity.linked_accounts, Account.objects.filter(billing_entity=entity).count())
        self.assertEqual(self.entity.linked_accounts, 1)
        self.assertEqual(self.other.linked_accounts, 0)

    def test_bulk_operation_writes_single_bulk_audit_event(self):
        with self.captureOnCommitCallbacks(execute=True):
            billing_ledger.bulk_reassign(self.ids, self.entity.pk)

        events = AuditEvent.objects.filter(action='link_billing')
        self.assertEqual(events.count(), 1)
        self.assertEqual(events.get().entity_id, 'BULK')
        self.assertEqual(events.get().new_values['account_ids'], sorted(self.ids))

    def test_pointer_matches_open_interval_for_every_account(self):
        billing_ledger.bulk_reassign(self.ids, self.entity.pk)
        billing_ledger.bulk_reassign(self.ids[:2], self.other.pk)
        billing_ledger.bulk_unassign(self.ids[3:])

        for account in Account.objects.filter(pk__in=self.ids):
            current = billing_ledger.current(account.pk)
            if account.billing_entity_id is None:
                self.assertIsNone(current)
            else:
                self.assertEqual(current.billing_entity_id, account.billing_entity_id)


class CustomerLedgerTestCase(TestCase):
    """The customer ledger shares the billing ledger discipline"""

    def setUp(self):
        self.user = create_user()
        self.account = create_account(create_batch())
        self.customer_a = create_customer()
        self.customer_b = create_customer()

    def test_customer_reassign_history_and_counts(self):
        customer_ledger.assign(self.account.pk, self.customer_a.pk, user=self.user)
        customer_ledger.assign(self.account.pk, self.customer_b.pk, user=self.user)

        self.account.refresh_from_db()
        self.assertEqual(self.account.customer_id, self.customer_b.pk)
        self.assertEqual(CustomerAssignment.objects.for_account(self.account.pk).open().count(), 1)

        self.customer_a.refresh_from_db()
        self.customer_b.refresh_from_db()
        self.assertEqual(self.customer_a.total_accounts, 0)
        self.assertEqual(self.customer_b.total_accounts, 1)
        self.assertEqual(self.customer_b.active_accounts, 1)

    def test_customer_and_billing_ledgers_are_independent(self):
        entity = create_billing_entity()
        billing_ledger.assign(self.account.pk, entity.pk)
        customer_ledger.assign(self.account.pk, self.customer_a.pk)
        customer_ledger.unassign(self.account.pk)

        self.account.refresh_from_db()
        self.assertEqual(self.account.billing_entity_id, entity.pk)
        self.assertIsNone(self.account.customer_id)

    def test_single_assign_emits_audit_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            customer_ledger.assign(self.account.pk, self.customer_a.pk, user=self.user)

        event = AuditEvent.objects.get(action='assign_customer')
        self.assertEqual(event.entity_id, str(self.account.pk))
        self.assertEqual(event.new_values, {'customer_id': self.customer_a.pk})
        self.assertEqual(event.user, self.user)

    def test_failed_assign_emits_no_audit(self):
        with self.captureOnCommitCallbacks(execute=True), self.assertRaises(NotFoundError):
            customer_ledger.assign(self.account.pk, 999999)

        self.assertFalse(AuditEvent.objects.exists())

