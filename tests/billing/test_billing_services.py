# ===============================================================================
# 🧾 BILLING ENTITY & PARTNER SERVICE TESTS
# ===============================================================================

from datetime import UTC, datetime

from django.test import TestCase

from apps.accounts.services import billing_ledger
from apps.audit.models import AuditEvent
from apps.billing.models import BillingEntity, Partner
from apps.billing.services import BillingEntityService, PartnerService
from apps.common.types import BadRequestError, ConflictError, NotFoundError
from apps.spending.services import SpendReconciliationService
from tests.factories.ledger_factories import (
    create_account,
    create_batch,
    create_billing_entity,
    create_partner,
    create_snapshot,
    create_user,
)


class BillingEntityServiceTestCase(TestCase):
    """Billing entity CRUD"""

    def setUp(self):
        self.user = create_user()

    def test_create_billing_entity(self):
        partner = create_partner('invoice_provider')

        with self.captureOnCommitCallbacks(execute=True):
            result = BillingEntityService.create_billing_entity(
                'MI Alpha', ' MI-001 ', user=self.user, partner_id=partner.pk
            )

        entity = result.unwrap()
        self.assertEqual(entity.external_id, 'MI-001')
        self.assertEqual(entity.partner, partner)
        self.assertEqual(entity.credit_status, 'pending')
        self.assertTrue(AuditEvent.objects.filter(action='create', entity_type='billing_entity').exists())

    def test_duplicate_external_id_conflicts(self):
        existing = create_billing_entity()

        result = BillingEntityService.create_billing_entity('Dup', existing.external_id)

        self.assertIsInstance(result.error, ConflictError)
        self.assertEqual(BillingEntity.objects.count(), 1)

    def test_update_to_duplicate_external_id_conflicts(self):
        first = create_billing_entity()
        second = create_billing_entity()

        result = BillingEntityService.update_billing_entity(second.pk, external_id=first.external_id)

        self.assertIsInstance(result.error, ConflictError)

    def test_counters_are_not_writable(self):
        entity = create_billing_entity()

        result = BillingEntityService.update_billing_entity(entity.pk, linked_accounts=10)

        self.assertIsInstance(result.error, BadRequestError)

    def test_update_records_old_and_new_values(self):
        entity = create_billing_entity()

        with self.captureOnCommitCallbacks(execute=True):
            BillingEntityService.update_billing_entity(entity.pk, user=self.user, credit_status='connected')

        event = AuditEvent.objects.get(action='update')
        self.assertEqual(event.old_values, {'credit_status': 'pending'})
        self.assertEqual(event.new_values, {'credit_status': 'connected'})

    def test_delete_refused_while_accounts_are_linked(self):
        entity = create_billing_entity()
        billing_ledger.assign(create_account(create_batch()).pk, entity.pk)

        result = BillingEntityService.delete_billing_entity(entity.pk)

        self.assertIsInstance(result.error, BadRequestError)
        self.assertTrue(BillingEntity.objects.filter(pk=entity.pk).exists())

    def test_delete_refused_while_spend_is_attributed(self):
        entity = create_billing_entity()
        account = create_account(create_batch())
        observed = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)
        create_snapshot(account, '3.00', observed, billing_entity=entity)
        SpendReconciliationService.reconcile(account.pk, observed.date())

        result = BillingEntityService.delete_billing_entity(entity.pk)

        self.assertIsInstance(result.error, BadRequestError)

    def test_delete_refused_while_closed_history_exists(self):
        entity = create_billing_entity()
        account = create_account(create_batch())
        billing_ledger.assign(account.pk, entity.pk)
        billing_ledger.unassign(account.pk)

        result = BillingEntityService.delete_billing_entity(entity.pk)

        self.assertIsInstance(result.error, BadRequestError)
        self.assertTrue(BillingEntity.objects.filter(pk=entity.pk).exists())
        self.assertEqual(len(billing_ledger.history(account.pk)), 1)

    def test_delete_unlinked_entity(self):
        entity = create_billing_entity()

        result = BillingEntityService.delete_billing_entity(entity.pk, user=self.user)

        self.assertTrue(result.is_ok())
        self.assertFalse(BillingEntity.objects.filter(pk=entity.pk).exists())

    def test_unknown_entity(self):
        self.assertIsInstance(BillingEntityService.get_billing_entity(999999).error, NotFoundError)
        self.assertIsInstance(BillingEntityService.delete_billing_entity(999999).error, NotFoundError)


class PartnerServiceTestCase(TestCase):
    """Partner CRUD"""

    def test_partner_lifecycle(self):
        partner = PartnerService.create_partner('Supplier Co', partner_type='account_supplier').unwrap()
        self.assertTrue(partner.supplies_accounts)
        self.assertFalse(partner.provides_invoices)

        updated = PartnerService.update_partner(partner.pk, partner_type='both').unwrap()
        self.assertTrue(updated.provides_invoices)

        entity = create_billing_entity()
        entity.partner = partner
        entity.save()

        self.assertTrue(PartnerService.delete_partner(partner.pk).is_ok())
        entity.refresh_from_db()
        self.assertIsNone(entity.partner)
        self.assertFalse(Partner.objects.exists())

    def test_blank_partner_name(self):
        self.assertIsInstance(PartnerService.create_partner('  ').error, BadRequestError)
