"""
Cached counter synchronization for AdLedger.

Counters on batches, billing entities and customers are always recomputed
from source rows and overwritten, never incremented.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import TypedDict

from django.db.models import Count, Q, Sum

from apps.billing.models import BillingEntity
from apps.common.constants import MONEY_QUANTUM, ZERO_AMOUNT
from apps.common.types import BatchId, BillingEntityId, CustomerId
from apps.customers.models import Customer

from .models import Account, Batch

logger = logging.getLogger(__name__)


class SyncSummary(TypedDict):
    batches: int
    billing_entities: int
    customers: int


def _unique_ids(ids: Iterable[int | None]) -> list[int]:
    return sorted({entity_id for entity_id in ids if entity_id is not None})


class CountSyncService:
    """Recompute cached aggregates from accounts and spend records"""

    @staticmethod
    def sync_batch_counts(batch_id: BatchId) -> bool:
        counts = Account.objects.filter(batch_id=batch_id).aggregate(
            total=Count('id'),
            live=Count('id', filter=Q(status='active')),
        )
        updated = Batch.objects.filter(pk=batch_id).update(
            total_accounts=counts['total'],
            live_accounts=counts['live'],
        )
        if not updated:
            logger.debug(f"⏭️ [CountSync] Batch {batch_id} no longer exists, skipping")
        return bool(updated)

    @staticmethod
    def sync_billing_entity_counts(entity_id: BillingEntityId) -> bool:
        counts = Account.objects.filter(billing_entity_id=entity_id).aggregate(
            linked=Count('id'),
            active=Count('id', filter=Q(status='active')),
        )
        updated = BillingEntity.objects.filter(pk=entity_id).update(
            linked_accounts=counts['linked'],
            active_accounts=counts['active'],
        )
        if not updated:
            logger.debug(f"⏭️ [CountSync] Billing entity {entity_id} no longer exists, skipping")
        return bool(updated)

    @staticmethod
    def sync_customer_counts(customer_id: CustomerId) -> bool:
        # Late import: spending depends on accounts
        from apps.spending.models import SpendRecord  # noqa: PLC0415

        counts = Account.objects.filter(customer_id=customer_id).aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(status='active')),
        )
        spend: Decimal = (
            SpendRecord.objects.filter(customer_id=customer_id).aggregate(total=Sum('amount'))['total']
            or ZERO_AMOUNT
        ).quantize(MONEY_QUANTUM)
        updated = Customer.objects.filter(pk=customer_id).update(
            total_accounts=counts['total'],
            active_accounts=counts['active'],
            total_spend=spend,
        )
        if not updated:
            logger.debug(f"⏭️ [CountSync] Customer {customer_id} no longer exists, skipping")
        return bool(updated)

    @staticmethod
    def sync_touched(
        batch_ids: Iterable[BatchId | None] = (),
        billing_entity_ids: Iterable[BillingEntityId | None] = (),
        customer_ids: Iterable[CustomerId | None] = (),
    ) -> SyncSummary:
        """Sync every touched entity once; None ids (unset pointers) are ignored."""
        summary: SyncSummary = {'batches': 0, 'billing_entities': 0, 'customers': 0}
        for batch_id in _unique_ids(batch_ids):
            summary['batches'] += CountSyncService.sync_batch_counts(batch_id)
        for entity_id in _unique_ids(billing_entity_ids):
            summary['billing_entities'] += CountSyncService.sync_billing_entity_counts(entity_id)
        for customer_id in _unique_ids(customer_ids):
            summary['customers'] += CountSyncService.sync_customer_counts(customer_id)
        return summary

    @staticmethod
    def sync_all() -> SyncSummary:
        """🔄 Full recount of every batch, billing entity and customer."""
        summary = CountSyncService.sync_touched(
            batch_ids=Batch.objects.values_list('id', flat=True),
            billing_entity_ids=BillingEntity.objects.values_list('id', flat=True),
            customer_ids=Customer.objects.values_list('id', flat=True),
        )
        logger.info(
            f"✅ [CountSync] Synced {summary['batches']} batches, "
            f"{summary['billing_entities']} billing entities, {summary['customers']} customers"
        )
        return summary
