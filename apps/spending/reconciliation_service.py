"""
Spend reconciliation for AdLedger.

Turns an account's cumulative spend snapshots for one day into bounded,
attributable spend records. Reconciling is a full recomputation of the
account+day key, so repeated runs over unchanged snapshots are idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, TypedDict

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.accounts.count_sync_service import CountSyncService
from apps.accounts.models import Account
from apps.audit.services import AuditContext, AuditEventData, AuditService
from apps.common.constants import MONEY_QUANTUM, ZERO_AMOUNT
from apps.common.types import AccountId, NoDataError, NotFoundError

from .models import SpendRecord, SpendSnapshot

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)


class ReconcileResult(TypedDict):
    account_id: AccountId
    observation_date: date
    records_written: int
    total_for_account: Decimal


class DayReconcileSummary(TypedDict):
    observation_date: date
    accounts: int
    records_written: int


def start_of_day(observation_date: date) -> datetime:
    """Midnight of the observation date in the current timezone"""
    return timezone.make_aware(datetime.combine(observation_date, time.min))


def build_spend_records(
    account: Account, observation_date: date, snapshots: Sequence[SpendSnapshot]
) -> list[SpendRecord]:
    """
    Derive unsaved spend records from snapshots ordered by observed_at.

    A drop in the cumulative amount is skipped and the highest cumulative seen
    so far stays the baseline, so [100, 90, 250] yields [100, 150]. Snapshots
    sharing an observed_at fold into one record.
    """
    records: list[SpendRecord] = []
    previous_cumulative = ZERO_AMOUNT
    period_start = start_of_day(observation_date)

    for snapshot in snapshots:
        delta = snapshot.cumulative_amount - previous_cumulative
        if delta > 0:
            if records and records[-1].period_end == snapshot.observed_at:
                records[-1].amount += delta
            else:
                records.append(
                    SpendRecord(
                        account=account,
                        observation_date=observation_date,
                        amount=delta,
                        currency=account.currency,
                        period_start=period_start,
                        period_end=snapshot.observed_at,
                        billing_entity_id=snapshot.billing_entity_id,
                        customer_id=snapshot.customer_id,
                    )
                )
        previous_cumulative = max(previous_cumulative, snapshot.cumulative_amount)
        period_start = snapshot.observed_at

    return records


class SpendReconciliationService:
    """Snapshot -> spend record reconciliation"""

    @staticmethod
    def reconcile(account_id: AccountId, observation_date: date, user: User | None = None) -> ReconcileResult:
        """
        Replace the account's spend records for the day and refresh its
        all-time total.

        Raises:
            NotFoundError: The account does not exist
            NoDataError: No snapshots exist for the account and day
        """
        with transaction.atomic():
            account = Account.objects.select_for_update().filter(pk=account_id).first()
            if account is None:
                raise NotFoundError(f"Account {account_id} not found")

            snapshots = list(
                SpendSnapshot.objects.filter(account=account, observation_date=observation_date).order_by(
                    'observed_at', 'id'
                )
            )
            if not snapshots:
                raise NoDataError(f"No snapshots for account {account_id} on {observation_date}")

            existing = SpendRecord.objects.filter(account=account, observation_date=observation_date)
            touched_customers = set(existing.values_list('customer_id', flat=True))
            existing.delete()

            records = build_spend_records(account, observation_date, snapshots)
            SpendRecord.objects.bulk_create(records)
            touched_customers.update(record.customer_id for record in records)

            total: Decimal = (
                SpendRecord.objects.filter(account=account).aggregate(total=Sum('amount'))['total'] or ZERO_AMOUNT
            ).quantize(MONEY_QUANTUM)
            Account.objects.filter(pk=account.pk).update(total_spend=total, last_synced=timezone.now())
            CountSyncService.sync_touched(customer_ids=touched_customers)

            AuditService.emit_after_commit(
                AuditEventData(
                    action='reconcile',
                    entity_type='account',
                    entity_id=account.pk,
                    new_values={
                        'observation_date': observation_date,
                        'records_written': len(records),
                        'total_spend': total,
                    },
                    description=f"Reconciled {len(snapshots)} snapshots into {len(records)} spend records",
                ),
                AuditContext(user=user),
            )

        logger.info(
            f"💸 [Spending] Reconciled account {account_id} on {observation_date}: "
            f"{len(records)} records, total {total}"
        )
        return {
            'account_id': account.pk,
            'observation_date': observation_date,
            'records_written': len(records),
            'total_for_account': total,
        }

    @staticmethod
    def reconcile_day(observation_date: date, user: User | None = None) -> DayReconcileSummary:
        """Reconcile every account that has snapshots on the given day, each in its own transaction."""
        account_ids = list(
            SpendSnapshot.objects.filter(observation_date=observation_date)
            .values_list('account_id', flat=True)
            .distinct()
            .order_by('account_id')
        )
        summary: DayReconcileSummary = {'observation_date': observation_date, 'accounts': 0, 'records_written': 0}
        for account_id in account_ids:
            result = SpendReconciliationService.reconcile(account_id, observation_date, user=user)
            summary['accounts'] += 1
            summary['records_written'] += result['records_written']

        logger.info(
            f"✅ [Spending] Reconciled {summary['accounts']} accounts on {observation_date} "
            f"({summary['records_written']} records)"
        )
        return summary
