"""
Spend and dashboard queries for AdLedger.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, TypedDict

from django.db.models import Count, QuerySet, Sum
from django.utils import timezone

from apps.accounts.models import Account, Batch
from apps.audit.models import AuditEvent
from apps.audit.services import AuditQueryService
from apps.billing.models import BillingEntity
from apps.common.constants import (
    DEFAULT_CHART_DAYS,
    DEFAULT_RECENT_ACTIVITY,
    DEFAULT_TOP_SPENDERS,
    MONEY_QUANTUM,
    ZERO_AMOUNT,
)
from apps.common.types import AccountId, BatchId, BillingEntityId, CustomerId
from apps.customers.models import Customer

from .models import SpendRecord


class SpendSummary(TypedDict):
    total: Decimal
    record_count: int


class DailyTotal(TypedDict):
    date: date
    total: Decimal


class GlobalChart(TypedDict):
    total_amount: Decimal
    data: list[DailyTotal]


class EntityCounts(TypedDict):
    batches: int
    billing_entities: int
    customers: int
    accounts: int


def filtered_records(
    account_id: AccountId | None = None,
    billing_entity_id: BillingEntityId | None = None,
    customer_id: CustomerId | None = None,
    batch_id: BatchId | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> QuerySet[SpendRecord]:
    """Spend records matching every given filter; dates are inclusive."""
    queryset = SpendRecord.objects.all()
    if account_id is not None:
        queryset = queryset.filter(account_id=account_id)
    if billing_entity_id is not None:
        queryset = queryset.filter(billing_entity_id=billing_entity_id)
    if customer_id is not None:
        queryset = queryset.filter(customer_id=customer_id)
    if batch_id is not None:
        queryset = queryset.filter(account__batch_id=batch_id)
    if start_date is not None:
        queryset = queryset.filter(observation_date__gte=start_date)
    if end_date is not None:
        queryset = queryset.filter(observation_date__lte=end_date)
    return queryset


class SpendingQueryService:
    """Aggregations over reconciled spend records"""

    @staticmethod
    def summary(**filters: Any) -> SpendSummary:
        """Sum and count of spend records; accepts the filters of filtered_records()."""
        result = filtered_records(**filters).aggregate(total=Sum('amount'), record_count=Count('id'))
        total = (result['total'] or ZERO_AMOUNT).quantize(MONEY_QUANTUM)
        return {'total': total, 'record_count': result['record_count']}

    @staticmethod
    def daily_totals(start_date: date, end_date: date, **filters: Any) -> list[DailyTotal]:
        """Spend per observation date in [start_date, end_date]; days without spend are omitted."""
        rows = (
            filtered_records(start_date=start_date, end_date=end_date, **filters)
            .values('observation_date')
            .annotate(total=Sum('amount'))
            .order_by('observation_date')
        )
        return [
            {'date': row['observation_date'], 'total': (row['total'] or ZERO_AMOUNT).quantize(MONEY_QUANTUM)}
            for row in rows
        ]

    @staticmethod
    def account_chart(account_id: AccountId, days: int = DEFAULT_CHART_DAYS) -> list[DailyTotal]:
        """Daily spend for one account from `days` days ago through today, both ends included."""
        today = timezone.localdate()
        return SpendingQueryService.daily_totals(today - timedelta(days=days), today, account_id=account_id)

    @staticmethod
    def global_chart(days: int = DEFAULT_CHART_DAYS) -> GlobalChart:
        """Daily spend across all accounts over the same window as account_chart()."""
        today = timezone.localdate()
        data = SpendingQueryService.daily_totals(today - timedelta(days=days), today)
        return {'total_amount': sum((row['total'] for row in data), ZERO_AMOUNT), 'data': data}


class StatsService:
    """Dashboard statistics"""

    @staticmethod
    def entity_counts() -> EntityCounts:
        return {
            'batches': Batch.objects.count(),
            'billing_entities': BillingEntity.objects.count(),
            'customers': Customer.objects.count(),
            'accounts': Account.objects.count(),
        }

    @staticmethod
    def top_spenders(limit: int = DEFAULT_TOP_SPENDERS) -> list[Account]:
        return list(Account.objects.order_by('-total_spend', 'id')[:limit])

    @staticmethod
    def recent_activity(limit: int = DEFAULT_RECENT_ACTIVITY) -> list[AuditEvent]:
        return AuditQueryService.recent(limit)
