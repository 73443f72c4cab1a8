"""
Spending services re-export hub for AdLedger.
"""

from .query_service import (
    DailyTotal,
    EntityCounts,
    GlobalChart,
    SpendingQueryService,
    SpendSummary,
    StatsService,
    filtered_records,
)
from .reconciliation_service import (
    DayReconcileSummary,
    ReconcileResult,
    SpendReconciliationService,
    build_spend_records,
)
from .snapshot_service import SnapshotService

__all__ = [
    "DailyTotal",
    "DayReconcileSummary",
    "EntityCounts",
    "GlobalChart",
    "ReconcileResult",
    "SnapshotService",
    "SpendReconciliationService",
    "SpendSummary",
    "SpendingQueryService",
    "StatsService",
    "build_spend_records",
    "filtered_records",
]
