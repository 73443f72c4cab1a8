"""
Account services re-export hub for AdLedger.
Feature modules: ledger, count sync, allocation, account/batch management.
"""

from .account_service import AccountQueryService, AccountService, BatchService
from .allocation_service import (
    AllocationProposal,
    AllocationService,
    ExecutionResult,
    LinkSelection,
    NewBillingEntity,
    Requirement,
    unassigned_accounts,
)
from .count_sync_service import CountSyncService, SyncSummary
from .ledger_service import AssignmentChange, AssignmentLedger, billing_ledger, customer_ledger

__all__ = [
    "AccountQueryService",
    "AccountService",
    "AllocationProposal",
    "AllocationService",
    "AssignmentChange",
    "AssignmentLedger",
    "BatchService",
    "CountSyncService",
    "ExecutionResult",
    "LinkSelection",
    "NewBillingEntity",
    "Requirement",
    "SyncSummary",
    "billing_ledger",
    "customer_ledger",
    "unassigned_accounts",
]
