"""
Assignment ledger for AdLedger.

Owns the current billing entity / customer pointer on each account together
with the append-only interval history behind it. One ledger instance exists
per target type; both share the same close-then-open discipline:

- accounts are locked in id order before any interval is touched
- the open interval (if any) is stamped closed before a new one is opened
- pointer and open interval are written in the same transaction
- counters of every touched target are resynced before commit
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.db import models, transaction
from django.utils import timezone

from apps.audit.services import AuditContext, AuditEventData, AuditService
from apps.billing.models import BillingEntity
from apps.common.types import AccountId, BadRequestError, NotFoundError
from apps.customers.models import Customer

from .count_sync_service import CountSyncService
from .models import Account, AssignmentInterval, AssignmentReason, BillingAssignment, CustomerAssignment

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)

ASSIGN_REASONS = frozenset({AssignmentReason.INITIAL, AssignmentReason.REASSIGN, AssignmentReason.MIGRATION})
UNASSIGN_REASONS = frozenset({AssignmentReason.MANUAL_UNLINK, AssignmentReason.MIGRATION})
BULK_ENTITY_ID = 'BULK'


@dataclass(frozen=True)
class AssignmentChange:
    """Outcome of one ledger operation on one account"""
    account_id: AccountId
    previous_target_id: int | None
    target_id: int | None

    @property
    def changed(self) -> bool:
        return self.previous_target_id != self.target_id


class AssignmentLedger:
    """Current pointer + interval history for one target type"""

    def __init__(
        self,
        *,
        interval_model: type[AssignmentInterval],
        target_model: type[models.Model],
        pointer: str,
        label: str,
        assign_action: str,
        unassign_action: str,
        sync_targets: Callable[[Iterable[int | None]], Any],
    ) -> None:
        self.interval_model = interval_model
        self.target_model = target_model
        self.pointer = pointer
        self.pointer_attname = f"{pointer}_id"
        self.label = label
        self.assign_action = assign_action
        self.unassign_action = unassign_action
        self.sync_targets = sync_targets

    # ===============================================================================
    # QUERIES
    # ===============================================================================

    def current(self, account_id: AccountId) -> AssignmentInterval | None:
        """The open interval for the account, if any"""
        return self.interval_model.objects.for_account(account_id).open().first()

    def history(self, account_id: AccountId) -> list[AssignmentInterval]:
        """All intervals for the account, oldest first"""
        return list(
            self.interval_model.objects.for_account(account_id)
            .select_related(self.pointer, 'started_by', 'ended_by')
            .order_by('started_at', 'id')
        )

    # ===============================================================================
    # MUTATIONS
    # ===============================================================================

    def assign(
        self, account_id: AccountId, target_id: int, user: User | None = None, reason: str | None = None
    ) -> AssignmentChange:
        """
        Point the account at target_id. Assigning to the current target is a
        no-op and writes no history. Without an explicit reason the interval is
        recorded as INITIAL, or REASSIGN when another target was current.
        """
        self._validate_reason(reason, ASSIGN_REASONS)
        return self._run([account_id], target_id, user, reason, bulk=False)[0]

    def unassign(
        self, account_id: AccountId, user: User | None = None, reason: str = AssignmentReason.MANUAL_UNLINK
    ) -> AssignmentChange:
        """Close the open interval (if any) and clear the pointer."""
        self._validate_reason(reason, UNASSIGN_REASONS)
        return self._run([account_id], None, user, reason, bulk=False)[0]

    def bulk_reassign(
        self,
        account_ids: Iterable[AccountId],
        target_id: int,
        user: User | None = None,
        reason: str | None = None,
    ) -> list[AssignmentChange]:
        """Assign many accounts in one transaction; any unknown id rolls back all of them."""
        self._validate_reason(reason, ASSIGN_REASONS)
        return self._run(account_ids, target_id, user, reason, bulk=True)

    def bulk_unassign(
        self,
        account_ids: Iterable[AccountId],
        user: User | None = None,
        reason: str = AssignmentReason.MANUAL_UNLINK,
    ) -> list[AssignmentChange]:
        self._validate_reason(reason, UNASSIGN_REASONS)
        return self._run(account_ids, None, user, reason, bulk=True)

    # ===============================================================================
    # INTERNALS
    # ===============================================================================

    def _validate_reason(self, reason: str | None, allowed: frozenset[str]) -> None:
        if reason is not None and reason not in allowed:
            raise BadRequestError(f"Invalid {self.label} assignment reason: {reason}")

    def _lock_accounts(self, account_ids: Iterable[AccountId]) -> list[Account]:
        ids = sorted(set(account_ids))
        accounts = list(Account.objects.select_for_update().filter(pk__in=ids).order_by('id'))
        missing = set(ids) - {account.pk for account in accounts}
        if missing:
            raise NotFoundError(f"Accounts not found: {', '.join(str(i) for i in sorted(missing))}")
        return accounts

    def _run(
        self,
        account_ids: Iterable[AccountId],
        target_id: int | None,
        user: User | None,
        reason: str | None,
        *,
        bulk: bool,
    ) -> list[AssignmentChange]:
        with transaction.atomic():
            accounts = self._lock_accounts(account_ids)
            if target_id is not None and not self.target_model.objects.filter(pk=target_id).exists():
                raise NotFoundError(f"{self.label.capitalize()} {target_id} not found")

            now = timezone.now()
            changes = [self._apply(account, target_id, user, reason, now) for account in accounts]
            applied = [change for change in changes if change.changed]

            touched: set[int | None] = set()
            for change in applied:
                touched.update((change.previous_target_id, change.target_id))
            self.sync_targets(touched)

            if applied:
                self._emit_audit(applied, target_id, user, reason, bulk=bulk)

        if applied:
            verb = 'Unassigned' if target_id is None else f'Assigned {self.label} {target_id} to'
            logger.info(f"🔗 [Ledger] {verb} {len(applied)} account(s) ({len(changes) - len(applied)} unchanged)")
        return changes

    def _apply(
        self,
        account: Account,
        target_id: int | None,
        user: User | None,
        reason: str | None,
        now: datetime,
    ) -> AssignmentChange:
        previous_id = getattr(account, self.pointer_attname)
        if previous_id == target_id:
            return AssignmentChange(account.pk, previous_id, target_id)

        if target_id is None:
            closing_reason = reason or AssignmentReason.MANUAL_UNLINK
        elif reason is None:
            closing_reason = AssignmentReason.REASSIGN
        else:
            closing_reason = reason
        self.interval_model.objects.for_account(account.pk).open().update(
            ended_at=now, ended_by=user, end_reason=closing_reason
        )

        if target_id is not None:
            opening_reason = reason or (
                AssignmentReason.REASSIGN if previous_id is not None else AssignmentReason.INITIAL
            )
            self.interval_model.objects.create(
                account=account,
                started_at=now,
                started_by=user,
                reason=opening_reason,
                **{self.pointer_attname: target_id},
            )

        setattr(account, self.pointer_attname, target_id)
        account.save(update_fields=[self.pointer, 'updated_at'])
        return AssignmentChange(account.pk, previous_id, target_id)

    def _emit_audit(
        self,
        applied: list[AssignmentChange],
        target_id: int | None,
        user: User | None,
        reason: str | None,
        *,
        bulk: bool,
    ) -> None:
        action = self.unassign_action if target_id is None else self.assign_action
        if bulk:
            event = AuditEventData(
                action=action,
                entity_type='account',
                entity_id=BULK_ENTITY_ID,
                old_values={
                    'accounts': {str(change.account_id): change.previous_target_id for change in applied}
                },
                new_values={self.pointer_attname: target_id, 'account_ids': [c.account_id for c in applied]},
                description=f"Bulk {action} for {len(applied)} accounts",
            )
        else:
            change = applied[0]
            event = AuditEventData(
                action=action,
                entity_type='account',
                entity_id=change.account_id,
                old_values={self.pointer_attname: change.previous_target_id},
                new_values={self.pointer_attname: target_id},
                description=f"{action} account {change.account_id}",
            )
        AuditService.emit_after_commit(event, AuditContext(user=user, metadata={'reason': reason or ''}))


billing_ledger = AssignmentLedger(
    interval_model=BillingAssignment,
    target_model=BillingEntity,
    pointer='billing_entity',
    label='billing entity',
    assign_action='link_billing',
    unassign_action='unlink_billing',
    sync_targets=lambda ids: CountSyncService.sync_touched(billing_entity_ids=ids),
)

customer_ledger = AssignmentLedger(
    interval_model=CustomerAssignment,
    target_model=Customer,
    pointer='customer',
    label='customer',
    assign_action='assign_customer',
    unassign_action='unassign_customer',
    sync_targets=lambda ids: CountSyncService.sync_touched(customer_ids=ids),
)
