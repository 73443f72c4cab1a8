"""
Spend snapshot intake for AdLedger.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Account
from apps.audit.services import AuditContext, AuditEventData, AuditService
from apps.common.types import AccountId, BadRequestError, NotFoundError

from .models import SpendSnapshot

if TYPE_CHECKING:
    from django.contrib.auth.models import User
    from django.db.models import QuerySet

logger = logging.getLogger(__name__)

SNAPSHOT_SOURCES = frozenset(value for value, _label in SpendSnapshot.SOURCE_CHOICES)


class SnapshotService:
    """Store cumulative spend reads stamped with the account's current targets"""

    @staticmethod
    def record_snapshot(
        account_id: AccountId,
        cumulative_amount: Decimal | str,
        observed_at: datetime | None = None,
        observation_date: date | None = None,
        source: str = 'manual',
        user: User | None = None,
    ) -> SpendSnapshot:
        """
        Persist a snapshot. The billing entity and customer current on the
        account at call time are copied onto the snapshot; observation_date
        defaults to the local date of observed_at.

        Raises:
            BadRequestError: Amount is not a non-negative decimal, or unknown source
            NotFoundError: The account does not exist
        """
        try:
            amount = Decimal(str(cumulative_amount))
        except InvalidOperation as e:
            raise BadRequestError(f"Invalid cumulative amount: {cumulative_amount}") from e
        if not amount.is_finite() or amount < 0:
            raise BadRequestError(f"Cumulative amount must be a non-negative number, got {cumulative_amount}")
        if source not in SNAPSHOT_SOURCES:
            raise BadRequestError(f"Unknown snapshot source: {source}")

        with transaction.atomic():
            # Same row lock as the ledger: targets stay fixed until the snapshot is stamped
            account = Account.objects.select_for_update().filter(pk=account_id).first()
            if account is None:
                raise NotFoundError(f"Account {account_id} not found")

            observed_at = observed_at or timezone.now()
            snapshot = SpendSnapshot.objects.create(
                account=account,
                observation_date=observation_date or timezone.localdate(observed_at),
                cumulative_amount=amount,
                observed_at=observed_at,
                billing_entity_id=account.billing_entity_id,
                customer_id=account.customer_id,
                source=source,
                created_by=user,
            )

            AuditService.emit_after_commit(
                AuditEventData(
                    action='snapshot',
                    entity_type='account',
                    entity_id=account.pk,
                    new_values={
                        'observation_date': snapshot.observation_date,
                        'cumulative_amount': amount,
                        'observed_at': observed_at,
                    },
                    description=f"Recorded spend snapshot {amount} for {account.external_id}",
                ),
                AuditContext(user=user),
            )

        logger.debug(f"📸 [Spending] Snapshot {amount} for account {account.pk} at {observed_at}")
        return snapshot

    @staticmethod
    def list_snapshots(account_id: AccountId, observation_date: date | None = None) -> QuerySet[SpendSnapshot]:
        queryset = SpendSnapshot.objects.filter(account_id=account_id)
        if observation_date is not None:
            queryset = queryset.filter(observation_date=observation_date)
        return queryset.order_by('observation_date', 'observed_at', 'id')
