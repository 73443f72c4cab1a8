"""
Account and batch management for AdLedger.

Entity CRUD returns Result values; bulk status change is a core ledger-style
operation and raises typed errors so its transaction rolls back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from apps.audit.services import AuditContext, AuditEventData, AuditService, model_values
from apps.common.constants import READINESS_MAX, READINESS_MIN
from apps.common.types import (
    AccountId,
    BadRequestError,
    BatchId,
    BusinessError,
    ConflictError,
    Err,
    NotFoundError,
    Ok,
    Result,
)

from .count_sync_service import CountSyncService
from .models import Account, Batch

if TYPE_CHECKING:
    from django.contrib.auth.models import User
    from django.db.models import QuerySet

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = ('name', 'currency', 'timezone', 'status')
ACCOUNT_LEDGER_FIELDS = ('batch', 'batch_id', 'billing_entity', 'billing_entity_id', 'customer', 'customer_id')
BATCH_FIELDS = (
    'name', 'external_id', 'partner', 'timezone', 'currency_class', 'year',
    'is_mixed_year', 'is_prelinked', 'readiness', 'status', 'notes',
)
BATCH_WRITABLE = (*BATCH_FIELDS, 'partner_id')
ACCOUNT_STATUSES = frozenset(value for value, _label in Account.STATUS_CHOICES)


class AccountService:
    """Account lifecycle outside of the assignment ledger"""

    @staticmethod
    def get_account(account_id: AccountId) -> Result[Account, BusinessError]:
        try:
            return Ok(Account.objects.select_related('batch', 'billing_entity', 'customer').get(pk=account_id))
        except Account.DoesNotExist:
            return Err(NotFoundError(f"Account {account_id} not found"))

    @staticmethod
    def create_account(
        external_id: str, name: str, batch_id: BatchId, user: User | None = None, **fields: Any
    ) -> Result[Account, BusinessError]:
        """Create an unassigned account in a batch."""
        if not external_id or not external_id.strip():
            return Err(BadRequestError("Account external id is required"))
        unknown = set(fields) - set(ACCOUNT_FIELDS)
        if unknown:
            return Err(BadRequestError(f"Fields not editable: {', '.join(sorted(unknown))}"))
        if fields.get('status', 'active') not in ACCOUNT_STATUSES:
            return Err(BadRequestError(f"Invalid account status: {fields['status']}"))

        with transaction.atomic():
            if not Batch.objects.filter(pk=batch_id).exists():
                return Err(NotFoundError(f"Batch {batch_id} not found"))
            try:
                with transaction.atomic():
                    account = Account.objects.create(
                        external_id=external_id.strip(), name=name, batch_id=batch_id, **fields
                    )
            except IntegrityError:
                return Err(ConflictError(f"Account with external id {external_id} already exists"))

            CountSyncService.sync_batch_counts(batch_id)
            AuditService.emit_after_commit(
                AuditEventData(
                    action='create',
                    entity_type='account',
                    entity_id=account.pk,
                    new_values=model_values(account, ['external_id', 'name', 'batch', *ACCOUNT_FIELDS]),
                    description=f"Created account {account.external_id}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"✅ [Account] Created account {account.external_id} in batch {batch_id}")
        return Ok(account)

    @staticmethod
    def update_account(
        account_id: AccountId, user: User | None = None, **updates: Any
    ) -> Result[Account, BusinessError]:
        """
        Update descriptive fields and status. Batch membership is immutable and
        assignment pointers only move through the ledger.
        """
        forbidden = set(updates) & set(ACCOUNT_LEDGER_FIELDS)
        if forbidden:
            return Err(BadRequestError(f"Fields not editable here: {', '.join(sorted(forbidden))}"))
        unknown = set(updates) - set(ACCOUNT_FIELDS)
        if unknown:
            return Err(BadRequestError(f"Fields not editable: {', '.join(sorted(unknown))}"))
        if 'status' in updates and updates['status'] not in ACCOUNT_STATUSES:
            return Err(BadRequestError(f"Invalid account status: {updates['status']}"))

        with transaction.atomic():
            account = Account.objects.select_for_update().filter(pk=account_id).first()
            if account is None:
                return Err(NotFoundError(f"Account {account_id} not found"))

            old_values = model_values(account, list(updates))
            status_changed = 'status' in updates and updates['status'] != account.status
            for field_name, value in updates.items():
                setattr(account, field_name, value)
            account.save()

            if status_changed:
                CountSyncService.sync_touched(
                    batch_ids=[account.batch_id],
                    billing_entity_ids=[account.billing_entity_id],
                    customer_ids=[account.customer_id],
                )

            AuditService.emit_after_commit(
                AuditEventData(
                    action='status_change' if status_changed else 'update',
                    entity_type='account',
                    entity_id=account.pk,
                    old_values=old_values,
                    new_values=model_values(account, list(updates)),
                    description=f"Updated account {account.external_id}",
                ),
                AuditContext(user=user),
            )

        return Ok(account)

    @staticmethod
    def bulk_update_status(account_ids: Iterable[AccountId], status: str, user: User | None = None) -> int:
        """
        Set status on many accounts in one transaction and resync every touched
        batch, billing entity and customer. Returns the number of accounts whose
        status changed.

        Raises:
            BadRequestError: Unknown status
            NotFoundError: Any account id does not exist (nothing is changed)
        """
        if status not in ACCOUNT_STATUSES:
            raise BadRequestError(f"Invalid account status: {status}")

        ids = sorted(set(account_ids))
        with transaction.atomic():
            accounts = list(Account.objects.select_for_update().filter(pk__in=ids).order_by('id'))
            missing = set(ids) - {account.pk for account in accounts}
            if missing:
                raise NotFoundError(f"Accounts not found: {', '.join(str(i) for i in sorted(missing))}")

            changed = [account for account in accounts if account.status != status]
            Account.objects.filter(pk__in=[account.pk for account in changed]).update(status=status)

            CountSyncService.sync_touched(
                batch_ids=[account.batch_id for account in changed],
                billing_entity_ids=[account.billing_entity_id for account in changed],
                customer_ids=[account.customer_id for account in changed],
            )

            if changed:
                AuditService.emit_after_commit(
                    AuditEventData(
                        action='status_change',
                        entity_type='account',
                        entity_id='BULK',
                        old_values={'accounts': {str(account.pk): account.status for account in changed}},
                        new_values={'status': status, 'account_ids': [account.pk for account in changed]},
                        description=f"Bulk status change to {status} for {len(changed)} accounts",
                    ),
                    AuditContext(user=user),
                )

        logger.info(f"🔄 [Account] Bulk status {status}: {len(changed)} changed, {len(ids) - len(changed)} unchanged")
        return len(changed)

    @staticmethod
    def delete_account(account_id: AccountId, user: User | None = None) -> Result[None, BusinessError]:
        """Delete an account that is not assigned and has no spend history."""
        with transaction.atomic():
            account = Account.objects.filter(pk=account_id).first()
            if account is None:
                return Err(NotFoundError(f"Account {account_id} not found"))
            if account.billing_entity_id is not None or account.customer_id is not None:
                return Err(BadRequestError("Cannot delete an account that is still linked or assigned"))

            old_values = model_values(account, ['external_id', 'name', 'batch'])
            try:
                account.delete()
            except ProtectedError:
                return Err(BadRequestError("Cannot delete an account with spend history"))

            CountSyncService.sync_batch_counts(old_values['batch'])
            AuditService.emit_after_commit(
                AuditEventData(
                    action='delete',
                    entity_type='account',
                    entity_id=account_id,
                    old_values=old_values,
                    description=f"Deleted account {old_values['external_id']}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"🗑️ [Account] Deleted account {account_id}")
        return Ok(None)


class AccountQueryService:
    """Read-side account lists"""

    @staticmethod
    def unlinked(batch_id: BatchId | None = None) -> QuerySet[Account]:
        """Active accounts without a billing entity"""
        queryset = Account.objects.filter(status='active', billing_entity__isnull=True)
        if batch_id is not None:
            queryset = queryset.filter(batch_id=batch_id)
        return queryset.select_related('batch').order_by('id')

    @staticmethod
    def unassigned(batch_id: BatchId | None = None) -> QuerySet[Account]:
        """Active accounts without a customer"""
        queryset = Account.objects.filter(status='active', customer__isnull=True)
        if batch_id is not None:
            queryset = queryset.filter(batch_id=batch_id)
        return queryset.select_related('batch').order_by('id')


def _validate_batch_fields(fields: dict[str, Any]) -> BadRequestError | None:
    unknown = set(fields) - set(BATCH_WRITABLE)
    if unknown:
        return BadRequestError(f"Fields not editable: {', '.join(sorted(unknown))}")
    readiness = fields.get('readiness')
    if readiness is not None and not READINESS_MIN <= readiness <= READINESS_MAX:
        return BadRequestError(f"Readiness must be between {READINESS_MIN} and {READINESS_MAX}")
    return None


class BatchService:
    """Create, update and delete batches"""

    @staticmethod
    def get_batch(batch_id: BatchId) -> Result[Batch, BusinessError]:
        try:
            return Ok(Batch.objects.get(pk=batch_id))
        except Batch.DoesNotExist:
            return Err(NotFoundError(f"Batch {batch_id} not found"))

    @staticmethod
    def create_batch(
        name: str, external_id: str, timezone: str, year: int, user: User | None = None, **fields: Any
    ) -> Result[Batch, BusinessError]:
        if not name or not external_id or not timezone:
            return Err(BadRequestError("Batch name, external id and timezone are required"))
        error = _validate_batch_fields(fields)
        if error:
            return Err(error)

        try:
            with transaction.atomic():
                batch = Batch.objects.create(
                    name=name, external_id=external_id, timezone=timezone, year=year, **fields
                )
        except IntegrityError:
            return Err(ConflictError(f"Batch with external id {external_id} already exists"))

        AuditService.emit_after_commit(
            AuditEventData(
                action='create',
                entity_type='batch',
                entity_id=batch.pk,
                new_values=model_values(batch, list(BATCH_FIELDS)),
                description=f"Created batch {batch.name}",
            ),
            AuditContext(user=user),
        )
        logger.info(f"✅ [Batch] Created batch {batch.name} (ID: {batch.pk})")
        return Ok(batch)

    @staticmethod
    def update_batch(batch_id: BatchId, user: User | None = None, **updates: Any) -> Result[Batch, BusinessError]:
        error = _validate_batch_fields(updates)
        if error:
            return Err(error)

        try:
            with transaction.atomic():
                batch = Batch.objects.select_for_update().filter(pk=batch_id).first()
                if batch is None:
                    return Err(NotFoundError(f"Batch {batch_id} not found"))
                old_values = model_values(batch, list(updates))
                for field_name, value in updates.items():
                    setattr(batch, field_name, value)
                batch.save()
        except IntegrityError:
            return Err(ConflictError(f"Batch with external id {updates.get('external_id')} already exists"))

        AuditService.emit_after_commit(
            AuditEventData(
                action='update',
                entity_type='batch',
                entity_id=batch.pk,
                old_values=old_values,
                new_values=model_values(batch, list(updates)),
                description=f"Updated batch {batch.name}",
            ),
            AuditContext(user=user),
        )
        return Ok(batch)

    @staticmethod
    def delete_batch(batch_id: BatchId, user: User | None = None) -> Result[None, BusinessError]:
        """Delete a batch that has no accounts."""
        with transaction.atomic():
            batch = Batch.objects.filter(pk=batch_id).first()
            if batch is None:
                return Err(NotFoundError(f"Batch {batch_id} not found"))

            account_count = batch.accounts.count()
            if account_count:
                return Err(BadRequestError(f"Cannot delete batch with {account_count} accounts"))

            old_values = model_values(batch, ['name', 'external_id'])
            batch.delete()
            AuditService.emit_after_commit(
                AuditEventData(
                    action='delete',
                    entity_type='batch',
                    entity_id=batch_id,
                    old_values=old_values,
                    description=f"Deleted batch {old_values['name']}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"🗑️ [Batch] Deleted batch {batch_id}")
        return Ok(None)
