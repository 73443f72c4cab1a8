"""
Billing entity and partner management for AdLedger.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from apps.audit.services import AuditContext, AuditEventData, AuditService, model_values
from apps.common.types import (
    BadRequestError,
    BillingEntityId,
    BusinessError,
    ConflictError,
    Err,
    NotFoundError,
    Ok,
    Result,
)

from .models import BillingEntity, Partner

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)

BILLING_ENTITY_FIELDS = ('name', 'external_id', 'status', 'credit_status', 'partner', 'notes')
BILLING_ENTITY_WRITABLE = (*BILLING_ENTITY_FIELDS, 'partner_id')
PARTNER_FIELDS = ('name', 'partner_type', 'contact_info', 'notes')


def _check_fields(fields: dict[str, Any], allowed: tuple[str, ...]) -> BadRequestError | None:
    unknown = set(fields) - set(allowed)
    if unknown:
        return BadRequestError(f"Fields not editable: {', '.join(sorted(unknown))}")
    return None


class BillingEntityService:
    """Create, update and delete billing entities ("MI")"""

    @staticmethod
    def get_billing_entity(entity_id: BillingEntityId) -> Result[BillingEntity, BusinessError]:
        try:
            return Ok(BillingEntity.objects.get(pk=entity_id))
        except BillingEntity.DoesNotExist:
            return Err(NotFoundError(f"Billing entity {entity_id} not found"))

    @staticmethod
    def create_billing_entity(
        name: str, external_id: str, user: User | None = None, **fields: Any
    ) -> Result[BillingEntity, BusinessError]:
        """
        Create a billing entity.

        Safe to call inside an outer transaction: the insert runs in its own
        savepoint so a duplicate external id leaves the outer transaction usable.
        """
        if not name or not name.strip() or not external_id or not external_id.strip():
            return Err(BadRequestError("Billing entity name and external id are required"))
        error = _check_fields(fields, BILLING_ENTITY_WRITABLE)
        if error:
            return Err(error)

        try:
            with transaction.atomic():
                entity = BillingEntity.objects.create(name=name.strip(), external_id=external_id.strip(), **fields)
        except IntegrityError:
            logger.warning(f"⚠️ [Billing] Duplicate billing entity external id: {external_id}")
            return Err(ConflictError(f"Billing entity with external id {external_id} already exists"))

        AuditService.emit_after_commit(
            AuditEventData(
                action='create',
                entity_type='billing_entity',
                entity_id=entity.pk,
                new_values=model_values(entity, list(BILLING_ENTITY_FIELDS)),
                description=f"Created billing entity {entity.external_id}",
            ),
            AuditContext(user=user),
        )
        logger.info(f"✅ [Billing] Created billing entity {entity.external_id} (ID: {entity.pk})")
        return Ok(entity)

    @staticmethod
    def update_billing_entity(
        entity_id: BillingEntityId, user: User | None = None, **updates: Any
    ) -> Result[BillingEntity, BusinessError]:
        error = _check_fields(updates, BILLING_ENTITY_WRITABLE)
        if error:
            return Err(error)

        try:
            with transaction.atomic():
                entity = BillingEntity.objects.select_for_update().filter(pk=entity_id).first()
                if entity is None:
                    return Err(NotFoundError(f"Billing entity {entity_id} not found"))

                old_values = model_values(entity, list(updates))
                for field_name, value in updates.items():
                    setattr(entity, field_name, value)
                entity.save()
        except IntegrityError:
            return Err(ConflictError(f"Billing entity with external id {updates.get('external_id')} already exists"))

        AuditService.emit_after_commit(
            AuditEventData(
                action='update',
                entity_type='billing_entity',
                entity_id=entity.pk,
                old_values=old_values,
                new_values=model_values(entity, list(updates)),
                description=f"Updated billing entity {entity.external_id}",
            ),
            AuditContext(user=user),
        )
        logger.info(f"📝 [Billing] Updated billing entity {entity.pk}: {sorted(updates)}")
        return Ok(entity)

    @staticmethod
    def delete_billing_entity(entity_id: BillingEntityId, user: User | None = None) -> Result[None, BusinessError]:
        """Delete a billing entity that has no linked accounts."""
        with transaction.atomic():
            entity = BillingEntity.objects.filter(pk=entity_id).first()
            if entity is None:
                return Err(NotFoundError(f"Billing entity {entity_id} not found"))

            linked = entity.accounts.count()
            if linked:
                return Err(BadRequestError(f"Cannot delete billing entity with {linked} linked accounts"))

            old_values = model_values(entity, ['name', 'external_id', 'status'])
            try:
                entity.delete()
            except ProtectedError:
                return Err(BadRequestError("Cannot delete billing entity with recorded spend or assignment history"))

            AuditService.emit_after_commit(
                AuditEventData(
                    action='delete',
                    entity_type='billing_entity',
                    entity_id=entity_id,
                    old_values=old_values,
                    description=f"Deleted billing entity {old_values['external_id']}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"🗑️ [Billing] Deleted billing entity {entity_id}")
        return Ok(None)


class PartnerService:
    """Partner bookkeeping; partners only annotate batches and billing entities"""

    @staticmethod
    def create_partner(name: str, user: User | None = None, **fields: Any) -> Result[Partner, BusinessError]:
        if not name or not name.strip():
            return Err(BadRequestError("Partner name is required"))
        error = _check_fields(fields, PARTNER_FIELDS)
        if error:
            return Err(error)

        partner = Partner.objects.create(name=name.strip(), **fields)
        AuditService.emit_after_commit(
            AuditEventData(
                action='create',
                entity_type='partner',
                entity_id=partner.pk,
                new_values=model_values(partner, list(PARTNER_FIELDS)),
                description=f"Created partner {partner.name}",
            ),
            AuditContext(user=user),
        )
        logger.info(f"✅ [Billing] Created partner {partner.name} (ID: {partner.pk})")
        return Ok(partner)

    @staticmethod
    def update_partner(partner_id: int, user: User | None = None, **updates: Any) -> Result[Partner, BusinessError]:
        error = _check_fields(updates, PARTNER_FIELDS)
        if error:
            return Err(error)

        partner = Partner.objects.filter(pk=partner_id).first()
        if partner is None:
            return Err(NotFoundError(f"Partner {partner_id} not found"))

        old_values = model_values(partner, list(updates))
        for field_name, value in updates.items():
            setattr(partner, field_name, value)
        partner.save()

        AuditService.emit_after_commit(
            AuditEventData(
                action='update',
                entity_type='partner',
                entity_id=partner.pk,
                old_values=old_values,
                new_values=model_values(partner, list(updates)),
                description=f"Updated partner {partner.name}",
            ),
            AuditContext(user=user),
        )
        return Ok(partner)

    @staticmethod
    def delete_partner(partner_id: int, user: User | None = None) -> Result[None, BusinessError]:
        """Delete a partner; batches and billing entities keep existing with no partner."""
        partner = Partner.objects.filter(pk=partner_id).first()
        if partner is None:
            return Err(NotFoundError(f"Partner {partner_id} not found"))

        old_values = model_values(partner, ['name', 'partner_type'])
        partner.delete()
        AuditService.emit_after_commit(
            AuditEventData(
                action='delete',
                entity_type='partner',
                entity_id=partner_id,
                old_values=old_values,
                description=f"Deleted partner {old_values['name']}",
            ),
            AuditContext(user=user),
        )
        logger.info(f"🗑️ [Billing] Deleted partner {partner_id}")
        return Ok(None)
