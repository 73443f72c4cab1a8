"""
Customer management service layer.
Core customer CRUD operations; cached counters are owned by CountSyncService.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.db import transaction
from django.db.models import ProtectedError

from apps.audit.services import AuditContext, AuditEventData, AuditService, model_values
from apps.common.types import BadRequestError, BusinessError, CustomerId, Err, NotFoundError, Ok, Result

from .models import Customer

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'contact_info', 'status', 'notes', 'assigned_staff')
WRITABLE_FIELDS = (*EDITABLE_FIELDS, 'assigned_staff_id')


class CustomerService:
    """Service class for customer management operations."""

    @staticmethod
    def get_customer(customer_id: CustomerId) -> Result[Customer, BusinessError]:
        try:
            return Ok(Customer.objects.get(pk=customer_id))
        except Customer.DoesNotExist:
            return Err(NotFoundError(f"Customer {customer_id} not found"))

    @staticmethod
    def create_customer(name: str, user: User | None = None, **fields: Any) -> Result[Customer, BusinessError]:
        """Create a new customer with basic validation."""
        if not name or not name.strip():
            return Err(BadRequestError("Customer name is required"))

        unknown = set(fields) - set(WRITABLE_FIELDS)
        if unknown:
            return Err(BadRequestError(f"Unknown customer fields: {', '.join(sorted(unknown))}"))

        with transaction.atomic():
            customer = Customer.objects.create(name=name.strip(), **fields)
            AuditService.emit_after_commit(
                AuditEventData(
                    action='create',
                    entity_type='customer',
                    entity_id=customer.pk,
                    new_values=model_values(customer, list(EDITABLE_FIELDS)),
                    description=f"Created customer {customer.name}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"✅ [Customer] Created customer: {customer.name} (ID: {customer.pk})")
        return Ok(customer)

    @staticmethod
    def update_customer(
        customer_id: CustomerId, user: User | None = None, **updates: Any
    ) -> Result[Customer, BusinessError]:
        """Update descriptive fields; counters cannot be written here."""
        unknown = set(updates) - set(WRITABLE_FIELDS)
        if unknown:
            return Err(BadRequestError(f"Fields not editable: {', '.join(sorted(unknown))}"))

        with transaction.atomic():
            customer = Customer.objects.select_for_update().filter(pk=customer_id).first()
            if customer is None:
                return Err(NotFoundError(f"Customer {customer_id} not found"))

            old_values = model_values(customer, list(updates))
            for field_name, value in updates.items():
                setattr(customer, field_name, value)
            customer.save()

            AuditService.emit_after_commit(
                AuditEventData(
                    action='update',
                    entity_type='customer',
                    entity_id=customer.pk,
                    old_values=old_values,
                    new_values=model_values(customer, list(updates)),
                    description=f"Updated customer {customer.name}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"📝 [Customer] Updated customer {customer.pk}: {sorted(updates)}")
        return Ok(customer)

    @staticmethod
    def delete_customer(customer_id: CustomerId, user: User | None = None) -> Result[None, BusinessError]:
        """Delete a customer that has no assigned accounts."""
        with transaction.atomic():
            customer = Customer.objects.filter(pk=customer_id).first()
            if customer is None:
                return Err(NotFoundError(f"Customer {customer_id} not found"))

            linked = customer.accounts.count()
            if linked:
                return Err(BadRequestError(f"Cannot delete customer with {linked} assigned accounts"))

            old_values = model_values(customer, ['name', 'status'])
            try:
                customer.delete()
            except ProtectedError:
                return Err(BadRequestError("Cannot delete customer with recorded spend or assignment history"))

            AuditService.emit_after_commit(
                AuditEventData(
                    action='delete',
                    entity_type='customer',
                    entity_id=customer_id,
                    old_values=old_values,
                    description=f"Deleted customer {old_values['name']}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"🗑️ [Customer] Deleted customer {customer_id}")
        return Ok(None)
