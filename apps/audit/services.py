"""
Audit services for AdLedger
Activity logging for ledger, allocation and spend operations.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db import models, transaction

from .models import AuditEvent

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)


class AuditJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for audit values and metadata.

    Handles types that are not serializable by default:
    - UUID objects (convert to string)
    - date/datetime objects (convert to ISO format)
    - Decimal objects (convert to string to preserve precision)
    - Model instances (convert to "Class(pk=...)")
    - sets (convert to sorted list)
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        elif isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, Decimal):
            return str(obj)
        elif isinstance(obj, models.Model):
            return f"{obj.__class__.__name__}(pk={obj.pk})"
        elif isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)

        return super().default(obj)


def serialize_values(values: dict[str, Any] | None) -> dict[str, Any]:
    """
    Round-trip a values dictionary through AuditJSONEncoder so it is safe
    for JSONField storage.

    Raises:
        TypeError: If values contain objects the encoder cannot handle
    """
    if not values:
        return {}
    return json.loads(json.dumps(values, cls=AuditJSONEncoder, ensure_ascii=False))


def model_values(instance: models.Model, fields: list[str]) -> dict[str, Any]:
    """Capture selected field values of a model instance (FKs as raw ids)."""
    values: dict[str, Any] = {}
    for name in fields:
        model_field = instance._meta.get_field(name)
        values[name] = getattr(instance, model_field.attname)
    return values


@dataclass
class AuditContext:
    """Parameter object for audit event context information"""
    user: User | None = None
    actor_type: str = 'user'
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuditEventData:
    """Parameter object for audit event data"""
    action: str
    entity_type: str
    entity_id: Any
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    description: str = ''


class AuditService:
    """Centralized audit logging service"""

    @staticmethod
    def log_event(event_data: AuditEventData, context: AuditContext | None = None) -> AuditEvent:
        """
        📝 Persist an audit event.

        Raises on failure; callers that must not be affected by audit problems
        go through emit_after_commit().
        """
        if context is None:
            context = AuditContext()

        actor_type = context.actor_type if context.user else 'system'
        audit_event = AuditEvent.objects.create(
            user=context.user,
            actor_type=actor_type,
            action=event_data.action,
            entity_type=event_data.entity_type,
            entity_id=str(event_data.entity_id),
            old_values=serialize_values(event_data.old_values),
            new_values=serialize_values(event_data.new_values),
            description=event_data.description,
            metadata=serialize_values(context.metadata),
        )

        logger.info(
            f"✅ [Audit] {event_data.action} on {event_data.entity_type}:{event_data.entity_id} "
            f"by {context.user or 'System'}"
        )
        return audit_event

    @staticmethod
    def log_event_safe(event_data: AuditEventData, context: AuditContext | None = None) -> AuditEvent | None:
        """Best-effort variant of log_event: failures are logged, never raised."""
        try:
            return AuditService.log_event(event_data, context)
        except Exception as e:
            logger.error(f"🔥 [Audit] Failed to log event {event_data.action}: {e}")
            return None

    @staticmethod
    def emit_after_commit(event_data: AuditEventData, context: AuditContext | None = None) -> None:
        """
        Schedule an audit event for after the surrounding transaction commits.

        Outside of a transaction the event is written immediately. A rolled-back
        mutation never produces an event, and an audit failure never rolls back
        the mutation.
        """
        transaction.on_commit(lambda: AuditService.log_event_safe(event_data, context))


class AuditQueryService:
    """Read access to the activity log"""

    @staticmethod
    def recent(limit: int) -> list[AuditEvent]:
        return list(AuditEvent.objects.select_related('user').order_by('-timestamp')[:limit])

    @staticmethod
    def for_entity(entity_type: str, entity_id: Any) -> list[AuditEvent]:
        return list(
            AuditEvent.objects.filter(entity_type=entity_type, entity_id=str(entity_id)).order_by('-timestamp')
        )
