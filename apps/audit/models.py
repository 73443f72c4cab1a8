"""
Audit models for tracking ledger, allocation and spend changes.
"""

import uuid
from typing import ClassVar

from django.conf import settings
from django.db import models


class AuditEvent(models.Model):
    """Immutable activity log entry for a completed core operation."""

    ACTION_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('link_billing', 'Link Billing Entity'),
        ('unlink_billing', 'Unlink Billing Entity'),
        ('assign_customer', 'Assign Customer'),
        ('unassign_customer', 'Unassign Customer'),
        ('allocate', 'Allocate Accounts'),
        ('snapshot', 'Record Snapshot'),
        ('reconcile', 'Reconcile Spend'),
    )

    # Unique event ID
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # When
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    # Who
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_events',
    )
    actor_type = models.CharField(max_length=20, default='user')  # user, system

    # What
    action = models.CharField(max_length=30, choices=ACTION_CHOICES, db_index=True)
    entity_type = models.CharField(max_length=50)  # Account, Batch, BillingEntity, ...
    entity_id = models.CharField(max_length=64, db_index=True)  # "BULK" for multi-account operations

    # Changes
    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)

    # Context
    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'audit_event'
        ordering: ClassVar[tuple[str, ...]] = ('-timestamp',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['user', '-timestamp'], name='audit_event_user_id_5a1c2e_idx'),
            models.Index(fields=['entity_type', 'entity_id', '-timestamp'], name='audit_event_entity__8b7d41_idx'),
            models.Index(fields=['action', '-timestamp'], name='audit_event_action_3f9e07_idx'),
        )

    def __str__(self) -> str:
        return f"{self.action} on {self.entity_type}:{self.entity_id} by {self.user or 'System'}"
