"""
Ad account models for AdLedger
Batches of advertising accounts, their current billing/customer pointers and
the append-only assignment history behind those pointers.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.common.constants import (
    DEFAULT_CURRENCY,
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    READINESS_MAX,
    READINESS_MIN,
)

# ===============================================================================
# BATCHES
# ===============================================================================

class Batch(models.Model):
    """
    Supply-side group of accounts ("MA").

    total_accounts and live_accounts are cached counters, refreshed only by
    CountSyncService.
    """

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('active', _('Active')),
        ('inactive', _('Inactive')),
    )

    name = models.CharField(max_length=255)
    external_id = models.CharField(max_length=64, unique=True, help_text=_('Manager account id on the ad platform'))
    partner = models.ForeignKey(
        'billing.Partner',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='batches',
    )
    timezone = models.CharField(max_length=64, help_text=_('Timezone of the accounts, e.g. "UTC+7"'))
    currency_class = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    year = models.PositiveSmallIntegerField()
    is_mixed_year = models.BooleanField(default=False)
    is_prelinked = models.BooleanField(default=False)
    readiness = models.PositiveSmallIntegerField(
        default=READINESS_MIN,
        validators=[MinValueValidator(READINESS_MIN), MaxValueValidator(READINESS_MAX)],
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    notes = models.TextField(blank=True)

    # Cached counters
    total_accounts = models.PositiveIntegerField(default=0)
    live_accounts = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'batch'
        verbose_name = _('Batch')
        verbose_name_plural = _('Batches')
        ordering: ClassVar[tuple[str, ...]] = ('-readiness', 'id')
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['timezone', 'year', 'status'], name='batch_timezon_4c2d9a_idx'),
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.external_id})"


# ===============================================================================
# ACCOUNTS
# ===============================================================================

class Account(models.Model):
    """
    Advertising account.

    billing_entity and customer are the *current* assignment pointers; they
    are only written by the assignment ledger, together with the matching
    history interval. total_spend is refreshed from spend records.
    """

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('active', _('Active')),
        ('inactive', _('Inactive')),
    )

    external_id = models.CharField(max_length=64, unique=True, help_text=_('Ad platform account id'))
    name = models.CharField(max_length=255)
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    timezone = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    batch = models.ForeignKey(Batch, on_delete=models.PROTECT, related_name='accounts')

    # Current assignment pointers
    billing_entity = models.ForeignKey(
        'billing.BillingEntity',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='accounts',
    )
    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='accounts',
    )

    total_spend = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, default=Decimal('0.00')
    )
    last_synced = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'account'
        verbose_name = _('Account')
        verbose_name_plural = _('Accounts')
        ordering: ClassVar[tuple[str, ...]] = ('id',)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['batch', 'status'], name='account_batch_i_1e8f37_idx'),
            models.Index(fields=['billing_entity', 'status'], name='account_billing_9a3b52_idx'),
            models.Index(fields=['customer', 'status'], name='account_custome_6d07c4_idx'),
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.external_id})"


# ===============================================================================
# ASSIGNMENT HISTORY
# ===============================================================================

class IntervalState(Enum):
    """State of an assignment interval; an open interval is the current one."""

    OPEN = "open"
    CLOSED = "closed"


class AssignmentReason:
    INITIAL = 'initial'
    REASSIGN = 'reassign'
    MIGRATION = 'migration'
    MANUAL_UNLINK = 'manual_unlink'

    CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (INITIAL, _('Initial')),
        (REASSIGN, _('Reassign')),
        (MIGRATION, _('Migration')),
        (MANUAL_UNLINK, _('Manual Unlink')),
    )


class IntervalQuerySet(models.QuerySet[Any]):
    """Single query entry point for interval state"""

    def in_state(self, state: IntervalState) -> IntervalQuerySet:
        return self.filter(ended_at__isnull=state is IntervalState.OPEN)

    def open(self) -> IntervalQuerySet:
        return self.in_state(IntervalState.OPEN)

    def closed(self) -> IntervalQuerySet:
        return self.in_state(IntervalState.CLOSED)

    def for_account(self, account_id: int) -> IntervalQuerySet:
        return self.filter(account_id=account_id)


class AssignmentInterval(models.Model):
    """
    Abstract assignment interval. Concrete subclasses add the account and target foreign keys.

    Rows are created on every link/reassign and only ever mutated to stamp the end.
    """

    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)
    started_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    ended_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    reason = models.CharField(max_length=20, choices=AssignmentReason.CHOICES)
    end_reason = models.CharField(max_length=20, choices=AssignmentReason.CHOICES, blank=True)

    objects = IntervalQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def state(self) -> IntervalState:
        return IntervalState.OPEN if self.ended_at is None else IntervalState.CLOSED


class BillingAssignment(AssignmentInterval):
    """Interval during which an account was linked to a billing entity"""

    account = models.ForeignKey(Account, on_delete=models.CASCADE, related_name='billing_assignments')
    billing_entity = models.ForeignKey(
        'billing.BillingEntity', on_delete=models.PROTECT, related_name='assignment_history'
    )

    class Meta:
        db_table = 'billing_assignment'
        ordering: ClassVar[tuple[str, ...]] = ('started_at', 'id')
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['account', 'ended_at'], name='billing_ass_account_2b7e11_idx'),
        )
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            models.UniqueConstraint(
                fields=['account'],
                condition=models.Q(ended_at__isnull=True),
                name='billing_assignment_one_open_per_account',
            ),
        )

    def __str__(self) -> str:
        return f"{self.account_id} -> billing {self.billing_entity_id} ({self.state.value})"


class CustomerAssignment(AssignmentInterval):
    """Interval during which an account was assigned to a customer"""

    account = models.ForeignKey(Account, on_delete=models.CASCADE, related_name='customer_assignments')
    customer = models.ForeignKey('customers.Customer', on_delete=models.PROTECT, related_name='assignment_history')

    class Meta:
        db_table = 'customer_assignment'
        ordering: ClassVar[tuple[str, ...]] = ('started_at', 'id')
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['account', 'ended_at'], name='customer_as_account_8c4f60_idx'),
        )
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            models.UniqueConstraint(
                fields=['account'],
                condition=models.Q(ended_at__isnull=True),
                name='customer_assignment_one_open_per_account',
            ),
        )

    def __str__(self) -> str:
        return f"{self.account_id} -> customer {self.customer_id} ({self.state.value})"
