"""
Spending models for AdLedger
Raw cumulative spend snapshots and the reconciled, attributable spend records
derived from them.
"""

from __future__ import annotations

from typing import ClassVar

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.common.constants import DEFAULT_CURRENCY, MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS


class SpendSnapshot(models.Model):
    """
    Point-in-time read of an account's cumulative spend for one day.

    billing_entity and customer record which targets were current on the
    account when the snapshot was taken. Snapshots are never modified.
    """

    SOURCE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('manual', _('Manual')),
        ('import', _('Import')),
    )

    account = models.ForeignKey('accounts.Account', on_delete=models.PROTECT, related_name='snapshots')
    observation_date = models.DateField()
    cumulative_amount = models.DecimalField(max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    observed_at = models.DateTimeField()
    billing_entity = models.ForeignKey(
        'billing.BillingEntity', on_delete=models.PROTECT, null=True, blank=True, related_name='snapshots'
    )
    customer = models.ForeignKey(
        'customers.Customer', on_delete=models.PROTECT, null=True, blank=True, related_name='snapshots'
    )
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='manual')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'spend_snapshot'
        verbose_name = _('Spend Snapshot')
        verbose_name_plural = _('Spend Snapshots')
        ordering: ClassVar[tuple[str, ...]] = ('account', 'observation_date', 'observed_at', 'id')
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['account', 'observation_date', 'observed_at'], name='spend_snaps_account_3e1a90_idx'),
            models.Index(fields=['observation_date'], name='spend_snaps_observa_7b2c15_idx'),
        )

    def __str__(self) -> str:
        return f"{self.account_id} @ {self.observed_at:%Y-%m-%d %H:%M}: {self.cumulative_amount}"


class SpendRecord(models.Model):
    """
    Non-negative slice of spend between period_start and period_end,
    attributed to one billing entity and one customer.

    Regenerated wholesale per account and day by the reconciliation service.
    """

    account = models.ForeignKey('accounts.Account', on_delete=models.PROTECT, related_name='spend_records')
    observation_date = models.DateField()
    amount = models.DecimalField(max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES)
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    period_start = models.DateTimeField()
    period_end = models.DateTimeField()
    billing_entity = models.ForeignKey(
        'billing.BillingEntity', on_delete=models.PROTECT, null=True, blank=True, related_name='spend_records'
    )
    customer = models.ForeignKey(
        'customers.Customer', on_delete=models.PROTECT, null=True, blank=True, related_name='spend_records'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'spend_record'
        verbose_name = _('Spend Record')
        verbose_name_plural = _('Spend Records')
        ordering: ClassVar[tuple[str, ...]] = ('account', 'observation_date', 'period_end')
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            models.UniqueConstraint(
                fields=['account', 'observation_date', 'period_end'],
                name='spend_record_unique_period_end',
            ),
        )
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=['observation_date'], name='spend_recor_observa_0d6f42_idx'),
            models.Index(fields=['billing_entity', 'observation_date'], name='spend_recor_billing_5c8e21_idx'),
            models.Index(fields=['customer', 'observation_date'], name='spend_recor_custome_a41b73_idx'),
        )

    def __str__(self) -> str:
        return f"{self.account_id} {self.period_start:%H:%M}-{self.period_end:%H:%M}: {self.amount} {self.currency}"
