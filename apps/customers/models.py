"""
Customer models for AdLedger
End customers ("MC") that ad accounts are assigned to for reporting and ownership.
"""

from __future__ import annotations

from decimal import Decimal
from typing import ClassVar

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.common.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS


class Customer(models.Model):
    """
    Customer an account is assigned to.

    total_accounts, active_accounts and total_spend are cached counters,
    refreshed only by CountSyncService from source rows.
    """

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('active', _('Active')),
        ('inactive', _('Inactive')),
    )

    name = models.CharField(max_length=255, verbose_name=_('Name'))
    contact_info = models.CharField(max_length=255, blank=True, verbose_name=_('Contact info'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    notes = models.TextField(blank=True)
    assigned_staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='managed_customers',
    )

    # Cached counters
    total_accounts = models.PositiveIntegerField(default=0)
    active_accounts = models.PositiveIntegerField(default=0)
    total_spend = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES, default=Decimal('0.00')
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customer'
        verbose_name = _('Customer')
        verbose_name_plural = _('Customers')
        ordering: ClassVar[tuple[str, ...]] = ('name',)

    def __str__(self) -> str:
        return self.name
