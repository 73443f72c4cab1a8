"""
Billing models for AdLedger
Partners and the billing entities ("MI", invoice providers) accounts are linked to.
"""

from __future__ import annotations

from typing import ClassVar

from django.db import models
from django.utils.translation import gettext_lazy as _

# ===============================================================================
# PARTNERS
# ===============================================================================

class Partner(models.Model):
    """Supplier of account batches and/or provider of billing entities"""

    PARTNER_TYPE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('account_supplier', _('Account Supplier')),
        ('invoice_provider', _('Invoice Provider')),
        ('both', _('Both')),
    )

    name = models.CharField(max_length=255)
    partner_type = models.CharField(max_length=20, choices=PARTNER_TYPE_CHOICES, default='both')
    contact_info = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'partner'
        verbose_name = _('Partner')
        verbose_name_plural = _('Partners')
        ordering: ClassVar[tuple[str, ...]] = ('name',)

    def __str__(self) -> str:
        return self.name

    @property
    def supplies_accounts(self) -> bool:
        return self.partner_type in ('account_supplier', 'both')

    @property
    def provides_invoices(self) -> bool:
        return self.partner_type in ('invoice_provider', 'both')


# ===============================================================================
# BILLING ENTITIES
# ===============================================================================

class BillingEntity(models.Model):
    """
    Invoicing unit accounts are linked to.

    linked_accounts and active_accounts are cached counters, refreshed only
    by CountSyncService from the current account pointers.
    """

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('active', _('Active')),
        ('pending', _('Pending')),
        ('exhausted', _('Exhausted')),
        ('inactive', _('Inactive')),
    )

    CREDIT_STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ('pending', _('Pending')),
        ('connected', _('Connected')),
        ('failed', _('Failed')),
    )

    name = models.CharField(max_length=255)
    external_id = models.CharField(max_length=64, unique=True, help_text=_('Invoice provider reference id'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    credit_status = models.CharField(max_length=20, choices=CREDIT_STATUS_CHOICES, default='pending')
    partner = models.ForeignKey(
        Partner,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='billing_entities',
    )
    notes = models.TextField(blank=True)

    # Cached counters
    linked_accounts = models.PositiveIntegerField(default=0)
    active_accounts = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_entity'
        verbose_name = _('Billing Entity')
        verbose_name_plural = _('Billing Entities')
        ordering: ClassVar[tuple[str, ...]] = ('name',)

    def __str__(self) -> str:
        return f"{self.name} ({self.external_id})"
