"""
Billing services re-export hub for AdLedger.
"""

from .billing_entity_service import BillingEntityService, PartnerService

__all__ = [
    "BillingEntityService",
    "PartnerService",
]
