"""
Customer services re-export hub for AdLedger.
"""

from .customer_service import CustomerService

__all__ = [
    "CustomerService",
]
