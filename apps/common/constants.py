"""
AdLedger Constants

Centralized business constants shared by the accounts, billing, customers
and spending apps.
"""

from decimal import Decimal
from typing import Final

# ===============================================================================
# BATCH READINESS 🎯
# ===============================================================================

READINESS_MIN: Final[int] = 0
READINESS_MAX: Final[int] = 10

# ===============================================================================
# ALLOCATION ⚡
# ===============================================================================

# Candidate accounts fetched per batch = count * headroom, for UI swapping
ALLOCATION_HEADROOM_FACTOR: Final[int] = 2

# ===============================================================================
# MONEY 💸
# ===============================================================================

MONEY_MAX_DIGITS: Final[int] = 18
MONEY_DECIMAL_PLACES: Final[int] = 2
MONEY_QUANTUM: Final[Decimal] = Decimal(10) ** -MONEY_DECIMAL_PLACES
ZERO_AMOUNT: Final[Decimal] = Decimal('0.00')

DEFAULT_CURRENCY: Final[str] = 'USD'

# ===============================================================================
# QUERIES
# ===============================================================================

DEFAULT_TOP_SPENDERS: Final[int] = 5
DEFAULT_RECENT_ACTIVITY: Final[int] = 10
DEFAULT_CHART_DAYS: Final[int] = 7
