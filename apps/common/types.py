"""
Type system for AdLedger
Rust-inspired Result pattern, business error kinds and domain type aliases.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

# Type variables for generic Result
T = TypeVar('T')  # Success type
E = TypeVar('E')  # Error type

# ===============================================================================
# RESULT TYPES
# ===============================================================================

@dataclass(frozen=True)
class Ok(Generic[T]):
    """Success result containing a value"""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the success value"""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get the success value (ignores default)"""
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Error result containing an error value"""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> Any:
        """Raises the wrapped business error, or ValueError for plain errors"""
        if isinstance(self.error, BusinessError):
            raise self.error
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Get the default value since this is an error"""
        return default


# Result type alias
Result = Ok[T] | Err[E]

# ===============================================================================
# DOMAIN TYPE ALIASES
# ===============================================================================

AccountId = int
BatchId = int
BillingEntityId = int
CustomerId = int
ExternalAccountId = str  # Ad platform account id: "123-456-7890"
CurrencyCode = str       # ISO 4217: "USD"

# ===============================================================================
# COMMON EXCEPTIONS
# ===============================================================================

class BusinessError(Exception):
    """Base exception for business logic errors"""

    code: ClassVar[str] = 'BUSINESS_ERROR'

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {'code': self.code, 'message': self.message}


class NotFoundError(BusinessError):
    """Referenced account/batch/entity does not exist"""
    code = 'NOT_FOUND'


class NoDataError(NotFoundError):
    """Nothing to reconcile for the requested key"""
    code = 'NO_DATA'


class BadRequestError(BusinessError):
    """Malformed or contradictory input"""
    code = 'BAD_REQUEST'


class ConflictError(BusinessError):
    """Duplicate unique value"""
    code = 'CONFLICT'

