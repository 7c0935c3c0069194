"""
Unified error module.
"""

from .errors import (
    ErrorSeverity,
    BTOError,
    ValidationError,
    EligibilityError,
    ConflictError,
    StateError,
    AuthorizationError,
    InventoryError,
    PersistenceError,
    Result,
)

__all__ = [
    "ErrorSeverity",
    "BTOError",
    "ValidationError",
    "EligibilityError",
    "ConflictError",
    "StateError",
    "AuthorizationError",
    "InventoryError",
    "PersistenceError",
    "Result",
]
