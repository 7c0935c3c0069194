"""
Core layer: error taxonomy, Result and dependency wiring.
"""

from .errors import (
    AuthorizationError,
    BTOError,
    ConflictError,
    EligibilityError,
    ErrorSeverity,
    InventoryError,
    PersistenceError,
    Result,
    StateError,
    ValidationError,
)

__all__ = [
    "AuthorizationError",
    "BTOError",
    "ConflictError",
    "EligibilityError",
    "ErrorSeverity",
    "InventoryError",
    "PersistenceError",
    "Result",
    "StateError",
    "ValidationError",
]
