"""
Error taxonomy and Result wrapper for the lifecycle engine.

Expected outcomes (validation, eligibility, conflicts, illegal transitions,
authorization) travel back to the caller inside a ``Result``. Inventory and
persistence faults are raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union, cast


class ErrorSeverity(Enum):
    WARNING = "warning"      # expected, user-facing
    ERROR = "error"          # operation failed
    CRITICAL = "critical"    # invariant or storage fault


@dataclass
class BTOError(Exception):
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    code: str = "UNKNOWN"
    context: Dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def expected(self) -> bool:
        """True for outcomes a caller should display rather than treat as a fault."""
        return self.severity == ErrorSeverity.WARNING


@dataclass
class ValidationError(BTOError):
    """Malformed NRIC, blank content, bad dates or a malformed stored record."""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "VALIDATION_ERROR"


@dataclass
class EligibilityError(BTOError):
    """Age, marital status, flat type or project window mismatch."""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "ELIGIBILITY_ERROR"


@dataclass
class ConflictError(BTOError):
    """Duplicate active application/registration or an exhausted resource."""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "CONFLICT_ERROR"


@dataclass
class StateError(BTOError):
    """Transition attempted from a state that forbids it."""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "STATE_ERROR"


@dataclass
class AuthorizationError(BTOError):
    """Actor is not the owning manager/officer/creator."""

    severity: ErrorSeverity = ErrorSeverity.WARNING
    code: str = "AUTHORIZATION_ERROR"


@dataclass
class InventoryError(BTOError):
    """Ledger underflow/overflow. Never expected from correct callers."""

    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    code: str = "INVENTORY_ERROR"


@dataclass
class PersistenceError(BTOError):
    """Gateway load/save failure."""

    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    code: str = "PERSISTENCE_ERROR"


T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=BTOError)


@dataclass
class Result(Generic[T, E]):
    """Functional result wrapper so lifecycle calls never raise for expected outcomes."""

    _value: Union[T, E]
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(_value=value, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(_value=error, _is_ok=False)

    def is_ok(self) -> bool:
        return self._is_ok

    @property
    def error(self) -> Optional[E]:
        return None if self._is_ok else cast(E, self._value)

    def unwrap(self) -> T:
        if not self._is_ok:
            raise cast(E, self._value)
        return cast(T, self._value)

    def unwrap_or(self, default: T) -> T:
        return cast(T, self._value) if self._is_ok else default

    def map(self, fn: Callable[[T], U]) -> "Result[U, E]":
        if self._is_ok:
            return Result.ok(fn(cast(T, self._value)))
        return cast("Result[U, E]", self)
