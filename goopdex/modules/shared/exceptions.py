"""
Domain exceptions for the Goopdex progression engine.

Purpose
-------
Structured, domain-specific exception hierarchy raised by services for missing
entities, malformed input, broken invariants and lock contention. Callers can
log `exc.to_dict()` directly and use `is_transient_error()` to decide whether
an operation may be retried.

Design Notes
------------
- All domain exceptions inherit from `GoopdexDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- "Not eligible" outcomes (evolving with too few duplicates, fusing a pair
  without a recipe) are return values, never exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"  # validation failures, missing ids
    WARNING = "warning"  # retryable contention
    ERROR = "error"
    CRITICAL = "critical"  # broken invariants


class GoopdexDomainException(Exception):
    """
    Base exception for all Goopdex domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise GoopdexDomainException(
        ...     "Evolution failed",
        ...     {"owned_id": 12}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class NotFoundError(GoopdexDomainException):
    """
    Raised when a referenced entity does not exist.

    Covers unknown species, owned creature ids, recipes and achievement codes.

    Args:
        resource_type: Type of resource (e.g., "Species", "OwnedCreature")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(GoopdexDomainException):
    """
    Raised when caller input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        error_message = f"Validation error for {field}: {message}"
        super().__init__(
            error_message,
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvariantViolationError(GoopdexDomainException):
    """
    Raised when persisted state or a caller breaks an engine invariant.

    This is a programming error, not a player-facing condition: decreasing
    achievement progress, a challenge batch without exactly three members,
    or more than one active batch.

    Args:
        invariant: Short name of the broken rule
        reason: What was observed
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, invariant: str, reason: str, **details: Any) -> None:
        self.invariant = invariant
        self.reason = reason
        super().__init__(
            f"Invariant '{invariant}' violated: {reason}",
            details={"invariant": invariant, "reason": reason, **details},
            error_code=f"INVARIANT_{invariant.upper()}",
        )


class WriterLockTimeoutError(GoopdexDomainException):
    """
    Raised when the per-player writer lock cannot be acquired in time.

    Args:
        lock_name: Name of the contended lock
        timeout_seconds: How long acquisition was attempted
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, lock_name: str, timeout_seconds: float) -> None:
        self.lock_name = lock_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Timed out acquiring writer lock '{lock_name}' after {timeout_seconds:.1f}s",
            details={
                "lock_name": lock_name,
                "timeout_seconds": timeout_seconds,
                "retry_after": timeout_seconds,
            },
            error_code="WRITER_LOCK_TIMEOUT",
        )


class ConfigurationError(GoopdexDomainException):
    """
    Raised when a required configuration value is missing or malformed.

    Args:
        key: Configuration key
        reason: Explanation of the problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        super().__init__(
            reason,
            details={"config_key": key},
            error_code="CONFIGURATION_ERROR",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """True if the exception marks an operation that may be retried."""
    if isinstance(exc, GoopdexDomainException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, GoopdexDomainException):
        return exc.severity
    return ErrorSeverity.ERROR
