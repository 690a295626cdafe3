"""
Goopdex Shared Module

Domain-level foundations for all game modules:
- Domain exceptions and error handling
- Base service and repository patterns
- Progression formulas
- Input validators

Usage
-----
    from goopdex.modules.shared import (
        BaseService,
        BaseRepository,
        NotFoundError,
        calculate_level,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    ConfigurationError,
    ErrorSeverity,
    GoopdexDomainException,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
    WriterLockTimeoutError,
    get_error_severity,
    is_transient_error,
)
from .operation import OperationContext
from .formulas import (
    calculate_level,
    catch_rate,
    fused_experience,
    login_day_difference,
    next_streak,
    streak_bonus,
)

__all__ = [
    "BaseService",
    "BaseRepository",
    "OperationContext",
    "GoopdexDomainException",
    "ErrorSeverity",
    "NotFoundError",
    "ValidationError",
    "InvariantViolationError",
    "WriterLockTimeoutError",
    "ConfigurationError",
    "is_transient_error",
    "get_error_severity",
    "calculate_level",
    "catch_rate",
    "fused_experience",
    "login_day_difference",
    "next_streak",
    "streak_bonus",
]
