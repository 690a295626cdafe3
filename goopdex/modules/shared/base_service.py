"""
Base Service Foundation

Purpose
-------
Foundation class for Goopdex domain services. Services implement the
progression rules against a session handed to them by the engine, read
tunables from ConfigManager and log through a structured logger.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access (`get_config`, `get_config_int`)
- Validation helpers raising domain exceptions

What this class does NOT do:
- Open or commit transactions (the engine owns the transaction)
- Publish events mid-transaction (the engine publishes after commit)

Usage
-----
    class CollectionLedger(BaseService):
        def __init__(self, config_manager, logger):
            super().__init__(config_manager, logger)

        async def rename(self, session, owned_id, nickname):
            self.log_operation("rename", owned_id=owned_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from .exceptions import ConfigurationError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from goopdex.core.config.manager import ConfigManager


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Game tunables
        logger: Structured logger instance
    """

    def __init__(self, config_manager: ConfigManager, logger: Logger) -> None:
        self._config = config_manager
        self.log = logger

    def get_config(self, key: str, default: Optional[Any] = None, required: bool = False) -> Any:
        """
        Retrieve a tunable.

        Raises:
            ConfigurationError: If required=True and the key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    def get_config_int(self, key: str, default: int) -> int:
        value = self.get_config(key, default)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(key, f"Configuration key '{key}' must be an integer") from exc

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        self.log.error(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def validate_positive_int(self, value: int, name: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(name, f"{name} must be a positive integer, got {value}")

    def validate_range(self, value: int, name: str, min_val: int, max_val: int) -> None:
        if not (min_val <= value <= max_val):
            raise ValidationError(
                name,
                f"{name} must be between {min_val} and {max_val}, got {value}",
            )
