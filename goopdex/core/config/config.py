"""
Static configuration management for Goopdex.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-dynamic configuration that is set at application startup.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Detect and warn about suspicious settings in production

Non-Responsibilities
--------------------
- Game tunables such as XP rewards (handled by ConfigManager)
- Runtime configuration changes (except safe reload)
- Secrets management (use environment variables)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- `Config.load()` re-reads the environment; `Config.validate()` loads once
- Directory paths relative to project root for portability

Environment Variables
---------------------
Optional (with defaults):
- DATABASE_URL: SQLAlchemy async URL (default: local SQLite file)
- DATABASE_ECHO: Echo SQL statements (default: False)
- DATABASE_POOL_SIZE: Connection pool size (default: 5)
- DATABASE_MAX_OVERFLOW: Pool overflow (default: 10)
- REDIS_URL: Redis URL for the distributed writer lock (default: unset)
- WRITER_LOCK_TIMEOUT_SECONDS: Lock expiry (default: 10)
- WRITER_LOCK_WAIT_SECONDS: Lock acquisition wait (default: 2)
- ENVIRONMENT: Environment type (default: development)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: production only)
- LOG_TO_FILE: Enable the rotating file handler (default: False)
- GOOPDEX_TIMEZONE: IANA zone used for day boundaries (default: UTC)
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Basic logging during bootstrap (structured logger not yet initialized)
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


class Config:
    """
    Centralized static configuration for Goopdex.

    Usage
    -----
    >>> db_url = Config.DATABASE_URL
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    _validated: bool = False

    # =========================================================================
    # Database Configuration
    # =========================================================================

    DATABASE_URL: str = "sqlite+aiosqlite:///goopdex.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_RECYCLE: int = 1800

    # =========================================================================
    # Redis / Writer Lock Configuration
    # =========================================================================

    REDIS_URL: Optional[str] = None
    WRITER_LOCK_TIMEOUT_SECONDS: int = 10
    WRITER_LOCK_WAIT_SECONDS: int = 2

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False
    TIMEZONE: str = "UTC"

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Example
        -------
        >>> Config._safe_int("DATABASE_POOL_SIZE", 5, min_val=1, max_val=200)
        5
        """
        raw_value = os.getenv(key)
        if raw_value is None:
            return default

        try:
            value = int(raw_value)
        except ValueError:
            logging.warning(
                f"{key}='{raw_value}' is not a valid integer, using default {default}"
            )
            return default

        if min_val is not None and value < min_val:
            logging.warning(
                f"{key}={value} is below minimum {min_val}, using default {default}"
            )
            return default

        if max_val is not None and value > max_val:
            logging.warning(
                f"{key}={value} exceeds maximum {max_val}, using default {default}"
            )
            return default

        return value

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        raw_value = os.getenv(key)
        if raw_value is None:
            return default

        normalized = raw_value.strip().lower()
        if normalized in ("true", "yes", "1", "on"):
            return True
        if normalized in ("false", "no", "0", "off"):
            return False

        logging.warning(
            f"{key}='{raw_value}' is not a valid boolean, using default {default}"
        )
        return default

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        """Read a stripped string from the environment, falling back on blanks."""
        raw_value = os.getenv(key)
        if raw_value is None or not raw_value.strip():
            return default
        return raw_value.strip()

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Can be called again to reload configuration (tests rely on this after
        patching the environment).
        """
        cls.DATABASE_URL = cls._safe_str("DATABASE_URL", "sqlite+aiosqlite:///goopdex.db")
        cls.DATABASE_ECHO = cls._safe_bool("DATABASE_ECHO", False)
        cls.DATABASE_POOL_SIZE = cls._safe_int(
            "DATABASE_POOL_SIZE", 5, min_val=1, max_val=200
        )
        cls.DATABASE_MAX_OVERFLOW = cls._safe_int(
            "DATABASE_MAX_OVERFLOW", 10, min_val=0, max_val=200
        )
        cls.DATABASE_POOL_RECYCLE = cls._safe_int(
            "DATABASE_POOL_RECYCLE", 1800, min_val=60
        )

        redis_url = os.getenv("REDIS_URL")
        cls.REDIS_URL = redis_url.strip() if redis_url and redis_url.strip() else None
        cls.WRITER_LOCK_TIMEOUT_SECONDS = cls._safe_int(
            "WRITER_LOCK_TIMEOUT_SECONDS", 10, min_val=1, max_val=300
        )
        cls.WRITER_LOCK_WAIT_SECONDS = cls._safe_int(
            "WRITER_LOCK_WAIT_SECONDS", 2, min_val=0, max_val=60
        )

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", False) if os.getenv("LOG_JSON") else None
        cls.LOG_COLORS = cls._safe_bool("LOG_COLORS", True)
        cls.LOG_TO_FILE = cls._safe_bool("LOG_TO_FILE", False)
        cls.TIMEZONE = cls._safe_str("GOOPDEX_TIMEZONE", "UTC")

    @classmethod
    def validate(cls) -> None:
        """
        Load and validate critical configuration values once.

        Raises
        ------
        ValueError:
            If DATABASE_URL is not an async SQLAlchemy URL.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        if "+" not in cls.DATABASE_URL.split("://", 1)[0]:
            raise ValueError(
                "DATABASE_URL must name an async driver "
                "(e.g. postgresql+asyncpg:// or sqlite+aiosqlite://)"
            )

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if cls.LOG_LEVEL not in valid_log_levels:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production() and cls.DATABASE_URL.startswith("sqlite"):
            logger.warning(
                "Production environment using SQLite database - "
                "this may be incorrect"
            )

        cls._validated = True

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == Environment.DEVELOPMENT.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT == Environment.TESTING.value

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get a secrets-free summary suitable for structured logging."""
        return {
            "environment": cls.ENVIRONMENT,
            "database_scheme": cls.DATABASE_URL.split(":", 1)[0],
            "redis_lock": cls.REDIS_URL is not None,
            "log_level": cls.LOG_LEVEL,
            "timezone": cls.TIMEZONE,
        }
