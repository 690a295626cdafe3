"""
Database Service - Core Infrastructure Layer

Purpose
-------
Async database engine and session management for the Goopdex progression
engine. Provides atomic transactions and pessimistic locking hooks so every
progression operation commits all of its side effects or none of them.

Responsibilities
----------------
- Own a single AsyncEngine instance with connection pooling
- Provide async context managers for read-only sessions and atomic transactions
- Enforce transaction discipline: automatic commit on success, rollback on exception
- Create the schema for fresh stores (`create_schema`)
- Expose a lightweight health check

Non-Responsibilities
--------------------
- Domain logic, business rules, or event emission
- Database migrations (schema is created from metadata)

Architecture Notes
------------------
**Transaction Model**:
- `get_transaction()` is the primary interface for all state mutations
- Automatic commit on success, rollback on any exception
- Never manually call `session.commit()` inside service code

**Instances, not globals**:
- Each `DatabaseService` wraps one engine; the progression engine receives it
  by injection, so tests can run against an in-memory SQLite store.

Usage Example
-------------
>>> db = DatabaseService("sqlite+aiosqlite:///:memory:")
>>> await db.initialize()
>>> await db.create_schema()
>>> async with db.get_transaction() as session:
...     session.add(profile)
...     # Automatic commit on exit
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type, TypeVar

from sqlalchemy import event, select, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from goopdex.core.config.config import Config
from goopdex.core.database.base import Base
from goopdex.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Immutable snapshot of database configuration."""

    url: str
    echo: bool
    pool_size: int
    max_overflow: int
    pool_recycle: int

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and (":memory:" in self.url or self.url.endswith("://"))

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# DatabaseService
# ============================================================================


class DatabaseService:
    """
    Async database engine and session management.

    Public API
    ----------
    - initialize() / shutdown()
    - create_schema()
    - get_session() -> read-only or manual transaction control
    - get_transaction() -> atomic write transaction (preferred)
    - get_locked_entity() -> pessimistic row locking helper
    - health_check()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        echo: Optional[bool] = None,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
    ) -> None:
        database_url = url or getattr(Config, "DATABASE_URL", None)
        if not database_url or not isinstance(database_url, str):
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        self._config = _DatabaseConfigSnapshot(
            url=database_url,
            echo=bool(Config.DATABASE_ECHO if echo is None else echo),
            pool_size=int(pool_size or Config.DATABASE_POOL_SIZE),
            max_overflow=int(
                Config.DATABASE_MAX_OVERFLOW if max_overflow is None else max_overflow
            ),
            pool_recycle=int(Config.DATABASE_POOL_RECYCLE),
        )
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._init_lock = asyncio.Lock()

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must be awaited first"
            )
        return self._engine

    def _engine_kwargs(self) -> dict[str, Any]:
        config = self._config
        kwargs: dict[str, Any] = {"echo": config.echo}

        if config.is_memory:
            # One shared connection keeps the in-memory database alive.
            kwargs.update(
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        elif config.is_sqlite:
            kwargs.update(poolclass=NullPool)
        else:
            kwargs.update(
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_recycle=config.pool_recycle,
                pool_pre_ping=True,
            )
        return kwargs

    async def initialize(self) -> None:
        """
        Initialize the database engine and session factory.

        Idempotent; safe to call multiple times.

        Raises
        ------
        DatabaseInitializationError
            If engine creation fails.
        """
        async with self._init_lock:
            if self._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            try:
                self._engine = create_async_engine(
                    self._config.url, **self._engine_kwargs()
                )
            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "url_scheme": self._config.url_scheme,
                    },
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            if self._config.is_sqlite:
                event.listen(
                    self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys
                )

            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            logger.info(
                "DatabaseService initialized",
                extra={"url_scheme": self._config.url_scheme},
            )

    async def shutdown(self) -> None:
        """Dispose the engine. Safe to call multiple times."""
        async with self._init_lock:
            if self._engine is None:
                return

            try:
                await self._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                self._engine = None
                self._session_factory = None

    async def create_schema(self) -> None:
        """Create all tables registered on the declarative Base."""
        # Registers every model on Base.metadata.
        import goopdex.database.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info(
            "Database schema ensured",
            extra={"tables": sorted(Base.metadata.tables.keys())},
        )

    # ========================================================================
    # Sessions
    # ========================================================================

    def _require_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must be awaited first"
            )
        return self._session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session for reads. Nothing is committed on exit.
        """
        factory = self._require_factory()
        async with factory() as session:
            yield session

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session inside one atomic transaction.

        Commits when the block exits normally; rolls back and re-raises on any
        exception so partial side effects are never persisted.
        """
        factory = self._require_factory()
        start = time.perf_counter()

        async with factory() as session:
            try:
                async with session.begin():
                    yield session
            except Exception as exc:
                logger.warning(
                    "Transaction rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

        logger.debug(
            "Transaction committed",
            extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
        )

    @staticmethod
    async def get_locked_entity(
        session: AsyncSession, model: Type[T], pk: Any
    ) -> Optional[T]:
        """Fetch one row by primary key with SELECT ... FOR UPDATE."""
        stmt = select(model).where(model.id == pk).with_for_update()  # type: ignore[attr-defined]
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    # ========================================================================
    # Health Check
    # ========================================================================

    async def health_check(self) -> bool:
        """
        Lightweight `SELECT 1` probe. Never raises; returns False on failure.
        """
        if self._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
