"""
Writer locks for the progression engine.

Every mutating engine operation runs while holding exactly one writer lock,
so operations against the same store are serialized. Two flavours:

- LocalWriterLock: asyncio.Lock for a single process
- RedisWriterLock: redis.asyncio Lock for engines sharing one database
  across processes

Both raise `WriterLockTimeoutError` when the lock cannot be acquired in time.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncContextManager, AsyncIterator, Optional, Protocol

from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError

from goopdex.core.config.config import Config
from goopdex.core.logging.logger import get_logger
from goopdex.modules.shared.exceptions import WriterLockTimeoutError

if TYPE_CHECKING:
    from logging import Logger

DEFAULT_LOCK_NAME = "goopdex:writer:1"


class WriterLock(Protocol):
    name: str

    def hold(self) -> AsyncContextManager[None]: ...


class LocalWriterLock:
    """In-process writer lock."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        name: str = DEFAULT_LOCK_NAME,
        logger: Optional[Logger] = None,
    ) -> None:
        self.name = name
        self.timeout_seconds = (
            float(Config.WRITER_LOCK_WAIT_SECONDS) if timeout_seconds is None else timeout_seconds
        )
        self._lock = asyncio.Lock()
        self.log = logger or get_logger(f"{__name__}.LocalWriterLock")

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def _acquire(self) -> bool:
        # asyncio.wait_for before 3.12 can time out after the lock was granted,
        # leaving it held with no owner. A cancelled acquire never holds it.
        attempt = asyncio.ensure_future(self._lock.acquire())
        try:
            await asyncio.wait({attempt}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            if attempt.done() and not attempt.cancelled():
                self._lock.release()
            raise
        finally:
            if not attempt.done():
                attempt.cancel()
                await asyncio.wait({attempt})
        return not attempt.cancelled()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        if not await self._acquire():
            self.log.warning(
                "Writer lock wait timed out",
                extra={"lock_name": self.name, "timeout_seconds": self.timeout_seconds},
            )
            raise WriterLockTimeoutError(self.name, self.timeout_seconds)

        try:
            yield
        finally:
            self._lock.release()


class RedisWriterLock:
    """
    Distributed writer lock backed by Redis.

    `timeout_seconds` is the lock's expiry in Redis; `blocking_timeout` is how
    long `hold()` waits to acquire it.
    """

    def __init__(
        self,
        client: Redis,
        name: str = DEFAULT_LOCK_NAME,
        timeout_seconds: Optional[float] = None,
        blocking_timeout: Optional[float] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self.client = client
        self.name = name
        self.timeout_seconds = (
            float(Config.WRITER_LOCK_TIMEOUT_SECONDS) if timeout_seconds is None else timeout_seconds
        )
        self.blocking_timeout = (
            float(Config.WRITER_LOCK_WAIT_SECONDS) if blocking_timeout is None else blocking_timeout
        )
        self.log = logger or get_logger(f"{__name__}.RedisWriterLock")

    @classmethod
    def from_url(cls, url: Optional[str] = None, **kwargs) -> "RedisWriterLock":
        url = url or Config.REDIS_URL
        if not url:
            raise ValueError("RedisWriterLock requires REDIS_URL")
        return cls(Redis.from_url(url, decode_responses=True), **kwargs)

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        lock = Lock(
            self.client,
            self.name,
            timeout=self.timeout_seconds,
            blocking_timeout=self.blocking_timeout,
        )

        acquired = await lock.acquire(blocking=True, blocking_timeout=self.blocking_timeout)
        if not acquired:
            self.log.warning(
                "Writer lock wait timed out",
                extra={"lock_name": self.name, "timeout_seconds": self.blocking_timeout},
            )
            raise WriterLockTimeoutError(self.name, self.blocking_timeout)

        self.log.debug(f"Lock acquired: {self.name}")
        try:
            yield
        finally:
            try:
                await lock.release()
                self.log.debug(f"Lock released: {self.name}")
            except LockError as exc:
                # Expired while held; the operation itself already finished.
                self.log.error(
                    f"Error releasing lock: {self.name} error={exc}",
                    extra={"lock_name": self.name},
                )
