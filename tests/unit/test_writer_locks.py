"""
Unit Tests for Writer Locks
===========================

LocalWriterLock runs for real; RedisWriterLock is exercised against a mocked
redis.asyncio Lock.
"""

import asyncio

import pytest
from redis.exceptions import LockError

from goopdex.modules.progression import locks as locks_module
from goopdex.modules.progression.locks import LocalWriterLock, RedisWriterLock
from goopdex.modules.shared.exceptions import WriterLockTimeoutError


@pytest.mark.unit
@pytest.mark.asyncio
class TestLocalWriterLock:
    async def test_hold_and_release(self):
        lock = LocalWriterLock(timeout_seconds=0.5)

        async with lock.hold():
            assert lock.locked

        assert not lock.locked

    async def test_released_after_exception(self):
        lock = LocalWriterLock(timeout_seconds=0.5)

        with pytest.raises(RuntimeError):
            async with lock.hold():
                raise RuntimeError("operation failed")

        assert not lock.locked

    async def test_contention_times_out(self):
        lock = LocalWriterLock(timeout_seconds=0.05)

        async with lock.hold():
            with pytest.raises(WriterLockTimeoutError) as exc_info:
                async with lock.hold():
                    pass

        assert exc_info.value.is_retryable
        assert exc_info.value.lock_name == lock.name
        assert not lock.locked

    async def test_timed_out_waiter_leaves_lock_free(self):
        lock = LocalWriterLock(timeout_seconds=0.01)

        async def release_soon():
            async with lock.hold():
                await asyncio.sleep(0.05)

        holder = asyncio.create_task(release_soon())
        await asyncio.sleep(0)
        with pytest.raises(WriterLockTimeoutError):
            async with lock.hold():
                pass
        await holder

        assert not lock.locked
        async with lock.hold():
            assert lock.locked

    async def test_cancelled_waiter_leaves_lock_free(self):
        lock = LocalWriterLock(timeout_seconds=1.0)

        async with lock.hold():
            waiter = asyncio.create_task(lock.hold().__aenter__())
            await asyncio.sleep(0.01)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

        assert not lock.locked

    async def test_serializes_writers(self):
        lock = LocalWriterLock(timeout_seconds=1.0)
        trace = []

        async def writer(name):
            async with lock.hold():
                trace.append(f"{name}:start")
                await asyncio.sleep(0.01)
                trace.append(f"{name}:end")

        await asyncio.gather(writer("a"), writer("b"))

        assert trace in (
            ["a:start", "a:end", "b:start", "b:end"],
            ["b:start", "b:end", "a:start", "a:end"],
        )


@pytest.mark.unit
@pytest.mark.asyncio
class TestRedisWriterLock:
    async def test_acquire_and_release(self, mocker):
        redis_lock = mocker.MagicMock()
        redis_lock.acquire = mocker.AsyncMock(return_value=True)
        redis_lock.release = mocker.AsyncMock()
        lock_cls = mocker.patch.object(locks_module, "Lock", return_value=redis_lock)
        client = mocker.MagicMock()

        lock = RedisWriterLock(client, name="goopdex:writer:test", timeout_seconds=10, blocking_timeout=2)
        async with lock.hold():
            redis_lock.release.assert_not_awaited()

        lock_cls.assert_called_once_with(client, "goopdex:writer:test", timeout=10, blocking_timeout=2)
        redis_lock.acquire.assert_awaited_once_with(blocking=True, blocking_timeout=2)
        redis_lock.release.assert_awaited_once()

    async def test_acquire_failure_raises_timeout(self, mocker):
        redis_lock = mocker.MagicMock()
        redis_lock.acquire = mocker.AsyncMock(return_value=False)
        redis_lock.release = mocker.AsyncMock()
        mocker.patch.object(locks_module, "Lock", return_value=redis_lock)

        lock = RedisWriterLock(mocker.MagicMock(), blocking_timeout=0.1)
        with pytest.raises(WriterLockTimeoutError):
            async with lock.hold():
                pass

        redis_lock.release.assert_not_awaited()

    async def test_release_error_is_logged_not_raised(self, mocker):
        redis_lock = mocker.MagicMock()
        redis_lock.acquire = mocker.AsyncMock(return_value=True)
        redis_lock.release = mocker.AsyncMock(side_effect=LockError("expired"))
        mocker.patch.object(locks_module, "Lock", return_value=redis_lock)

        lock = RedisWriterLock(mocker.MagicMock())
        async with lock.hold():
            pass

        redis_lock.release.assert_awaited_once()


@pytest.mark.unit
class TestRedisWriterLockFactory:
    def test_from_url_requires_url(self, mocker):
        mocker.patch.object(locks_module.Config, "REDIS_URL", None)
        with pytest.raises(ValueError):
            RedisWriterLock.from_url()
