"""InMemoryLockStrategy — single-process implementation of ILockStrategy."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from ...ports.locking import ILockStrategy
from ...primitives.exceptions import ConcurrencyError

if TYPE_CHECKING:
    from ...primitives.locking import ResourceIdentifier

logger = logging.getLogger("plansync.locking")


@dataclass
class _FIFOLock:
    """
    FIFO lock that serves waiters in arrival order.

    Queue size is bounded to prevent unbounded memory growth.
    """

    _locked: bool = False
    _waiters: asyncio.Queue[asyncio.Event] = field(default_factory=asyncio.Queue)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    max_queue_size: int = 100

    async def acquire(self, timeout: float = 10.0) -> None:
        """Acquire lock - waits in FIFO order if already locked."""
        async with self._lock:
            if not self._locked:
                self._locked = True
                logger.debug("Lock acquired immediately (no queue)")
                return

            queue_size = self._waiters.qsize()
            if queue_size >= self.max_queue_size:
                raise ConcurrencyError(
                    f"Lock queue full ({queue_size}/{self.max_queue_size}). "
                    "Too many concurrent saves - apply backpressure."
                )

            event = asyncio.Event()
            self._waiters.put_nowait(event)
        logger.debug(
            "Waiting in queue at position %d/%d",
            self._waiters.qsize(),
            self.max_queue_size,
        )

        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except asyncio.TimeoutError as err:
            if event.is_set():
                # Handed over just as the wait timed out: pass it on.
                self.release()
            else:
                # Abandoned; release() skips set events.
                event.set()
            logger.warning("Lock acquisition timed out after %.1fs", timeout)
            raise ConcurrencyError(
                f"Lock acquisition timeout after {timeout}s"
            ) from err
        logger.debug("Lock acquired from queue")

    def release(self) -> None:
        """Release lock and hand it to the next waiter, if any."""
        while not self._waiters.empty():
            event = self._waiters.get_nowait()
            if not event.is_set():
                # Ownership passes directly to the waiter; _locked stays True.
                event.set()
                return
        self._locked = False
        logger.debug("Lock released (no waiters)")


@dataclass
class _LockState:
    fifo_lock: _FIFOLock = field(default_factory=_FIFOLock)
    token: str | None = None
    holders: int = 0


class InMemoryLockStrategy(ILockStrategy):
    """
    In-memory implementation of ILockStrategy with FIFO queuing.

    Suitable for tests and single-process deployments; a multi-process
    deployment needs a shared lock backend.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], _LockState] = {}
        self._global_lock = asyncio.Lock()

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,  # noqa: ARG002
    ) -> str:
        key = (resource.resource_type, resource.resource_id)

        async with self._global_lock:
            state = self._locks.setdefault(key, _LockState())
            state.holders += 1

        try:
            await state.fifo_lock.acquire(timeout=timeout)
        except ConcurrencyError:
            async with self._global_lock:
                state.holders -= 1
                if state.holders <= 0:
                    self._locks.pop(key, None)
            raise

        token = str(uuid4())
        state.token = token
        logger.debug("Lock acquired: %s", resource)
        return token

    async def release(
        self,
        resource: ResourceIdentifier,
        token: str,
    ) -> None:
        key = (resource.resource_type, resource.resource_id)

        async with self._global_lock:
            state = self._locks.get(key)
            if state is None or state.token != token:
                logger.warning("Attempted to release invalid or expired lock: %s", key)
                return

            state.token = None
            state.holders -= 1
            state.fifo_lock.release()
            if state.holders <= 0:
                self._locks.pop(key, None)
                logger.debug("Lock cleaned up: %s", key)

    async def health_check(self) -> bool:
        return True

    def is_locked(self, resource: ResourceIdentifier) -> bool:
        """Test helper: whether a lock on *resource* is currently held."""
        state = self._locks.get((resource.resource_type, resource.resource_id))
        return state is not None and state.token is not None
