"""Critical sections around the load/reconcile/store cycle."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from ..primitives.exceptions import LockAcquisitionError, LockRollbackError

if TYPE_CHECKING:
    from ..ports.locking import ILockStrategy
    from ..primitives.locking import ResourceIdentifier

logger = logging.getLogger("plansync.locking")


class CriticalSection:
    """
    Async context manager that acquires locks on one or more resources.

    Resources are deduplicated and acquired in sorted order; a failure part way
    rolls back the locks already taken. All locks are released on exit.

    Usage:
        ```python
        async with CriticalSection(
            [ResourceIdentifier.for_vertical("growth")], lock_strategy
        ):
            stored = await store.load("growth")
            ...
        ```
    """

    def __init__(
        self,
        resources: list[ResourceIdentifier],
        lock_strategy: ILockStrategy,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> None:
        self._resources = sorted(set(resources))
        self._lock_strategy = lock_strategy
        self._timeout = timeout
        self._ttl = ttl
        self._acquired: list[tuple[ResourceIdentifier, str]] = []

    async def __aenter__(self) -> CriticalSection:
        """
        Acquire all locks in sorted order.

        Raises:
            LockAcquisitionError: If any lock cannot be acquired.
        """
        start = time.monotonic()
        try:
            for resource in self._resources:
                token = await self._lock_strategy.acquire(
                    resource, timeout=self._timeout, ttl=self._ttl
                )
                self._acquired.append((resource, token))
        except Exception as exc:  # noqa: BLE001
            # Any failure (timeout, backend error) must roll back partial locks.
            failed_resource = self._resources[len(self._acquired)]
            attempted = len(self._acquired)
            errors = await self._rollback()
            if errors:
                raise LockRollbackError(attempted, len(errors), errors) from exc
            if isinstance(exc, LockAcquisitionError):
                raise
            raise LockAcquisitionError(
                failed_resource, self._timeout, reason=str(exc)
            ) from exc

        logger.debug(
            "Locks acquired",
            extra={
                "resources": [str(r) for r in self._resources],
                "duration_ms": (time.monotonic() - start) * 1000,
            },
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self._rollback()

    async def _rollback(self) -> list[Exception]:
        """Release acquired locks in reverse order (LIFO)."""
        errors: list[Exception] = []
        for resource, token in reversed(self._acquired):
            try:
                await self._lock_strategy.release(resource, token)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Failed to release lock: %s (resource=%s)", exc, resource
                )
                errors.append(exc)
        self._acquired.clear()
        return errors
