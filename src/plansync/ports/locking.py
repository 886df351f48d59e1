"""ILockStrategy — serializes the save cycle of a vertical across callers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..primitives.locking import ResourceIdentifier

LockToken = str


@runtime_checkable
class ILockStrategy(Protocol):
    """
    Mutual exclusion for ``load -> reconcile -> store``.

    Two saves of the same vertical must never reconcile against the same
    stored document; saves of different verticals never contend.
    Backends range from an in-process FIFO lock to a shared lock service.
    """

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> LockToken:
        """
        Block until *resource* is free, then hold it.

        ``ttl`` bounds how long a crashed holder can keep a shared backend
        locked; in-process backends may ignore it.

        Raises:
            ConcurrencyError: If the lock is not obtained within ``timeout`` seconds.
        """
        ...

    async def release(self, resource: ResourceIdentifier, token: LockToken) -> None:
        """Give up *resource*; a stale or foreign token is ignored."""
        ...

    async def health_check(self) -> bool: ...
