"""Observer hooks for merge decisions (tracing, metrics, audit feeds).

Merge code reports each decision as an *operation* name such as
``conflict.resolve.SubKeyMergeStrategy`` plus a flat attribute dict. Hooks
are async observers registered on a context-local registry; the synchronous
merge engine schedules them without waiting.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from contextvars import ContextVar
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger("plansync.instrumentation")

_MATCH_CACHE_MAX_SIZE = 2048


@runtime_checkable
class MergeHook(Protocol):
    """An async observer of merge decisions."""

    async def __call__(self, operation: str, attributes: dict[str, Any]) -> None: ...


class HookRegistration:
    """A registered hook with its filters.

    ``operations`` holds fnmatch patterns; ``fields`` restricts the hook to
    decisions about the named document fields. Empty filters match everything.
    """

    def __init__(
        self,
        hook: MergeHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        fields: list[str] | None = None,
    ) -> None:
        self.hook = hook
        self.priority = priority
        self.operations = operations or []
        self.fields = frozenset(fields or ())
        self.enabled = True
        self._operation_cache: dict[str, bool] = {}

    def matches(self, operation: str, attributes: dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        if self.fields and attributes.get("field") not in self.fields:
            return False
        return self._matches_operation(operation)

    def _matches_operation(self, operation: str) -> bool:
        if not self.operations:
            return True
        cached = self._operation_cache.get(operation)
        if cached is None:
            cached = any(fnmatch.fnmatch(operation, p) for p in self.operations)
            if len(self._operation_cache) >= _MATCH_CACHE_MAX_SIZE:
                self._operation_cache.clear()
            self._operation_cache[operation] = cached
        return cached


class HookRegistry:
    """Hooks notified of merge decisions, lowest priority value first."""

    def __init__(self) -> None:
        self._registrations: list[HookRegistration] = []
        self._pending: set[asyncio.Task[int]] = set()

    @property
    def has_registrations(self) -> bool:
        return any(r.enabled for r in self._registrations)

    def register(
        self,
        hook: MergeHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        fields: list[str] | None = None,
    ) -> HookRegistration:
        registration = HookRegistration(
            hook, priority=priority, operations=operations, fields=fields
        )
        self._registrations.append(registration)
        self._registrations.sort(key=lambda r: r.priority)
        return registration

    def unregister(self, registration: HookRegistration) -> None:
        self._registrations.remove(registration)

    async def notify(self, operation: str, attributes: dict[str, Any]) -> int:
        """Await every matching hook in priority order.

        Returns:
            The number of hooks notified.
        """
        matching = [r for r in self._registrations if r.matches(operation, attributes)]
        for registration in matching:
            await registration.hook(operation, attributes)
        return len(matching)

    @property
    def pending_tasks(self) -> frozenset[asyncio.Task[int]]:
        """Scheduled notifications that have not finished yet."""
        return frozenset(self._pending)

    def track(self, task: asyncio.Task[int]) -> None:
        """Hold a reference to *task* until it completes."""
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def clear(self) -> None:
        self._registrations.clear()


_hook_registry_var: ContextVar[HookRegistry | None] = ContextVar(
    "hook_registry", default=None
)


def get_hook_registry() -> HookRegistry:
    """Get the hook registry of the current context, creating it on first use."""
    registry = _hook_registry_var.get()
    if registry is None:
        registry = HookRegistry()
        _hook_registry_var.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    _hook_registry_var.set(registry)


def _on_fire_and_forget_done(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Merge hook task failed: %s", exc, exc_info=exc)


def fire_and_forget_hook(
    registry: HookRegistry,
    operation: str,
    attributes: dict[str, Any],
) -> asyncio.Task[int] | None:
    """Schedule ``registry.notify`` without awaiting it.

    Returns ``None`` when no hook is registered or no event loop is running,
    which is the normal case for the merge engine used synchronously.
    """
    if not registry.has_registrations:
        return None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None

    task = loop.create_task(registry.notify(operation, attributes))
    registry.track(task)
    task.add_done_callback(_on_fire_and_forget_done)
    return task
