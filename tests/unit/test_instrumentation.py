"""Tests for the merge hook registry."""

from __future__ import annotations

import asyncio
import logging

import pytest

from plansync.instrumentation import (
    HookRegistry,
    MergeHook,
    fire_and_forget_hook,
    get_hook_registry,
    set_hook_registry,
)


class _Recorder:
    def __init__(self, name: str, log: list[str]) -> None:
        self.name = name
        self.log = log

    async def __call__(self, operation, attributes):
        self.log.append(f"{self.name}:{operation}:{attributes.get('field')}")


class TestHookRegistry:
    def test_recorder_satisfies_protocol(self) -> None:
        assert isinstance(_Recorder("a", []), MergeHook)

    @pytest.mark.asyncio
    async def test_hooks_run_in_priority_order(self) -> None:
        log: list[str] = []
        registry = HookRegistry()
        registry.register(_Recorder("late", log), priority=10)
        registry.register(_Recorder("early", log), priority=-1)

        notified = await registry.notify("conflict.resolve.X", {"field": "capacity"})

        assert notified == 2
        assert log == ["early:conflict.resolve.X:capacity", "late:conflict.resolve.X:capacity"]

    @pytest.mark.asyncio
    async def test_operation_and_field_filters(self) -> None:
        log: list[str] = []
        registry = HookRegistry()
        registry.register(_Recorder("ops", log), operations=["conflict.*"])
        registry.register(_Recorder("fields", log), fields=["milestones"])

        await registry.notify("conflict.resolve.X", {"field": "capacity"})
        await registry.notify("store.write", {"field": "milestones"})

        assert log == ["ops:conflict.resolve.X:capacity", "fields:store.write:milestones"]

    @pytest.mark.asyncio
    async def test_disabled_and_unregistered_hooks_are_skipped(self) -> None:
        log: list[str] = []
        registry = HookRegistry()
        disabled = registry.register(_Recorder("disabled", log))
        removed = registry.register(_Recorder("removed", log))
        disabled.enabled = False
        registry.unregister(removed)

        assert await registry.notify("conflict.resolve.X", {}) == 0
        assert not registry.has_registrations
        assert log == []

    @pytest.mark.asyncio
    async def test_fire_and_forget_failure_is_logged(self, caplog) -> None:
        async def broken(operation, attributes):
            raise RuntimeError("hook exploded")

        registry = HookRegistry()
        registry.register(broken)

        with caplog.at_level(logging.WARNING, logger="plansync.instrumentation"):
            task = fire_and_forget_hook(registry, "conflict.resolve.X", {})
            assert task is not None
            await asyncio.gather(task, return_exceptions=True)
            await asyncio.sleep(0)

        assert "hook exploded" in caplog.text

    @pytest.mark.asyncio
    async def test_scheduled_task_is_held_until_done(self) -> None:
        release = asyncio.Event()

        async def waiting(operation, attributes):
            await release.wait()

        registry = HookRegistry()
        registry.register(waiting)

        task = fire_and_forget_hook(registry, "conflict.resolve.X", {})
        await asyncio.sleep(0)

        assert registry.pending_tasks == {task}

        release.set()
        assert await task == 1
        await asyncio.sleep(0)

        assert registry.pending_tasks == frozenset()

    def test_fire_and_forget_without_hooks_or_loop(self) -> None:
        registry = HookRegistry()
        assert fire_and_forget_hook(registry, "conflict.resolve.X", {}) is None

        registry.register(_Recorder("a", []))
        assert fire_and_forget_hook(registry, "conflict.resolve.X", {}) is None

    def test_registry_is_context_bound(self) -> None:
        registry = HookRegistry()
        set_hook_registry(registry)

        assert get_hook_registry() is registry
