"""Tests for the save, load and poll handlers over in-memory adapters."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from plansync.adapters.memory import InMemoryDocumentStore, InMemoryLockStrategy
from plansync.config import SyncConfig
from plansync.cqrs import (
    DocumentReconciled,
    LoadDocumentHandler,
    LoadDocumentQuery,
    PollDocumentHandler,
    PollDocumentQuery,
    SaveDocumentCommand,
    SaveDocumentHandler,
)
from plansync.primitives import ResourceIdentifier, StoreUnavailableError, UnknownVerticalError

T0 = 1_700_000_000_000


class FakeClock:
    """Monotonic millisecond clock advancing a fixed step per reading."""

    def __init__(self, start: int = T0, step: int = 10) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


class _SlowStore(InMemoryDocumentStore):
    """Yields to the event loop in the middle of every write."""

    async def store(self, vertical, document, field_timestamps, *, updated_at=None) -> None:
        await asyncio.sleep(0.05)
        await super().store(vertical, document, field_timestamps, updated_at=updated_at)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def locks() -> InMemoryLockStrategy:
    return InMemoryLockStrategy()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> SyncConfig:
    return SyncConfig()


@pytest.fixture
def save_handler(store, locks, config, clock) -> SaveDocumentHandler:
    return SaveDocumentHandler(store, locks, config, clock=clock)


@pytest.fixture
def load_handler(store, locks, config, clock) -> LoadDocumentHandler:
    return LoadDocumentHandler(store, locks, config, clock=clock)


def _save(vertical: str, loaded_at: int, client_id: str | None = None, **fields: Any):
    return SaveDocumentCommand(
        vertical=vertical, changes=fields, loaded_at=loaded_at, client_id=client_id
    )


# ── Load ─────────────────────────────────────────────────────────────


class TestLoad:
    @pytest.mark.asyncio
    async def test_never_saved_vertical_serves_defaults(self, load_handler) -> None:
        response = await load_handler.handle(LoadDocumentQuery(vertical="growth"))

        assert response.result.document["capacity"] == {
            "backend": 40,
            "frontend": 30,
            "natives": 25,
            "qa": 20,
        }
        assert response.result.document["tracks"] == {
            "core-bonus": [],
            "gateway": [],
            "seo-aff": [],
        }
        assert response.result.loaded_at == T0 + 10

    @pytest.mark.asyncio
    async def test_legacy_document_is_normalized(self, store, load_handler) -> None:
        await store.store("casino", {"tracks": {"gamification": ["p1"]}}, {})

        response = await load_handler.handle(LoadDocumentQuery(vertical="casino"))

        assert response.result.document["tracks"]["gateway"] == ["p1"]
        assert "gamification" not in response.result.document["tracks"]

    @pytest.mark.asyncio
    async def test_unknown_vertical(self, load_handler) -> None:
        with pytest.raises(UnknownVerticalError):
            await load_handler.handle(LoadDocumentQuery(vertical="poker"))

    @pytest.mark.asyncio
    async def test_any_vertical_when_unrestricted(self, store, clock) -> None:
        handler = LoadDocumentHandler(
            store, InMemoryLockStrategy(), SyncConfig(verticals=None), clock=clock
        )

        response = await handler.handle(LoadDocumentQuery(vertical="poker"))

        assert response.result.vertical == "poker"

    @pytest.mark.asyncio
    async def test_load_waits_for_save_in_progress(self, locks, config, clock) -> None:
        store = _SlowStore()
        save = SaveDocumentHandler(store, locks, config, clock=clock)
        load = LoadDocumentHandler(store, locks, config, clock=clock)

        saving = asyncio.create_task(save.handle(_save("growth", 0, milestones=[{"label": "A"}])))
        while not locks.is_locked(ResourceIdentifier.for_vertical("growth")):
            await asyncio.sleep(0)

        loaded = await load.handle(LoadDocumentQuery(vertical="growth"))
        saved = await saving

        assert loaded.result.document["milestones"] == [{"label": "A"}]
        assert loaded.result.loaded_at > saved.result.loaded_at

        stale = await save.handle(_save("growth", T0, milestones=[{"label": "C"}]))
        assert stale.result.rejected_fields == ["milestones"]
        assert stale.result.document["milestones"] == [{"label": "A"}]


# ── Save ─────────────────────────────────────────────────────────────


class TestSave:
    @pytest.mark.asyncio
    async def test_first_save_is_persisted(self, store, save_handler) -> None:
        response = await save_handler.handle(
            _save("growth", 0, client_id="tab-a", capacity={"backend": 50})
        )

        result = response.result
        assert result.accepted_fields == ["capacity"]
        assert result.rejected_fields == []
        assert result.document["capacity"] == {"backend": 50}
        assert result.document["tracks"]["gateway"] == []

        stored = await store.load("growth")
        assert stored.document == result.document
        assert stored.field_timestamps == {"capacity": result.loaded_at}
        assert stored.updated_at == result.loaded_at

    @pytest.mark.asyncio
    async def test_changed_save_emits_broadcast_event(self, save_handler) -> None:
        response = await save_handler.handle(
            _save("growth", 0, client_id="tab-a", buffer={"qa": 2})
        )

        assert len(response.events) == 1
        event = response.events[0]
        assert isinstance(event, DocumentReconciled)
        assert event.sender_id == "tab-a"
        assert event.changed_fields == ["buffer"]
        message = event.to_broadcast()
        assert message["state"]["buffer"] == {"qa": 2}
        assert message["state"]["_loadedAt"] == response.result.loaded_at

    @pytest.mark.asyncio
    async def test_no_op_save_is_not_persisted(self, store, save_handler) -> None:
        first = await save_handler.handle(_save("growth", 0, buffer={"qa": 1}))
        before = await store.load("growth")

        second = await save_handler.handle(
            _save("growth", first.result.loaded_at, buffer={"qa": 1})
        )

        assert second.events == []
        assert second.result.accepted_fields == ["buffer"]
        assert await store.load("growth") == before

    @pytest.mark.asyncio
    async def test_stale_object_field_merges(self, save_handler) -> None:
        loaded_at = T0
        await save_handler.handle(_save("growth", loaded_at, capacity={"backend": 50}))

        response = await save_handler.handle(
            _save("growth", loaded_at, capacity={"backend": 45})
        )

        assert response.result.rejected_fields == []
        assert response.result.document["capacity"] == {"backend": 45}

    @pytest.mark.asyncio
    async def test_mixed_accept_and_reject(self, save_handler) -> None:
        loaded_at = T0
        await save_handler.handle(
            _save(
                "growth",
                loaded_at,
                capacity={"backend": 10},
                milestones=[{"label": "M1 Updated"}],
            )
        )

        response = await save_handler.handle(
            _save(
                "growth",
                loaded_at,
                capacity={"backend": 20},
                milestones=[{"label": "M2"}],
            )
        )

        payload = response.result.to_payload()
        assert payload["conflicts"] == ["milestones"]
        assert payload["mergedState"]["capacity"] == {"backend": 20}
        assert payload["mergedState"]["milestones"] == [{"label": "M1 Updated"}]
        assert response.events[0].rejected_fields == ["milestones"]

    @pytest.mark.asyncio
    async def test_force_overwrite(self, save_handler) -> None:
        await save_handler.handle(_save("growth", T0, milestones=[{"label": "A"}]))

        response = await save_handler.handle(_save("growth", 0, milestones=[{"label": "B"}]))

        assert response.result.rejected_fields == []
        assert response.result.document["milestones"] == [{"label": "B"}]

    @pytest.mark.asyncio
    async def test_no_false_conflict_across_a_reload(self, save_handler, load_handler) -> None:
        await save_handler.handle(_save("growth", 0, milestones=[{"label": "A"}]))
        loaded = await load_handler.handle(LoadDocumentQuery(vertical="growth"))

        response = await save_handler.handle(
            _save("growth", loaded.result.loaded_at, milestones=[{"label": "C"}])
        )

        assert response.result.rejected_fields == []

    @pytest.mark.asyncio
    async def test_store_unavailable_skips_reconcile(
        self, store, save_handler, locks, monkeypatch
    ) -> None:
        calls: list[Any] = []
        monkeypatch.setattr(
            "plansync.cqrs.handler.reconcile", lambda *a, **kw: calls.append(a)
        )
        store.set_available(False)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await save_handler.handle(_save("growth", 0, buffer={"qa": 1}))

        assert exc_info.value.operation == "load"
        assert calls == []
        assert not locks.is_locked(ResourceIdentifier.for_vertical("growth"))
        store.set_available(True)
        assert await store.load("growth") is None

    @pytest.mark.asyncio
    async def test_unknown_vertical(self, save_handler, store) -> None:
        with pytest.raises(UnknownVerticalError):
            await save_handler.handle(_save("poker", 0, buffer={}))

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_concurrent_saves_are_serialized(self, store, save_handler) -> None:
        saves = [
            save_handler.handle(_save("growth", 0, capacity={f"k{i}": i})) for i in range(5)
        ]

        responses = await asyncio.gather(*saves)

        stamps = sorted(r.result.loaded_at for r in responses)
        assert len(set(stamps)) == 5
        stored = await store.load("growth")
        assert stored.field_timestamps["capacity"] == stamps[-1]


# ── Poll ─────────────────────────────────────────────────────────────


class TestPoll:
    @pytest.mark.asyncio
    async def test_never_saved(self, store, config) -> None:
        handler = PollDocumentHandler(store, config)

        response = await handler.handle(PollDocumentQuery(vertical="growth"))

        assert response.result.to_payload() == {"updatedAt": None, "_fieldTs": {}}

    @pytest.mark.asyncio
    async def test_reports_change_markers(self, store, config, save_handler) -> None:
        saved = await save_handler.handle(_save("growth", 0, buffer={"qa": 1}))
        handler = PollDocumentHandler(store, config)

        response = await handler.handle(PollDocumentQuery(vertical="growth"))

        assert response.result.updated_at == saved.result.loaded_at
        assert response.result.field_timestamps == {"buffer": saved.result.loaded_at}
