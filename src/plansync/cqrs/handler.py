"""Handlers wiring the document store, the vertical lock and the merge engine."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..conflict.reconcile import reconcile
from ..primitives.exceptions import UnknownVerticalError
from ..schema.defaults import default_document, normalize_document
from ..utils import epoch_ms
from .concurrency import CriticalSection
from .events import DocumentReconciled
from .response import (
    CommandResponse,
    LoadResult,
    PollResult,
    QueryResponse,
    SaveResult,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config import SyncConfig
    from ..conflict.resolution import ConflictResolver
    from ..ports.document_store import IDocumentStore
    from ..ports.locking import ILockStrategy
    from .command import LoadDocumentQuery, PollDocumentQuery, SaveDocumentCommand
    from .events import DomainEvent

logger = logging.getLogger("plansync.handlers")

TResult = TypeVar("TResult")


class CommandHandler(ABC, Generic[TResult]):
    """Base class for command handlers."""

    @abstractmethod
    async def handle(self, command: Any) -> CommandResponse[TResult]:
        """Execute the command and return a CommandResponse."""
        ...


class QueryHandler(ABC, Generic[TResult]):
    """Base class for query handlers."""

    @abstractmethod
    async def handle(self, query: Any) -> QueryResponse[TResult]:
        """Execute the query and return a QueryResponse."""
        ...


class _VerticalHandlerMixin:
    _config: SyncConfig

    def _check_vertical(self, vertical: str) -> None:
        allowed = self._config.verticals
        if allowed is not None and vertical not in allowed:
            raise UnknownVerticalError(vertical)


class SaveDocumentHandler(_VerticalHandlerMixin, CommandHandler[SaveResult]):
    """
    The save endpoint's core: load, reconcile, store, under a per-vertical lock.

    If the load fails the merge engine is never invoked and nothing is stored.
    A save that changes nothing is not written back and emits no event.
    """

    def __init__(
        self,
        store: IDocumentStore,
        lock_strategy: ILockStrategy,
        config: SyncConfig,
        *,
        clock: Callable[[], int] = epoch_ms,
        resolver: ConflictResolver | None = None,
    ) -> None:
        self._store = store
        self._lock_strategy = lock_strategy
        self._config = config
        self._clock = clock
        self._resolver = resolver

    async def handle(self, command: SaveDocumentCommand) -> CommandResponse[SaveResult]:
        vertical = command.vertical
        self._check_vertical(vertical)

        async with CriticalSection(
            command.get_critical_resources(),
            self._lock_strategy,
            timeout=self._config.lock_timeout,
            ttl=self._config.lock_ttl,
        ):
            stored = await self._store.load(vertical)
            if stored is None:
                document, timestamps, updated_at = default_document(self._config), {}, None
            else:
                document = normalize_document(stored.document, self._config)
                timestamps, updated_at = stored.field_timestamps, stored.updated_at

            now = self._clock()
            result = reconcile(
                document,
                timestamps,
                command.changes,
                command.loaded_at,
                now,
                resolver=self._resolver,
            )
            if result.has_changes:
                await self._store.store(
                    vertical,
                    result.document,
                    result.field_timestamps,
                    updated_at=now,
                )
                updated_at = now

        logger.info(
            "Saved %s: accepted=%s rejected=%s changed=%s",
            vertical,
            result.accepted,
            result.rejected,
            result.changed_fields,
            extra={
                "vertical": vertical,
                "command_id": command.command_id,
                "correlation_id": command.correlation_id,
                "updated_at": updated_at,
            },
        )

        save_result = SaveResult(
            vertical=vertical,
            document=result.document,
            loaded_at=now,
            accepted_fields=result.accepted,
            rejected_fields=result.rejected,
            resolutions=result.resolutions,
        )
        events: list[DomainEvent] = []
        if result.has_changes:
            events.append(
                DocumentReconciled(
                    vertical=vertical,
                    document=result.document,
                    loaded_at=now,
                    changed_fields=result.changed_fields,
                    rejected_fields=result.rejected,
                    sender_id=command.client_id,
                    correlation_id=command.correlation_id,
                )
            )
        return CommandResponse(
            result=save_result,
            events=events,
            correlation_id=command.correlation_id,
        )


class LoadDocumentHandler(_VerticalHandlerMixin, QueryHandler[LoadResult]):
    """Serve the normalized document with a fresh load marker.

    The marker is taken and the document read under the same vertical lock
    as saves, so a load never pairs a marker newer than a save with the
    document from before it.
    """

    def __init__(
        self,
        store: IDocumentStore,
        lock_strategy: ILockStrategy,
        config: SyncConfig,
        *,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._store = store
        self._lock_strategy = lock_strategy
        self._config = config
        self._clock = clock

    async def handle(self, query: LoadDocumentQuery) -> QueryResponse[LoadResult]:
        self._check_vertical(query.vertical)
        async with CriticalSection(
            query.get_critical_resources(),
            self._lock_strategy,
            timeout=self._config.lock_timeout,
            ttl=self._config.lock_ttl,
        ):
            loaded_at = self._clock()
            stored = await self._store.load(query.vertical)
        document = normalize_document(
            stored.document if stored is not None else None, self._config
        )
        logger.debug("Loaded %s (loaded_at=%d)", query.vertical, loaded_at)
        return QueryResponse(
            result=LoadResult(
                vertical=query.vertical, document=document, loaded_at=loaded_at
            ),
            correlation_id=query.correlation_id,
        )


class PollDocumentHandler(_VerticalHandlerMixin, QueryHandler[PollResult]):
    """Serve only the change markers, letting clients skip unchanged reloads."""

    def __init__(self, store: IDocumentStore, config: SyncConfig) -> None:
        self._store = store
        self._config = config

    async def handle(self, query: PollDocumentQuery) -> QueryResponse[PollResult]:
        self._check_vertical(query.vertical)
        stored = await self._store.load(query.vertical)
        return QueryResponse(
            result=PollResult(
                vertical=query.vertical,
                updated_at=stored.updated_at if stored is not None else None,
                field_timestamps=dict(stored.field_timestamps) if stored else {},
            ),
            correlation_id=query.correlation_id,
        )
