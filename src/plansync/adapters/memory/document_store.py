"""InMemoryDocumentStore — dict-backed document store for tests and single-process use."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from ...ports.document_store import IDocumentStore, StoredDocument
from ...primitives.exceptions import StoreUnavailableError


class InMemoryDocumentStore(IDocumentStore):
    """In-memory implementation of ``IDocumentStore``.

    Values are deep-copied on the way in and out, so callers never share
    mutable structure with the store.
    """

    def __init__(self) -> None:
        self._documents: dict[str, StoredDocument] = {}
        self._available = True

    async def load(self, vertical: str) -> StoredDocument | None:
        self._check_available(vertical, "load")
        stored = self._documents.get(vertical)
        return deepcopy(stored) if stored is not None else None

    async def store(
        self,
        vertical: str,
        document: dict[str, Any],
        field_timestamps: dict[str, int],
        *,
        updated_at: int | None = None,
    ) -> None:
        self._check_available(vertical, "store")
        self._documents[vertical] = StoredDocument(
            document=deepcopy(document),
            field_timestamps=dict(field_timestamps),
            updated_at=updated_at,
        )

    async def health_check(self) -> bool:
        return self._available

    def _check_available(self, vertical: str, operation: str) -> None:
        if not self._available:
            raise StoreUnavailableError(vertical, operation, "store marked unavailable")

    # ── Test helpers ─────────────────────────────────────────────

    def set_available(self, available: bool) -> None:
        """Simulate the backend going down (``False``) or coming back."""
        self._available = available

    def clear(self) -> None:
        self._documents.clear()

    def __len__(self) -> int:
        return len(self._documents)
