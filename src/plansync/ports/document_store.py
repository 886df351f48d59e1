"""IDocumentStore — persistence port for vertical documents.

One document per vertical, stored together with its per-field timestamp map.
``load`` and ``store`` must each be atomic per vertical; serializing the
load/reconcile/store cycle across them is done by the caller with a lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class StoredDocument:
    """A vertical document as persisted.

    ``updated_at`` is the epoch ms of the last save that changed something, or
    ``None`` for a vertical that was never saved.
    """

    document: dict[str, Any] = field(default_factory=dict)
    field_timestamps: dict[str, int] = field(default_factory=dict)
    updated_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document": self.document,
            "field_timestamps": self.field_timestamps,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoredDocument:
        return cls(
            document=dict(data.get("document") or {}),
            field_timestamps={
                str(k): int(v) for k, v in (data.get("field_timestamps") or {}).items()
            },
            updated_at=data.get("updated_at"),
        )


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Document store protocol.

    Implementations raise :class:`~plansync.primitives.StoreUnavailableError`
    when the backend cannot be reached; they never return partial data.
    """

    async def load(self, vertical: str) -> StoredDocument | None:
        """Return the stored document, or ``None`` if the vertical was never saved."""
        ...

    async def store(
        self,
        vertical: str,
        document: dict[str, Any],
        field_timestamps: dict[str, int],
        *,
        updated_at: int | None = None,
    ) -> None:
        """Replace the stored document and timestamp map of a vertical."""
        ...

    async def health_check(self) -> bool:
        """Lightweight check that the backend is reachable."""
        ...
