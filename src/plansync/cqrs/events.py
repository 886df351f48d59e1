"""Domain events emitted by the save cycle."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel):
    """Base class for events; immutable and carrying tracing context."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None


class DocumentReconciled(DomainEvent):
    """A save changed a vertical document.

    Carries everything a broadcast needs: subscribers of ``vertical`` receive
    the merged ``document``, and ``sender_id`` lets the transport skip the
    connection that made the change.
    """

    vertical: str
    document: dict[str, Any]
    loaded_at: int
    changed_fields: list[str] = Field(default_factory=list)
    rejected_fields: list[str] = Field(default_factory=list)
    sender_id: str | None = None

    def to_broadcast(self) -> dict[str, Any]:
        return {
            "type": "update",
            "vertical": self.vertical,
            "state": {**self.document, "_loadedAt": self.loaded_at},
            "changedFields": list(self.changed_fields),
            "senderId": self.sender_id,
        }
