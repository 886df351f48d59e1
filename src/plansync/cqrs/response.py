"""Response wrappers and result payloads for the document handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from ..conflict.reconcile import FieldResolution
    from .events import DomainEvent

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResponse(Generic[T]):
    """Wrapper returned by command handlers.

    Carries the result payload together with the domain events the command
    produced, for the caller to broadcast.
    """

    result: T
    events: list[DomainEvent] = field(default_factory=list)
    success: bool = True
    correlation_id: str | None = None


@dataclass(frozen=True)
class QueryResponse(Generic[T]):
    """Wrapper returned by query handlers."""

    result: T
    success: bool = True
    correlation_id: str | None = None


@dataclass(frozen=True)
class SaveResult:
    vertical: str
    document: dict[str, Any]
    loaded_at: int
    accepted_fields: list[str]
    rejected_fields: list[str]
    resolutions: list[FieldResolution] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "mergedState": {**self.document, "_loadedAt": self.loaded_at},
            "conflicts": list(self.rejected_fields),
        }


@dataclass(frozen=True)
class LoadResult:
    vertical: str
    document: dict[str, Any]
    loaded_at: int

    def to_payload(self) -> dict[str, Any]:
        return {**self.document, "_loadedAt": self.loaded_at}


@dataclass(frozen=True)
class PollResult:
    vertical: str
    updated_at: int | None
    field_timestamps: dict[str, int]

    def to_payload(self) -> dict[str, Any]:
        return {"updatedAt": self.updated_at, "_fieldTs": dict(self.field_timestamps)}
