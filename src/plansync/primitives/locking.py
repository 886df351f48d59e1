"""Lockable resource identifiers for per-vertical serialization."""

from __future__ import annotations

from dataclasses import dataclass

VERTICAL_RESOURCE_TYPE = "Vertical"


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Identifies a single lockable resource.

    Examples:
        >>> ResourceIdentifier("Vertical", "growth")
        >>> ResourceIdentifier.for_vertical("casino")
    """

    resource_type: str
    resource_id: str

    @classmethod
    def for_vertical(cls, vertical: str) -> ResourceIdentifier:
        """The resource guarding the load/reconcile/store cycle of a vertical."""
        return cls(VERTICAL_RESOURCE_TYPE, vertical)

    def __lt__(self, other: ResourceIdentifier) -> bool:
        # Deterministic acquisition order prevents deadlocks.
        return (self.resource_type, self.resource_id) < (
            other.resource_type,
            other.resource_id,
        )

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"
