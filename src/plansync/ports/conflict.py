"""Merge strategy ports for concurrent edits of object-valued fields."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IMergeStrategy(ABC):
    """Two-way merge: reconcile an incoming value against the persisted one."""

    @abstractmethod
    def merge(self, existing: Any, incoming: Any) -> Any:
        """Merge two conflicting versions of a field value.

        Args:
            existing: The persisted (current server) version.
            incoming: The version a client is attempting to save.

        Returns:
            Merge result.
        """
        ...


class IThreeWayMergeStrategy(ABC):
    """Three-way merge: an edited value, the latest upstream value, and the
    upstream value the edit started from."""

    @abstractmethod
    def merge(self, existing: Any, incoming: Any, baseline: Any) -> Any:
        """Merge a local edit with newer upstream state.

        Args:
            existing: The most recent upstream version observed.
            incoming: The locally edited version.
            baseline: The upstream version at the moment editing started.

        Returns:
            Merge result.
        """
        ...
