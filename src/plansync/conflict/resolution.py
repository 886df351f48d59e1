"""Sub-key merge strategies for object-valued document fields.

Both directions use *replace-with-full-value* semantics: an edited object is
always the editor's complete value for the field, never a patch, so a sub-key
absent from it is a deletion.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from ..correlation import get_correlation_id
from ..diffing import deep_equal, diff_sub_keys
from ..instrumentation import fire_and_forget_hook, get_hook_registry
from ..ports.conflict import IMergeStrategy, IThreeWayMergeStrategy
from ..schema.fields import is_keyed_object

logger = logging.getLogger("plansync.conflict")


@dataclass(frozen=True)
class SubKeyMergeResult:
    """Outcome of merging a client's object value over a newer server value."""

    merged: dict[str, Any]
    changed_keys: list[str] = field(default_factory=list)
    added_keys: list[str] = field(default_factory=list)
    deleted_keys: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed_keys or self.added_keys or self.deleted_keys)


@dataclass(frozen=True)
class LocalMergeResult:
    """Outcome of folding newer server state into a pending local edit."""

    merged: Any
    overlaid_keys: list[str] = field(default_factory=list)
    deleted_keys: list[str] = field(default_factory=list)


class SubKeyMergeStrategy(IMergeStrategy):
    """
    Server-side merge of a stale client's object over the current server object.

    - The result is the client's key set with the client's values.
    - Sub-keys the client changed or added win.
    - Server sub-keys missing from the client's value are deletions and stay
      deleted.
    """

    def merge(
        self, existing: Mapping[str, Any], incoming: Mapping[str, Any]
    ) -> SubKeyMergeResult:
        diff = diff_sub_keys(existing, incoming)
        return SubKeyMergeResult(
            merged=deepcopy(dict(incoming)),
            changed_keys=diff.changed,
            added_keys=diff.added,
            deleted_keys=diff.removed,
        )


class BaselineMergeStrategy(IThreeWayMergeStrategy):
    """
    Client-side merge of a pending edit with server state observed after the
    edit began.

    For each sub-key of the latest server value:
    - new since the baseline: taken from the server (overlay addition);
    - untouched by the user (local equals baseline): takes the newer server value;
    - edited or deleted by the user: the local version stays.

    Non-object local values, or a missing server value, pass through unchanged.
    """

    def merge(self, existing: Any, incoming: Any, baseline: Any) -> LocalMergeResult:
        if not is_keyed_object(incoming) or not is_keyed_object(existing):
            return LocalMergeResult(merged=incoming)

        captured = baseline if is_keyed_object(baseline) else existing
        merged = dict(incoming)
        overlaid: list[str] = []
        for key, server_value in existing.items():
            if key not in captured:
                merged[key] = deepcopy(server_value)
                overlaid.append(key)
            elif key in incoming and deep_equal(incoming[key], captured[key]):
                merged[key] = deepcopy(server_value)

        deleted = [key for key in captured if key not in incoming]
        return LocalMergeResult(merged=merged, overlaid_keys=overlaid, deleted_keys=deleted)


class ConflictResolver:
    """Runs a merge strategy and reports it to the instrumentation hooks."""

    def __init__(
        self,
        strategy: IMergeStrategy | None = None,
        local_strategy: IThreeWayMergeStrategy | None = None,
    ) -> None:
        self.strategy = strategy or SubKeyMergeStrategy()
        self.local_strategy = local_strategy or BaselineMergeStrategy()

    def merge(
        self, field_name: str, existing: Any, incoming: Any
    ) -> SubKeyMergeResult:
        result: SubKeyMergeResult = self.strategy.merge(existing, incoming)
        self._report(self.strategy, field_name, result.has_changes)
        return result

    def merge_local(
        self, field_name: str, existing: Any, incoming: Any, baseline: Any
    ) -> LocalMergeResult:
        result: LocalMergeResult = self.local_strategy.merge(
            existing, incoming, baseline
        )
        self._report(
            self.local_strategy, field_name, not deep_equal(result.merged, incoming)
        )
        return result

    @staticmethod
    def _report(strategy: object, field_name: str, changed: bool) -> None:
        strategy_name = type(strategy).__name__
        logger.debug(
            "%s resolved field %s (changed=%s)", strategy_name, field_name, changed
        )
        attrs = {
            "strategy.type": strategy_name,
            "field": field_name,
            "changed": changed,
            "correlation_id": get_correlation_id(),
        }
        fire_and_forget_hook(
            get_hook_registry(), f"conflict.resolve.{strategy_name}", attrs
        )


def sub_key_merge(
    client_value: Mapping[str, Any], server_value: Mapping[str, Any]
) -> SubKeyMergeResult:
    return SubKeyMergeStrategy().merge(server_value, client_value)


def local_merge(
    local_value: Any,
    latest_server_value: Any,
    captured_server_value: Any = None,
) -> LocalMergeResult:
    """Fold server changes the user never touched into a pending local edit."""
    return BaselineMergeStrategy().merge(
        latest_server_value, local_value, captured_server_value
    )
