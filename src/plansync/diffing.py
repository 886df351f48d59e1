"""Structural comparison of JSON-like values and document snapshots."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from .schema.fields import FIELD_ORDER


def deep_equal(left: Any, right: Any) -> bool:
    """JSON structural equality.

    Objects compare by key set and values regardless of key order, arrays
    compare element-wise in order. Booleans never equal numbers (``True != 1``),
    while ``1 == 1.0`` as in JSON.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if isinstance(left, Mapping):
        if not isinstance(right, Mapping) or left.keys() != right.keys():
            return False
        return all(deep_equal(left[key], right[key]) for key in left)

    if isinstance(left, (list, tuple)):
        if not isinstance(right, (list, tuple)) or len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right))

    if isinstance(right, (Mapping, list, tuple)):
        return False
    return bool(left == right)


@dataclass(frozen=True)
class SubKeyDiff:
    """Sub-key level difference between two versions of an object field."""

    added: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.changed or self.removed)


def diff_sub_keys(before: Mapping[str, Any], after: Mapping[str, Any]) -> SubKeyDiff:
    """Which sub-keys *after* added, changed or removed relative to *before*."""
    added: list[str] = []
    changed: list[str] = []
    for key, value in after.items():
        if key not in before:
            added.append(key)
        elif not deep_equal(before[key], value):
            changed.append(key)
    removed = [key for key in before if key not in after]
    return SubKeyDiff(added=added, changed=changed, removed=removed)


def changed_fields(
    snapshot: Mapping[str, Any],
    current: Mapping[str, Any],
    fields: Iterable[str] = FIELD_ORDER,
) -> dict[str, Any]:
    """The outgoing diff: fields of *current* that differ from *snapshot*.

    Each changed field carries its complete current value (never a patch), so
    sub-keys missing from it are deletions. Fields absent from *current* are
    never reported.
    """
    diff: dict[str, Any] = {}
    for name in fields:
        if name not in current or current[name] is None:
            continue
        if name in snapshot and deep_equal(snapshot[name], current[name]):
            continue
        diff[name] = deepcopy(current[name])
    return diff
