"""The closed set of document fields and the shape each one carries."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any


class FieldName(str, Enum):
    """Top-level fields of a vertical document.

    Adding a member here is the single place a new field is declared; the
    merge engine and the client session both iterate this enum.
    """

    CAPACITY = "capacity"
    TRACKS = "tracks"
    TRACK_CAPACITY = "trackCapacity"
    SPLITS = "splits"
    TIMELINE_CONFIG = "timelineConfig"
    MILESTONES = "milestones"
    TIMELINE_OVERRIDES = "timelineOverrides"
    SIZE_MAP = "sizeMap"
    TRACK_SUB_LANE_COUNTS = "trackSubLaneCounts"
    TIMELINE_LANE_ASSIGNMENTS = "timelineLaneAssignments"
    TRACK_BLOCK_ORDER = "trackBlockOrder"
    BUFFER = "buffer"


class FieldKind(str, Enum):
    """Declared value shape of a field.

    - **KEYED**: object with a known or config-driven key set; sub-key mergeable.
    - **FREEFORM**: object whose keys are data (project ids, track keys);
      sub-key mergeable.
    - **SEQUENCE**: array; accepted or rejected as a whole.
    - **SCALAR**: primitive; accepted or rejected as a whole.
    """

    KEYED = "KEYED"
    FREEFORM = "FREEFORM"
    SEQUENCE = "SEQUENCE"
    SCALAR = "SCALAR"

    @property
    def mergeable(self) -> bool:
        return self in (FieldKind.KEYED, FieldKind.FREEFORM)


FIELD_KINDS: dict[FieldName, FieldKind] = {
    FieldName.CAPACITY: FieldKind.KEYED,
    FieldName.TRACKS: FieldKind.KEYED,
    FieldName.TRACK_CAPACITY: FieldKind.KEYED,
    FieldName.SPLITS: FieldKind.FREEFORM,
    FieldName.TIMELINE_CONFIG: FieldKind.KEYED,
    FieldName.MILESTONES: FieldKind.SEQUENCE,
    FieldName.TIMELINE_OVERRIDES: FieldKind.FREEFORM,
    FieldName.SIZE_MAP: FieldKind.KEYED,
    FieldName.TRACK_SUB_LANE_COUNTS: FieldKind.FREEFORM,
    FieldName.TIMELINE_LANE_ASSIGNMENTS: FieldKind.FREEFORM,
    FieldName.TRACK_BLOCK_ORDER: FieldKind.FREEFORM,
    FieldName.BUFFER: FieldKind.KEYED,
}

FIELD_ORDER: tuple[str, ...] = tuple(name.value for name in FieldName)
KNOWN_FIELDS: frozenset[str] = frozenset(FIELD_ORDER)


def is_keyed_object(value: Any) -> bool:
    """True for JSON objects; arrays, primitives and ``None`` are merge-opaque."""
    return isinstance(value, Mapping)


def classify_field(name: str) -> FieldKind | None:
    """Declared kind of a known field, ``None`` for unknown (pass-through) fields."""
    try:
        return FIELD_KINDS[FieldName(name)]
    except ValueError:
        return None


def extract_known_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Pick the known document fields out of a request payload.

    Fields whose value is ``None`` are not part of the update and are dropped,
    as are request metadata keys such as the load marker.
    """
    return {
        key: value
        for key, value in payload.items()
        if key in KNOWN_FIELDS and value is not None
    }
