"""Document schema: field classification, defaults and legacy migrations."""

from __future__ import annotations

from .defaults import (
    LEGACY_TRACK_RENAMES,
    default_document,
    ensure_keys,
    generate_track_key,
    migrate_track_capacity,
    migrate_tracks,
    normalize_document,
    rename_legacy_key,
    rename_legacy_keys,
)
from .fields import (
    FIELD_KINDS,
    FIELD_ORDER,
    KNOWN_FIELDS,
    FieldKind,
    FieldName,
    classify_field,
    extract_known_fields,
    is_keyed_object,
)

__all__ = [
    "FIELD_KINDS",
    "FIELD_ORDER",
    "KNOWN_FIELDS",
    "LEGACY_TRACK_RENAMES",
    "FieldKind",
    "FieldName",
    "classify_field",
    "default_document",
    "ensure_keys",
    "extract_known_fields",
    "generate_track_key",
    "is_keyed_object",
    "migrate_track_capacity",
    "migrate_tracks",
    "normalize_document",
    "rename_legacy_key",
    "rename_legacy_keys",
]
