"""Default-filling and legacy-migration helpers for vertical documents.

Every helper here is non-destructive: it returns a new structure, deep-copies
the defaults it inserts, and never mutates its input.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from copy import deepcopy
from typing import TYPE_CHECKING, Any

from ..config import DEFAULT_DISCIPLINES, DEFAULT_TRACK_CONFIG
from .fields import FieldName, is_keyed_object

if TYPE_CHECKING:
    from ..config import SyncConfig, TrackDefinition

logger = logging.getLogger("plansync.schema")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

LEGACY_TRACK_RENAMES: dict[str, str] = {"gamification": "gateway"}


def ensure_keys(
    value: Mapping[str, Any] | None,
    expected_keys: Iterable[str],
    zero: Any,
) -> dict[str, Any]:
    """Return a copy of *value* where every expected key exists.

    Missing keys, and keys holding ``None``, get a deep copy of *zero*; extra
    keys already present are kept.
    """
    result: dict[str, Any] = deepcopy(dict(value)) if value else {}
    for key in expected_keys:
        if result.get(key) is None:
            result[key] = deepcopy(zero)
    return result


def rename_legacy_key(
    value: Mapping[str, Any] | None,
    old_key: str,
    new_key: str,
) -> dict[str, Any]:
    """Move ``old_key`` to ``new_key`` unless ``new_key`` already exists.

    Idempotent: once renamed, a second call finds no ``old_key``. When both keys
    exist the live ``new_key`` wins and nothing is touched.
    """
    result = dict(value) if value else {}
    if old_key in result and new_key not in result:
        result[new_key] = result.pop(old_key)
        logger.debug("Migrated legacy key %r -> %r", old_key, new_key)
    return result


def rename_legacy_keys(
    value: Mapping[str, Any],
    renames: Mapping[str, str],
) -> dict[str, Any]:
    result = dict(value)
    for old_key, new_key in renames.items():
        result = rename_legacy_key(result, old_key, new_key)
    return result


def _track_keys(track_config: Sequence[TrackDefinition] | None) -> list[str]:
    if track_config is None:
        track_config = DEFAULT_TRACK_CONFIG
    return [track.key for track in track_config]


def migrate_tracks(
    tracks: Mapping[str, Any] | None,
    track_config: Sequence[TrackDefinition] | None = None,
    renames: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Apply legacy track renames, then default every configured track to ``[]``."""
    result = rename_legacy_keys(tracks or {}, renames or LEGACY_TRACK_RENAMES)
    return ensure_keys(result, _track_keys(track_config), [])


def migrate_track_capacity(
    track_capacity: Mapping[str, Any] | None,
    track_config: Sequence[TrackDefinition] | None = None,
    disciplines: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Default every configured track to a zero discipline map."""
    if disciplines is None:
        disciplines = DEFAULT_DISCIPLINES
    zero = dict.fromkeys(disciplines, 0)
    return ensure_keys(track_capacity, _track_keys(track_config), zero)


def generate_track_key(label: str) -> str:
    """Slugify a track label: ``"SEO & AFF"`` -> ``"seo-aff"``."""
    return _NON_ALNUM.sub("-", label.lower()).strip("-")


def default_document(config: SyncConfig) -> dict[str, Any]:
    """The document served for a vertical that has never been saved."""
    return {
        FieldName.CAPACITY.value: dict(config.default_capacity),
        FieldName.TRACKS.value: {key: [] for key in config.track_keys},
    }


def normalize_document(
    document: Mapping[str, Any] | None,
    config: SyncConfig,
) -> dict[str, Any]:
    """Bring a stored, possibly legacy, document into the canonical shape.

    Unknown fields are passed through untouched.
    """
    if not document:
        return default_document(config)

    result = deepcopy(dict(document))
    if not is_keyed_object(result.get(FieldName.CAPACITY.value)):
        result[FieldName.CAPACITY.value] = dict(config.default_capacity)

    tracks = result.get(FieldName.TRACKS.value)
    result[FieldName.TRACKS.value] = migrate_tracks(
        tracks if is_keyed_object(tracks) else None,
        config.track_config,
        config.legacy_track_renames,
    )

    track_capacity = result.get(FieldName.TRACK_CAPACITY.value)
    if is_keyed_object(track_capacity):
        track_capacity = rename_legacy_keys(track_capacity, config.legacy_track_renames)
        result[FieldName.TRACK_CAPACITY.value] = migrate_track_capacity(
            track_capacity, config.track_config, config.disciplines
        )
    return result

