"""Field-level optimistic reconciliation of a client's save against the server.

``reconcile`` is pure: it reads the authoritative document and its per-field
timestamps, never mutates them, and returns fresh values for the caller to
persist. Serializing load/reconcile/store per vertical is the caller's job.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..diffing import deep_equal
from ..schema.fields import is_keyed_object
from .resolution import ConflictResolver

logger = logging.getLogger("plansync.reconcile")

FORCE_OVERWRITE = 0


class FieldOutcome(str, Enum):
    """How ``reconcile`` treated one field of a save.

    - **ACCEPTED**: the client's view was current (or forced); its value applies.
    - **MERGED**: stale object field, client sub-key changes merged in.
    - **UNCHANGED**: stale object field whose merge had no effect.
    - **REJECTED**: stale non-object field; the server value wins.
    """

    ACCEPTED = "ACCEPTED"
    MERGED = "MERGED"
    UNCHANGED = "UNCHANGED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class FieldResolution:
    """Per-field audit record of a reconcile call."""

    field: str
    outcome: FieldOutcome
    changed: bool = False
    merged_keys: list[str] = field(default_factory=list)
    added_keys: list[str] = field(default_factory=list)
    deleted_keys: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReconcileResult:
    """The new authoritative state produced by one save."""

    document: dict[str, Any]
    field_timestamps: dict[str, int]
    accepted: list[str]
    rejected: list[str]
    resolutions: list[FieldResolution] = field(default_factory=list)

    @property
    def changed_fields(self) -> list[str]:
        """Fields whose value, and therefore timestamp, changed."""
        return [r.field for r in self.resolutions if r.changed]

    @property
    def has_changes(self) -> bool:
        return any(r.changed for r in self.resolutions)


def is_stale(last_modified: int, loaded_at: int) -> bool:
    """A field is stale when it changed after the client loaded.

    The boundary is inclusive: a change at exactly ``loaded_at`` was seen.
    """
    return loaded_at != FORCE_OVERWRITE and last_modified > loaded_at


def reconcile(
    server_document: Mapping[str, Any],
    server_field_timestamps: Mapping[str, int],
    client_fields: Mapping[str, Any],
    loaded_at: int,
    now: int,
    *,
    resolver: ConflictResolver | None = None,
) -> ReconcileResult:
    """Merge a client's changed fields into the authoritative document.

    Args:
        server_document: Current authoritative document.
        server_field_timestamps: Field name -> epoch ms of its last real change.
        client_fields: Only the fields the client changed, each carrying its
            complete value. ``None`` values are not part of the update.
        loaded_at: The client's load marker; ``0`` forces every field through.
        now: Timestamp recorded for fields whose value changes.
        resolver: Merge resolver for stale object fields.

    Returns:
        ReconcileResult with the full merged document and timestamps.
    """
    resolver = resolver or ConflictResolver()
    document = deepcopy(dict(server_document))
    timestamps = dict(server_field_timestamps)
    accepted: list[str] = []
    rejected: list[str] = []
    resolutions: list[FieldResolution] = []

    for name, client_value in client_fields.items():
        if client_value is None:
            continue

        last_modified = timestamps.get(name, 0)
        server_value = document.get(name)

        if not is_stale(last_modified, loaded_at):
            changed = not deep_equal(client_value, server_value)
            if changed:
                document[name] = deepcopy(client_value)
                timestamps[name] = now
            accepted.append(name)
            resolutions.append(
                FieldResolution(field=name, outcome=FieldOutcome.ACCEPTED, changed=changed)
            )
            logger.debug(
                "Accepted %s (changed=%s, last_modified=%d, loaded_at=%d)",
                name,
                changed,
                last_modified,
                loaded_at,
            )
            continue

        if is_keyed_object(client_value) and is_keyed_object(server_value):
            merge = resolver.merge(name, server_value, client_value)
            if not merge.has_changes:
                resolutions.append(
                    FieldResolution(field=name, outcome=FieldOutcome.UNCHANGED)
                )
                logger.debug("Stale %s merged without effect", name)
                continue

            document[name] = merge.merged
            timestamps[name] = now
            accepted.append(name)
            resolutions.append(
                FieldResolution(
                    field=name,
                    outcome=FieldOutcome.MERGED,
                    changed=True,
                    merged_keys=merge.changed_keys,
                    added_keys=merge.added_keys,
                    deleted_keys=merge.deleted_keys,
                )
            )
            logger.info(
                "Merged stale %s: changed=%s added=%s deleted=%s",
                name,
                merge.changed_keys,
                merge.added_keys,
                merge.deleted_keys,
            )
            continue

        rejected.append(name)
        resolutions.append(FieldResolution(field=name, outcome=FieldOutcome.REJECTED))
        logger.warning(
            "Rejected stale %s: modified at %d after client load at %d",
            name,
            last_modified,
            loaded_at,
        )

    return ReconcileResult(
        document=document,
        field_timestamps=timestamps,
        accepted=accepted,
        rejected=rejected,
        resolutions=resolutions,
    )
