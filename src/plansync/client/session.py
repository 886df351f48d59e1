"""PlanningSession, the client half of the save protocol.

A session models one editing client (a browser tab): it keeps the last
document the server confirmed, the user's local edits on top of it, and the
per-field baseline each edit started from. Outgoing saves carry only the
changed fields; server pushes are folded into pending edits with the
baseline merge so a debounced save never clobbers changes it has not seen.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from copy import deepcopy
from typing import Any

from ..conflict.reconcile import FORCE_OVERWRITE
from ..conflict.resolution import ConflictResolver, LocalMergeResult
from ..diffing import changed_fields, deep_equal
from ..primitives.exceptions import InvalidRequestError

logger = logging.getLogger("plansync.client")


class PlanningSession:
    """Local editing state of one client for one vertical."""

    def __init__(
        self,
        vertical: str,
        *,
        client_id: str | None = None,
        resolver: ConflictResolver | None = None,
    ) -> None:
        self.vertical = vertical
        self.client_id = client_id or str(uuid.uuid4())
        self._resolver = resolver or ConflictResolver()
        self._snapshot: dict[str, Any] = {}
        self._local: dict[str, Any] = {}
        self._baselines: dict[str, Any] = {}
        self._in_flight: dict[str, Any] = {}
        self.loaded_at: int = FORCE_OVERWRITE
        self.last_rejected: list[str] = []

    # ── State ────────────────────────────────────────────────────

    @property
    def document(self) -> dict[str, Any]:
        """The document as the user currently sees it, edits included."""
        return deepcopy(self._local)

    @property
    def snapshot(self) -> dict[str, Any]:
        """The last server-confirmed document."""
        return deepcopy(self._snapshot)

    def pending_changes(self) -> dict[str, Any]:
        """Fields whose local value differs from the confirmed snapshot."""
        return changed_fields(self._snapshot, self._local)

    @property
    def has_pending_changes(self) -> bool:
        return bool(self.pending_changes())

    # ── Server → client ──────────────────────────────────────────

    def load(self, document: Mapping[str, Any], loaded_at: int) -> None:
        """Adopt a freshly loaded document, discarding any local edits."""
        self._snapshot = deepcopy(dict(document))
        self._local = deepcopy(dict(document))
        self._baselines.clear()
        self._in_flight.clear()
        self.loaded_at = loaded_at
        logger.debug("Session %s loaded %s at %d", self.client_id, self.vertical, loaded_at)

    def load_payload(self, payload: Mapping[str, Any]) -> None:
        """Adopt a load response body (document fields plus ``_loadedAt``)."""
        document = {k: v for k, v in payload.items() if k != "_loadedAt"}
        self.load(document, _marker(payload))

    def observe_update(
        self, document: Mapping[str, Any], loaded_at: int | None = None
    ) -> dict[str, LocalMergeResult]:
        """Fold a newer server document (e.g. another user's save) into local state.

        Fields without pending edits take the server value. Fields with pending
        edits keep the user's changed and deleted sub-keys but pick up every
        server sub-key the user never touched.

        Returns:
            The merge result of each field that had a pending edit.
        """
        pending = self.pending_changes()
        merges: dict[str, LocalMergeResult] = {}
        local = deepcopy(dict(document))
        for name, local_value in pending.items():
            latest = document.get(name)
            merge = self._resolver.merge_local(
                name, latest, local_value, self._baselines.get(name, self._snapshot.get(name))
            )
            local[name] = merge.merged
            self._baselines[name] = deepcopy(latest)
            merges[name] = merge
            if merge.overlaid_keys or merge.deleted_keys:
                logger.debug(
                    "Rebased pending %s: overlaid=%s deleted=%s",
                    name,
                    merge.overlaid_keys,
                    merge.deleted_keys,
                )

        for name in [n for n in self._baselines if n not in pending]:
            del self._baselines[name]
        self._snapshot = deepcopy(dict(document))
        self._local = local
        if loaded_at is not None:
            self.loaded_at = max(self.loaded_at, loaded_at)
        return merges

    def observe_broadcast(self, message: Mapping[str, Any]) -> dict[str, LocalMergeResult] | None:
        """Handle a pushed update message; own and foreign-vertical pushes are ignored."""
        if message.get("type") != "update" or message.get("vertical") != self.vertical:
            return None
        if message.get("senderId") == self.client_id:
            return None
        state = message.get("state")
        if not isinstance(state, Mapping):
            return None
        document = {k: v for k, v in state.items() if k != "_loadedAt"}
        loaded_at = state.get("_loadedAt")
        return self.observe_update(
            document, loaded_at if isinstance(loaded_at, int) else None
        )

    # ── Client → server ──────────────────────────────────────────

    def edit(self, field: str, value: Any) -> None:
        """Replace the full local value of one field.

        The value is the field's complete new value: sub-keys left out of an
        object are deleted.
        """
        if field not in self._baselines:
            self._baselines[field] = deepcopy(self._snapshot.get(field))
        self._local[field] = deepcopy(value)

    def build_save_payload(self, *, force: bool = False) -> dict[str, Any] | None:
        """The body of the next save request, or ``None`` when nothing changed.

        ``force`` sends a zero load marker so every field wins unconditionally
        (restore, promote and undo flows).
        """
        changes = self.pending_changes()
        if not changes:
            return None
        self._in_flight = deepcopy(changes)
        return {**changes, "_loadedAt": FORCE_OVERWRITE if force else self.loaded_at}

    def apply_save_response(
        self,
        document: Mapping[str, Any],
        loaded_at: int,
        rejected: list[str] | None = None,
    ) -> None:
        """Adopt the server's merged document as the new truth.

        Edits made while the save was in flight stay pending, rebased onto the
        merged document.
        """
        sent, self._in_flight = self._in_flight, {}
        still_pending = {
            name: value
            for name, value in self.pending_changes().items()
            if name not in sent or not deep_equal(value, sent[name])
        }

        local = deepcopy(dict(document))
        baselines: dict[str, Any] = {}
        for name, local_value in still_pending.items():
            latest = document.get(name)
            merge = self._resolver.merge_local(
                name, latest, local_value, self._baselines.get(name, self._snapshot.get(name))
            )
            local[name] = merge.merged
            baselines[name] = deepcopy(latest)

        self._snapshot = deepcopy(dict(document))
        self._local = local
        self._baselines = baselines
        self.loaded_at = loaded_at
        self.last_rejected = list(rejected or [])
        if self.last_rejected:
            logger.warning(
                "Save of %s lost to newer server values: %s",
                self.vertical,
                self.last_rejected,
            )

    def apply_save_payload(self, payload: Mapping[str, Any]) -> None:
        """Adopt a save response body (``mergedState`` and ``conflicts``)."""
        merged = payload.get("mergedState")
        if not isinstance(merged, Mapping):
            raise InvalidRequestError({"mergedState": ["missing from save response"]})
        document = {k: v for k, v in merged.items() if k != "_loadedAt"}
        self.apply_save_response(
            document, _marker(merged), list(payload.get("conflicts") or [])
        )


def _marker(payload: Mapping[str, Any]) -> int:
    value = payload.get("_loadedAt")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequestError({"_loadedAt": ["missing or not an integer"]})
    return value
