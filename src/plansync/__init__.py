"""plansync: field-level optimistic merging of shared planning documents.

The merge engine (``reconcile``, ``local_merge``) is pure and synchronous;
the handlers add persistence, per-vertical locking and broadcast events.
"""

from __future__ import annotations

# ── Adapters ────────────────────────────────────────────────────
from .adapters.memory import InMemoryDocumentStore, InMemoryLockStrategy

# ── Client ───────────────────────────────────────────────────────
from .client import PlanningSession
from .config import DEFAULT_TRACK_CONFIG, SyncConfig, TrackDefinition

# ── Merge engine ─────────────────────────────────────────────────
from .conflict import (
    FORCE_OVERWRITE,
    BaselineMergeStrategy,
    ConflictResolver,
    FieldOutcome,
    FieldResolution,
    LocalMergeResult,
    ReconcileResult,
    SubKeyMergeResult,
    SubKeyMergeStrategy,
    local_merge,
    reconcile,
    sub_key_merge,
)
from .correlation import get_client_id, get_correlation_id, set_client_id, set_correlation_id

# ── CQRS ─────────────────────────────────────────────────────────
from .cqrs import (
    CommandResponse,
    CriticalSection,
    DocumentReconciled,
    LoadDocumentHandler,
    LoadDocumentQuery,
    LoadResult,
    PollDocumentHandler,
    PollDocumentQuery,
    PollResult,
    QueryResponse,
    SaveDocumentCommand,
    SaveDocumentHandler,
    SaveResult,
)
from .diffing import SubKeyDiff, changed_fields, deep_equal, diff_sub_keys
from .instrumentation import HookRegistry, get_hook_registry, set_hook_registry

# ── Ports ────────────────────────────────────────────────────────
from .ports import IDocumentStore, ILockStrategy, StoredDocument

# ── Primitives ───────────────────────────────────────────────────
from .primitives import (
    InvalidRequestError,
    LockAcquisitionError,
    PlanSyncError,
    ResourceIdentifier,
    StoreUnavailableError,
    UnknownVerticalError,
    ValidationError,
)

# ── Schema ───────────────────────────────────────────────────────
from .schema import (
    FieldKind,
    FieldName,
    default_document,
    ensure_keys,
    generate_track_key,
    migrate_track_capacity,
    migrate_tracks,
    normalize_document,
    rename_legacy_key,
)

__all__ = [
    "DEFAULT_TRACK_CONFIG",
    "FORCE_OVERWRITE",
    "BaselineMergeStrategy",
    "CommandResponse",
    "ConflictResolver",
    "CriticalSection",
    "DocumentReconciled",
    "FieldKind",
    "FieldName",
    "FieldOutcome",
    "FieldResolution",
    "HookRegistry",
    "IDocumentStore",
    "ILockStrategy",
    "InMemoryDocumentStore",
    "InMemoryLockStrategy",
    "InvalidRequestError",
    "LoadDocumentHandler",
    "LoadDocumentQuery",
    "LoadResult",
    "LocalMergeResult",
    "LockAcquisitionError",
    "PlanSyncError",
    "PlanningSession",
    "PollDocumentHandler",
    "PollDocumentQuery",
    "PollResult",
    "QueryResponse",
    "ReconcileResult",
    "ResourceIdentifier",
    "SaveDocumentCommand",
    "SaveDocumentHandler",
    "SaveResult",
    "StoreUnavailableError",
    "StoredDocument",
    "SubKeyDiff",
    "SubKeyMergeResult",
    "SubKeyMergeStrategy",
    "SyncConfig",
    "TrackDefinition",
    "UnknownVerticalError",
    "ValidationError",
    "changed_fields",
    "deep_equal",
    "default_document",
    "diff_sub_keys",
    "ensure_keys",
    "generate_track_key",
    "get_client_id",
    "get_correlation_id",
    "get_hook_registry",
    "local_merge",
    "migrate_track_capacity",
    "migrate_tracks",
    "normalize_document",
    "reconcile",
    "rename_legacy_key",
    "set_client_id",
    "set_correlation_id",
    "set_hook_registry",
    "sub_key_merge",
]
