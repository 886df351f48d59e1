from .reconcile import (
    FORCE_OVERWRITE,
    FieldOutcome,
    FieldResolution,
    ReconcileResult,
    is_stale,
    reconcile,
)
from .resolution import (
    BaselineMergeStrategy,
    ConflictResolver,
    LocalMergeResult,
    SubKeyMergeResult,
    SubKeyMergeStrategy,
    local_merge,
    sub_key_merge,
)

__all__ = [
    "FORCE_OVERWRITE",
    "BaselineMergeStrategy",
    "ConflictResolver",
    "FieldOutcome",
    "FieldResolution",
    "LocalMergeResult",
    "ReconcileResult",
    "SubKeyMergeResult",
    "SubKeyMergeStrategy",
    "is_stale",
    "local_merge",
    "reconcile",
    "sub_key_merge",
]
