from .conflict import IMergeStrategy, IThreeWayMergeStrategy
from .document_store import IDocumentStore, StoredDocument
from .locking import ILockStrategy

__all__ = [
    "IDocumentStore",
    "ILockStrategy",
    "IMergeStrategy",
    "IThreeWayMergeStrategy",
    "StoredDocument",
]
