from .document_store import InMemoryDocumentStore
from .locking import InMemoryLockStrategy

__all__ = [
    "InMemoryDocumentStore",
    "InMemoryLockStrategy",
]
