from .document_store import RedisDocumentStore

__all__ = ["RedisDocumentStore"]
