from .command import (
    LOADED_AT_KEYS,
    LoadDocumentQuery,
    PollDocumentQuery,
    SaveDocumentCommand,
)
from .concurrency import CriticalSection
from .events import DocumentReconciled, DomainEvent
from .handler import (
    CommandHandler,
    LoadDocumentHandler,
    PollDocumentHandler,
    QueryHandler,
    SaveDocumentHandler,
)
from .response import CommandResponse, LoadResult, PollResult, QueryResponse, SaveResult

__all__ = [
    "LOADED_AT_KEYS",
    "CommandHandler",
    "CommandResponse",
    "CriticalSection",
    "DocumentReconciled",
    "DomainEvent",
    "LoadDocumentHandler",
    "LoadDocumentQuery",
    "LoadResult",
    "PollDocumentHandler",
    "PollDocumentQuery",
    "PollResult",
    "QueryHandler",
    "QueryResponse",
    "SaveDocumentCommand",
    "SaveDocumentHandler",
    "SaveResult",
]
