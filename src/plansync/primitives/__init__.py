"""Primitives: exceptions, lockable resources."""

from __future__ import annotations

from .exceptions import (
    ConcurrencyError,
    DomainError,
    InfrastructureError,
    InvalidRequestError,
    LockAcquisitionError,
    LockRollbackError,
    NotFoundError,
    PersistenceError,
    PlanSyncError,
    StoreUnavailableError,
    UnknownVerticalError,
    ValidationError,
)
from .locking import VERTICAL_RESOURCE_TYPE, ResourceIdentifier

__all__ = [
    "ConcurrencyError",
    "DomainError",
    "InfrastructureError",
    "InvalidRequestError",
    "LockAcquisitionError",
    "LockRollbackError",
    "NotFoundError",
    "PersistenceError",
    "PlanSyncError",
    "ResourceIdentifier",
    "StoreUnavailableError",
    "UnknownVerticalError",
    "VERTICAL_RESOURCE_TYPE",
    "ValidationError",
]
