"""Domain and infrastructure exceptions for plansync."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .locking import ResourceIdentifier


class PlanSyncError(Exception):
    """Root exception for the entire plansync package."""


class DomainError(PlanSyncError):
    """Base class for all domain-related errors."""


class NotFoundError(DomainError):
    """Raised when a vertical or resource is not found."""


class UnknownVerticalError(NotFoundError):
    """Raised when a vertical key is not part of the configured set."""

    def __init__(self, vertical: str) -> None:
        self.vertical = vertical
        super().__init__(f"Vertical {vertical!r} is not configured")


class ValidationError(PlanSyncError):
    """Raised when a request fails validation.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class InvalidRequestError(ValidationError):
    """Raised when a save request is malformed before it reaches the merge engine.

    Usage: the request layer raises this for payloads that carry no known
    document field, a negative load marker, or a malformed vertical key.
    """


class InfrastructureError(PlanSyncError):
    """Base class for all infrastructure-related errors."""


class PersistenceError(InfrastructureError):
    """Base class for all persistence-related errors."""


class StoreUnavailableError(PersistenceError):
    """Raised when the document store cannot be read or written.

    Handlers never invoke the merge engine once this has been raised for a load.
    """

    def __init__(self, vertical: str, operation: str, reason: str | None = None) -> None:
        self.vertical = vertical
        self.operation = operation
        self.reason = reason

        msg = f"Document store {operation} failed for vertical {vertical!r}"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)


class ConcurrencyError(PlanSyncError):
    """Base class for all concurrency-related failures."""


# ── Locking Exceptions ───────────────────────────────────────────────


class LockAcquisitionError(ConcurrencyError):
    """A save could not enter the critical section of its vertical in time."""

    def __init__(
        self,
        resource: ResourceIdentifier,
        timeout: float,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.timeout = timeout
        self.reason = reason
        suffix = f" - {reason}" if reason else ""
        super().__init__(f"Could not lock {resource} within {timeout}s{suffix}")


class LockRollbackError(ConcurrencyError):
    """Failed to release locks after a partial acquisition failure."""

    def __init__(
        self,
        attempted: int,
        failed: int,
        errors: list[Exception],
    ) -> None:
        self.attempted = attempted
        self.failed = failed
        self.errors = errors

        super().__init__(
            f"Lock rollback incomplete: {failed}/{attempted} releases failed. "
            f"First error: {errors[0] if errors else 'unknown'}"
        )
