"""Exceptions raised by the lifecycle synchronizer."""

from __future__ import annotations

from typing import Any, Iterable


class SyncError(Exception):
    """Base class for all synchronizer errors."""


class RemoteServiceError(SyncError):
    """A remote call failed and the failure is not known to be transient."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.operation = operation


class TransientError(RemoteServiceError):
    """Throttling, transient server errors and connection failures."""


class NotFoundError(RemoteServiceError):
    """The remote entity does not exist (or is not visible yet)."""


class PreconditionFailedError(SyncError):
    """An operation was invoked out of order. Indicates a caller bug."""


class UnexpectedStateError(SyncError):
    """The remote entity reached a state outside the expected pending/target sets."""

    def __init__(
        self,
        observed: str | None,
        expected: Iterable[str] = (),
        message: str | None = None,
        last_state: Any = None,
    ) -> None:
        self.observed = observed
        self.expected = sorted(str(value) for value in expected)
        self.last_state = last_state
        if message is None:
            message = f"unexpected state `{observed}`, expected one of {self.expected}"
        super().__init__(message)


class WaitTimeoutError(SyncError):
    """Polling exceeded its deadline while the entity was still pending."""

    def __init__(self, timeout: float, observed: str | None, last_state: Any = None) -> None:
        self.timeout = timeout
        self.observed = observed
        self.last_state = last_state
        super().__init__(
            f"timed out after {timeout:.0f}s waiting for state change, last observed state `{observed}`"
        )


class OperationCancelledError(SyncError):
    """A wait was interrupted because the enclosing operation was cancelled."""
