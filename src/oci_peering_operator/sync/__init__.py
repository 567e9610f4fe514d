"""Eventually-consistent lifecycle synchronization for Remote Peering Connections."""

from .connect import PeerConnector
from .exceptions import (
    NotFoundError,
    OperationCancelledError,
    PreconditionFailedError,
    RemoteServiceError,
    SyncError,
    TransientError,
    UnexpectedStateError,
    WaitTimeoutError,
)
from .retry import (
    Outcome,
    PendingStatusRetryPolicy,
    PolicyFactory,
    RetryConfig,
    RetryDecision,
    RetryPolicy,
)
from .synchronizer import ResourceSynchronizer, SyncPhase
from .waiter import LifecycleWaiter

__all__ = [
    "LifecycleWaiter",
    "NotFoundError",
    "OperationCancelledError",
    "Outcome",
    "PeerConnector",
    "PendingStatusRetryPolicy",
    "PolicyFactory",
    "PreconditionFailedError",
    "RemoteServiceError",
    "ResourceSynchronizer",
    "RetryConfig",
    "RetryDecision",
    "RetryPolicy",
    "SyncError",
    "SyncPhase",
    "TransientError",
    "UnexpectedStateError",
    "WaitTimeoutError",
]
