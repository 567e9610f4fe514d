"""Peering handshake performed after a Remote Peering Connection exists."""

from __future__ import annotations

import logging

from .. import metrics
from ..constants import OP_CONNECT
from ..models import CONNECT_PENDING, CONNECT_TARGET, ObservedState
from ..services.base import RemoteService
from ..state import StateStore
from .exceptions import PreconditionFailedError, UnexpectedStateError, WaitTimeoutError
from .retry import PolicyFactory
from .waiter import LifecycleWaiter, peering_status_of

logger = logging.getLogger(__name__)


class PeerConnector:
    """Attaches a connection to its peer and waits for the handshake to finish.

    On any failure the recorded peer id is cleared (see :meth:`rollback`) so the
    next reconciliation sees a mismatch between desired and recorded peer and
    attempts the connection again, instead of persisting a broken link.
    """

    def __init__(
        self,
        service: RemoteService,
        store: StateStore,
        waiter: LifecycleWaiter,
        policies: PolicyFactory,
    ) -> None:
        self.service = service
        self.store = store
        self.waiter = waiter
        self.policies = policies

    def connect(self, peer_id: str, peer_region_name: str | None, timeout: float) -> ObservedState:
        identity = self.store.identity
        if not identity:
            raise PreconditionFailedError(
                "cannot connect a remote peering connection that has not been created"
            )
        if not peer_id:
            raise ValueError("peerId must not be an empty string")

        logger.info(f"Connecting remote peering connection {identity} to peer {peer_id}")
        started = self.waiter.clock()
        try:
            self.waiter.call(
                lambda: self.service.attach_peer(identity, peer_id, peer_region_name),
                self.policies.default(timeout=timeout),
                operation=OP_CONNECT,
            )
        except Exception:
            metrics.rpc_operations_total.labels(operation=OP_CONNECT, result="failed").inc()
            self._rollback_after_failure("attach_failed")
            raise

        remaining = max(timeout - (self.waiter.clock() - started), 0.0)
        try:
            observed = self.waiter.wait_for(
                lambda: self.service.get_entity(identity),
                pending=CONNECT_PENDING,
                target=CONNECT_TARGET,
                timeout=remaining,
                state_of=peering_status_of,
                policy=self.policies.pending_status(CONNECT_PENDING, timeout=remaining),
                operation=OP_CONNECT,
            )
        except UnexpectedStateError as e:
            metrics.rpc_operations_total.labels(operation=OP_CONNECT, result="failed").inc()
            if e.last_state is not None:
                self.store.record(e.last_state)
            self._rollback_after_failure("unexpected_status")
            raise UnexpectedStateError(
                e.observed,
                CONNECT_TARGET,
                message=(
                    f"unexpected peering status `{e.observed}` after connecting to peer {peer_id}. "
                    "Make sure the peering status of the peer remote peering connection is not REVOKED"
                ),
                last_state=e.last_state,
            ) from e
        except WaitTimeoutError as e:
            metrics.rpc_operations_total.labels(operation=OP_CONNECT, result="timeout").inc()
            if e.last_state is not None:
                self.store.record(e.last_state)
            self._rollback_after_failure("timeout")
            raise
        except Exception:
            metrics.rpc_operations_total.labels(operation=OP_CONNECT, result="failed").inc()
            self._rollback_after_failure("status_unknown")
            raise

        self.store.record(observed)
        self.store.flush()
        metrics.rpc_operations_total.labels(operation=OP_CONNECT, result="success").inc()
        logger.info(f"Remote peering connection {identity} is {observed.peering_status}")
        return observed

    def rollback(self, reason: str = "manual") -> None:
        """Clear the recorded peer id so reconciliation retries the connection."""
        logger.warning(f"Clearing recorded peer id of {self.store.identity} ({reason})")
        self.store.set("peer_id", "")
        self.store.mark_changed("peer_id")
        self.store.flush()
        metrics.peer_rollback_total.labels(reason=reason).inc()

    def _rollback_after_failure(self, reason: str) -> None:
        """Roll back without letting a persistence failure mask the error being handled."""
        try:
            self.rollback(reason)
        except Exception:
            logger.exception(f"Failed to persist peer id rollback of {self.store.identity} ({reason})")
