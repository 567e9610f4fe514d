"""Lifecycle synchronizer for a single Remote Peering Connection."""

from __future__ import annotations

import logging
from enum import Enum

from .. import metrics
from ..constants import (
    DEFAULT_CREATE_TIMEOUT_SECONDS,
    DEFAULT_DELETE_TIMEOUT_SECONDS,
    OP_CREATE,
    OP_DELETE,
    OP_READ,
    OP_UPDATE,
)
from ..models import (
    CREATED_PENDING,
    CREATED_TARGET,
    DELETED_PENDING,
    DELETED_TARGET,
    DesiredSpec,
    LifecycleState,
    ObservedState,
    SyncContext,
)
from ..services.base import RemoteService
from ..state import StateStore
from .connect import PeerConnector
from .exceptions import NotFoundError, PreconditionFailedError
from .retry import PolicyFactory
from .waiter import LifecycleWaiter

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    ABSENT = "Absent"
    CREATING = "Creating"
    AWAITING_CONNECT = "AwaitingConnect"
    AVAILABLE = "Available"
    UPDATING = "Updating"
    DELETING = "Deleting"
    TERMINATED = "Terminated"
    FAILED = "Failed"


class ResourceSynchronizer:
    """Drives one Remote Peering Connection through create, connect, update and delete.

    The synchronizer owns its recorded state exclusively and runs one operation
    at a time. The waiter and policy factory carry only read-only configuration
    and can be shared across instances.
    """

    def __init__(
        self,
        service: RemoteService,
        store: StateStore,
        waiter: LifecycleWaiter | None = None,
        policies: PolicyFactory | None = None,
    ) -> None:
        self.service = service
        self.store = store
        self.waiter = waiter or LifecycleWaiter()
        self.policies = policies or PolicyFactory()
        self.connector = PeerConnector(service, store, self.waiter, self.policies)
        self.observed: ObservedState | None = None
        self.phase = SyncPhase.AVAILABLE if store.identity else SyncPhase.ABSENT

    @property
    def identity(self) -> str | None:
        return self.store.identity

    def _context(self, operation: str, timeout: float | None, disable_not_found_retries: bool = False) -> SyncContext:
        return SyncContext(
            operation=operation,
            timeout=self.policies.config.timeout if timeout is None else timeout,
            started_at=self.waiter.clock(),
            disable_not_found_retries=disable_not_found_retries,
        )

    def _require_identity(self, operation: str) -> str:
        identity = self.store.identity
        if not identity:
            raise PreconditionFailedError(f"{operation} requires a created remote peering connection")
        return identity

    def _observe(self, observed: ObservedState) -> ObservedState:
        self.observed = observed
        self.store.record(observed)
        return observed

    def _fail(self, operation: str) -> None:
        self.phase = SyncPhase.FAILED
        metrics.rpc_operations_total.labels(operation=operation, result="failed").inc()

    def create(self, desired: DesiredSpec, timeout: float | None = None) -> str:
        """Issue the creation call. Does not wait for the connection to become available."""
        if self.store.identity:
            raise PreconditionFailedError(
                f"remote peering connection {self.store.identity} already exists"
            )
        desired.validate()
        ctx = self._context(OP_CREATE, timeout)
        try:
            observed = self.waiter.call(
                lambda: self.service.create_entity(desired),
                self.policies.default(timeout=ctx.timeout),
                operation=OP_CREATE,
            )
        except Exception:
            self._fail(OP_CREATE)
            raise
        self._observe(observed)
        self.phase = SyncPhase.CREATING
        metrics.rpc_operations_total.labels(operation=OP_CREATE, result="success").inc()
        logger.info(f"Created remote peering connection {observed.id} ({observed.lifecycle_state})")
        return observed.id

    def read(self, timeout: float | None = None, retry_not_found: bool = True) -> ObservedState:
        """Fetch the current remote state and overwrite the recorded state.

        ``retry_not_found=False`` skips the post-creation propagation window, for
        connections that were recorded long ago.
        """
        identity = self._require_identity(OP_READ)
        ctx = self._context(OP_READ, timeout, disable_not_found_retries=not retry_not_found)
        observed = self.waiter.call(
            lambda: self.service.get_entity(identity),
            self.policies.default(timeout=ctx.timeout, disable_not_found_retries=ctx.disable_not_found_retries),
            operation=OP_READ,
        )
        return self._observe(observed)

    def update(self, desired: DesiredSpec, timeout: float | None = None) -> ObservedState:
        """Apply mutable fields only.

        Raises:
            PreconditionFailedError: If a force-new field differs; those must be
                handled by recreating the connection
        """
        identity = self._require_identity(OP_UPDATE)
        force_new = self.store.force_new_changes(desired)
        if force_new:
            raise PreconditionFailedError(
                f"fields {force_new} cannot be updated in place, the connection must be recreated"
            )
        ctx = self._context(OP_UPDATE, timeout)
        self.phase = SyncPhase.UPDATING
        try:
            observed = self.waiter.call(
                lambda: self.service.update_entity(identity, desired.display_name.get()),
                self.policies.default(timeout=ctx.timeout),
                operation=OP_UPDATE,
            )
        except Exception:
            self._fail(OP_UPDATE)
            raise
        self._observe(observed)
        self.phase = SyncPhase.AVAILABLE
        metrics.rpc_operations_total.labels(operation=OP_UPDATE, result="success").inc()
        return observed

    def delete(self, timeout: float | None = None) -> None:
        """Issue the deletion call. A connection that is already gone counts as deleted."""
        identity = self._require_identity(OP_DELETE)
        ctx = self._context(OP_DELETE, timeout, disable_not_found_retries=True)
        self.phase = SyncPhase.DELETING
        try:
            self.waiter.call(
                lambda: self.service.delete_entity(identity),
                self.policies.default(timeout=ctx.timeout, disable_not_found_retries=True),
                operation=OP_DELETE,
            )
        except NotFoundError:
            logger.info(f"Remote peering connection {identity} already deleted")
        except Exception:
            self._fail(OP_DELETE)
            raise
        metrics.rpc_operations_total.labels(operation=OP_DELETE, result="success").inc()

    def connect(
        self,
        peer_id: str,
        peer_region_name: str | None = None,
        timeout: float | None = None,
    ) -> ObservedState:
        ctx = self._context("connect", timeout)
        try:
            observed = self.connector.connect(peer_id, peer_region_name, ctx.timeout)
        except Exception:
            self.phase = SyncPhase.FAILED
            raise
        self.observed = observed
        self.phase = SyncPhase.AVAILABLE
        return observed

    def wait_until_available(self, timeout: float | None = None) -> ObservedState:
        identity = self._require_identity(OP_CREATE)
        ctx = self._context(OP_CREATE, timeout)
        try:
            observed = self.waiter.wait_for(
                lambda: self.service.get_entity(identity),
                pending=CREATED_PENDING,
                target=CREATED_TARGET,
                timeout=ctx.timeout,
                policy=self.policies.default(timeout=ctx.timeout),
                operation=OP_CREATE,
            )
        except Exception as e:
            last_state = getattr(e, "last_state", None)
            if last_state is not None:
                self._observe(last_state)
            self.phase = SyncPhase.FAILED
            raise
        return self._observe(observed)

    def wait_until_terminated(self, timeout: float | None = None) -> None:
        identity = self._require_identity(OP_DELETE)
        ctx = self._context(OP_DELETE, timeout, disable_not_found_retries=True)
        try:
            observed = self.waiter.wait_for(
                lambda: self.service.get_entity(identity),
                pending=DELETED_PENDING,
                target=DELETED_TARGET,
                timeout=ctx.timeout,
                policy=self.policies.default(timeout=ctx.timeout, disable_not_found_retries=True),
                operation=OP_DELETE,
            )
            self._observe(observed)
        except NotFoundError:
            logger.info(f"Remote peering connection {identity} no longer exists")
        except Exception:
            self.phase = SyncPhase.FAILED
            raise
        self.store.set_identity(None)
        self.observed = None
        self.phase = SyncPhase.TERMINATED

    def provision(self, desired: DesiredSpec, timeout: float | None = None) -> ObservedState:
        """Create, wait for AVAILABLE, then connect to the peer when one is desired.

        The store is flushed right after creation so that a crash before the
        handshake leaves a recorded connection rather than an orphan.
        """
        timeout = DEFAULT_CREATE_TIMEOUT_SECONDS if timeout is None else timeout
        ctx = self._context(OP_CREATE, timeout)
        self.create(desired, timeout=ctx.timeout)
        self.store.flush()
        observed = self.wait_until_available(timeout=ctx.remaining(self.waiter.clock()))
        self.store.flush()

        if not desired.peer_id.is_set:
            self.phase = SyncPhase.AVAILABLE
            return observed

        self.phase = SyncPhase.AWAITING_CONNECT
        return self.connect(
            desired.peer_id.get(),
            desired.peer_region_name.get(),
            timeout=ctx.remaining(self.waiter.clock()),
        )

    def teardown(self, timeout: float | None = None) -> None:
        """Delete the connection and wait until it is gone."""
        timeout = DEFAULT_DELETE_TIMEOUT_SECONDS if timeout is None else timeout
        ctx = self._context(OP_DELETE, timeout, disable_not_found_retries=True)
        self.delete(timeout=ctx.timeout)
        self.wait_until_terminated(timeout=ctx.remaining(self.waiter.clock()))

    @property
    def is_provisioning(self) -> bool:
        state = self.store.get("state")
        return state == LifecycleState.PROVISIONING.value
