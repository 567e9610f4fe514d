"""OCI Virtual Network client implementation."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

import oci

from ... import metrics
from ...models import DesiredSpec, ObservedState
from ...sync.exceptions import NotFoundError, RemoteServiceError, TransientError
from ...utils.rate_limit import rate_limit_oci

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})
TRANSIENT_CONFLICT_CODES = frozenset({"IncorrectState", "Conflict"})


def translate_error(error: Exception, operation: str) -> Exception:
    """Map an OCI SDK exception onto the synchronizer's error taxonomy."""
    if isinstance(error, oci.exceptions.ServiceError):
        message = f"{operation} failed: {error.status} {error.code}: {error.message}"
        if error.status == 404:
            return NotFoundError(message, status=error.status, code=error.code, operation=operation)
        if error.status in TRANSIENT_STATUSES or (
            error.status == 409 and error.code in TRANSIENT_CONFLICT_CODES
        ):
            return TransientError(message, status=error.status, code=error.code, operation=operation)
        return RemoteServiceError(message, status=error.status, code=error.code, operation=operation)
    if isinstance(error, (oci.exceptions.ConnectTimeout, oci.exceptions.RequestException)):
        return TransientError(f"{operation} failed: {error}", operation=operation)
    return error


def observed_from_model(rpc: Any) -> ObservedState:
    """Convert an ``oci.core.models.RemotePeeringConnection`` into an ObservedState."""
    time_created = getattr(rpc, "time_created", None)
    return ObservedState(
        id=rpc.id,
        lifecycle_state=rpc.lifecycle_state,
        peering_status=rpc.peering_status,
        compartment_id=rpc.compartment_id,
        drg_id=rpc.drg_id,
        display_name=rpc.display_name,
        peer_id=rpc.peer_id,
        peer_region_name=rpc.peer_region_name,
        peer_tenancy_id=rpc.peer_tenancy_id,
        is_cross_tenancy_peering=rpc.is_cross_tenancy_peering,
        time_created=time_created.isoformat() if hasattr(time_created, "isoformat") else time_created,
    )


class OCIPeeringService:
    """Remote peering connection operations backed by the OCI Python SDK.

    SDK-level retries are disabled; retries are decided by the synchronizer's
    retry policy.
    """

    def __init__(self, config: dict[str, Any], client: Any = None) -> None:
        """Initialize the service.

        Args:
            config: OCI SDK configuration dict (tenancy, user, fingerprint, region, key)
            client: Optional pre-built ``VirtualNetworkClient`` (used in tests)
        """
        self.region = config.get("region")
        if client is None:
            client = oci.core.VirtualNetworkClient(config, retry_strategy=oci.retry.NoneRetryStrategy())
        self.client = client

    @rate_limit_oci
    def _invoke(self, operation: str, fn: Callable[[], T]) -> T:
        start_time = time.time()
        try:
            result = fn()
            metrics.api_call_total.labels(api_type="oci", operation=operation, result="success").inc()
            return result
        except Exception as e:
            metrics.api_call_total.labels(api_type="oci", operation=operation, result="error").inc()
            translated = translate_error(e, operation)
            logger.debug(f"OCI {operation} failed: {type(translated).__name__}: {translated}")
            if translated is e:
                raise
            raise translated from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="oci", operation=operation).observe(duration)

    def create_entity(self, desired: DesiredSpec) -> ObservedState:
        details = oci.core.models.CreateRemotePeeringConnectionDetails(
            compartment_id=desired.compartment_id,
            drg_id=desired.drg_id,
            display_name=desired.display_name.get(),
        )
        response = self._invoke(
            "create_remote_peering_connection",
            lambda: self.client.create_remote_peering_connection(details),
        )
        return observed_from_model(response.data)

    def get_entity(self, identity: str) -> ObservedState:
        response = self._invoke(
            "get_remote_peering_connection",
            lambda: self.client.get_remote_peering_connection(identity),
        )
        return observed_from_model(response.data)

    def update_entity(self, identity: str, display_name: str | None) -> ObservedState:
        details = oci.core.models.UpdateRemotePeeringConnectionDetails(display_name=display_name)
        response = self._invoke(
            "update_remote_peering_connection",
            lambda: self.client.update_remote_peering_connection(identity, details),
        )
        return observed_from_model(response.data)

    def delete_entity(self, identity: str) -> None:
        self._invoke(
            "delete_remote_peering_connection",
            lambda: self.client.delete_remote_peering_connection(identity),
        )

    def attach_peer(self, identity: str, peer_id: str, peer_region_name: str | None = None) -> None:
        details = oci.core.models.ConnectRemotePeeringConnectionsDetails(
            peer_id=peer_id,
            peer_region_name=peer_region_name,
        )
        self._invoke(
            "connect_remote_peering_connections",
            lambda: self.client.connect_remote_peering_connections(identity, details),
        )

    def test_connectivity(self, compartment_id: str) -> bool:
        """Test connectivity by listing at most one connection in the compartment."""
        try:
            self._invoke(
                "list_remote_peering_connections",
                lambda: self.client.list_remote_peering_connections(compartment_id, limit=1),
            )
            return True
        except TransientError as e:
            logger.warning(f"Connectivity test failed: {e}")
            return False
