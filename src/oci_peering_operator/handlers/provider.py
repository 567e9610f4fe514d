"""Handler for Provider CRD."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import kopf

from .. import metrics
from ..builders.provider import create_service_from_spec
from ..constants import KIND_PROVIDER
from ..tracing import trace_span
from ..utils.conditions import (
    set_auth_valid_condition,
    set_endpoint_reachable_condition,
    set_ready_condition,
)
from ..utils.errors import sanitize_exception
from ..utils.events import emit_validate_succeeded
from .base import BaseHandler


class ProviderHandler(BaseHandler):
    """Handler for Provider resources."""

    def __init__(self, service_factory: Any = create_service_from_spec):
        super().__init__(KIND_PROVIDER)
        self.service_factory = service_factory

    def reconcile(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Reconcile Provider resource."""
        name = meta.get("name", "unknown")

        with trace_span("reconcile_provider", kind=KIND_PROVIDER, attributes={"provider.name": name}):
            if not spec.get("region") or not spec.get("tenancyId"):
                self.handle_validation_error(meta, "tenancyId and region are required")

            emit_validate_succeeded(meta)
            conditions = status.get("conditions", [])

            service = None
            try:
                service = self.service_factory(spec, meta)
                auth_valid = True
                auth_message = "Credentials loaded"
            except Exception as e:
                auth_valid = False
                auth_message = f"Invalid credentials: {sanitize_exception(e)}"
                metrics.error_total.labels(kind=KIND_PROVIDER, error_type=type(e).__name__).inc()
                self.log_error(meta, "Failed to build OCI client", error=e, reason="AuthFailed")
            conditions = set_auth_valid_condition(conditions, auth_valid, auth_message)

            connected = False
            if service is not None:
                with trace_span("test_connectivity", kind=KIND_PROVIDER):
                    try:
                        connected = service.test_connectivity(spec["tenancyId"])
                        endpoint_message = "Endpoint is reachable" if connected else "Endpoint is unreachable"
                        metrics.provider_connectivity_total.labels(
                            provider=name, status="connected" if connected else "disconnected"
                        ).inc()
                    except Exception as e:
                        endpoint_message = f"Connectivity test failed: {sanitize_exception(e)}"
                        metrics.error_total.labels(kind=KIND_PROVIDER, error_type=type(e).__name__).inc()
                        metrics.provider_connectivity_total.labels(provider=name, status="error").inc()
                        self.log_error(meta, "Connectivity test failed", error=e, reason="ConnectivityFailed")
            else:
                endpoint_message = "Cannot test connectivity due to invalid credentials"
            conditions = set_endpoint_reachable_condition(conditions, connected, endpoint_message)

            ready = auth_valid and connected
            conditions = set_ready_condition(
                conditions, ready, "Provider is ready" if ready else "Provider is not ready"
            )
            self.update_resource_status(patch, meta, ready, {
                "connected": connected,
                "region": spec.get("region"),
                "lastConnectTime": datetime.now(timezone.utc).isoformat() if connected else None,
                "conditions": conditions,
            })

    def delete(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        self.log_info(meta, "Provider is being deleted", event="deletion", reason="Deletion")
        self.remove_finalizer(meta, patch)
