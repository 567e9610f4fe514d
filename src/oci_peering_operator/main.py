"""Main entry point for the OCI Peering Operator."""

from __future__ import annotations

import os
import threading
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from .constants import API_GROUP_VERSION, KIND_PROVIDER, KIND_REMOTE_PEERING_CONNECTION
from .handlers.peering import RemotePeeringConnectionHandler
from .handlers.provider import ProviderHandler
from .sync.retry import PolicyFactory, RetryConfig
from .sync.waiter import LifecycleWaiter
from .tracing import initialize_tracing

# Set on shutdown so in-flight waits stop promptly
shutdown_event = threading.Event()

_policies = PolicyFactory(RetryConfig.from_env())
_waiter = LifecycleWaiter(_policies.default(), cancel_event=shutdown_event)

provider_handler = ProviderHandler()
rpc_handler = RemotePeeringConnectionHandler(waiter=_waiter, policies=_policies)

_server: Any = None


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    global _server

    structured_logging.setup_structured_logging()
    initialize_tracing()

    # Keep kopf's bookkeeping out of .status, which this operator owns
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()
    settings.posting.level = 0
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = int(os.getenv("MAX_WORKERS", "4"))

    _server = health.start_http_server(int(os.getenv("METRICS_PORT", "8080")))
    health.set_ready(True)


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop in-flight waits and the metrics server."""
    health.set_ready(False)
    shutdown_event.set()
    if _server is not None:
        _server.shutdown()


@kopf.on.create(API_GROUP_VERSION, KIND_PROVIDER)
@kopf.on.update(API_GROUP_VERSION, KIND_PROVIDER)
@kopf.on.resume(API_GROUP_VERSION, KIND_PROVIDER)
def handle_provider(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle Provider resource reconciliation."""
    provider_handler.ensure_finalizer(meta, patch)
    provider_handler.reconcile_with_metrics(meta, lambda: provider_handler.reconcile(spec, meta, status, patch))


@kopf.on.delete(API_GROUP_VERSION, KIND_PROVIDER)
def handle_provider_delete(meta: dict[str, Any], patch: kopf.Patch, **kwargs: Any) -> None:
    provider_handler.delete(meta, patch)


@kopf.on.create(API_GROUP_VERSION, KIND_REMOTE_PEERING_CONNECTION)
@kopf.on.update(API_GROUP_VERSION, KIND_REMOTE_PEERING_CONNECTION)
@kopf.on.resume(API_GROUP_VERSION, KIND_REMOTE_PEERING_CONNECTION)
def handle_remote_peering_connection(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle RemotePeeringConnection reconciliation."""
    rpc_handler.ensure_finalizer(meta, patch)
    rpc_handler.reconcile_with_metrics(meta, lambda: rpc_handler.reconcile(spec, meta, status, patch))


@kopf.on.delete(API_GROUP_VERSION, KIND_REMOTE_PEERING_CONNECTION)
def handle_remote_peering_connection_delete(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle RemotePeeringConnection deletion."""
    rpc_handler.reconcile_with_metrics(meta, lambda: rpc_handler.delete(spec, meta, status, patch))


def main() -> None:
    namespace = os.getenv("WATCH_NAMESPACE")
    if namespace:
        kopf.run(namespaces=[namespace])
    else:
        kopf.run(clusterwide=True)


if __name__ == "__main__":
    main()
