"""Shared utilities for handlers."""

from __future__ import annotations

import time
from typing import Any, Callable

from kubernetes import client

from .. import metrics
from ..builders.provider import load_kube_config
from ..constants import (
    API_GROUP,
    API_VERSION,
    PLURAL_PROVIDERS,
    PLURAL_REMOTE_PEERING_CONNECTIONS,
)
from ..utils.rate_limit import is_k8s_rate_limit_error, k8s_backoff_seconds, rate_limit_k8s

MAX_K8S_RATE_LIMIT_RETRIES = 3


def get_k8s_client() -> client.CustomObjectsApi:
    load_kube_config()
    return client.CustomObjectsApi()


def _call_k8s(operation: str, fn: Callable[[], Any]) -> Any:
    """Call the Kubernetes API with client-side rate limiting and 429 backoff."""
    attempt = 0
    while True:
        start_time = time.time()
        try:
            result = rate_limit_k8s(fn)()
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except Exception as e:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            if is_k8s_rate_limit_error(e) and attempt < MAX_K8S_RATE_LIMIT_RETRIES:
                time.sleep(k8s_backoff_seconds(attempt))
                attempt += 1
                continue
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)


def get_provider(api: Any, provider_name: str, provider_ns: str) -> dict[str, Any]:
    """Get a Provider CRD object.

    Raises:
        client.exceptions.ApiException: If provider not found or API error
    """
    return _call_k8s(
        "get_provider",
        lambda: api.get_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=provider_ns,
            plural=PLURAL_PROVIDERS,
            name=provider_name,
        ),
    )


def is_provider_ready(provider_obj: dict[str, Any]) -> bool:
    conditions = provider_obj.get("status", {}).get("conditions", [])
    return any(cond.get("type") == "Ready" and cond.get("status") == "True" for cond in conditions)


def make_status_persister(api: Any, namespace: str, name: str) -> Callable[[dict[str, Any]], None]:
    """Return a callback that writes a status block straight to the API server.

    Used to record a freshly created connection before the handler returns, so
    the record survives an operator crash during the peering handshake.
    """
    def persist(status: dict[str, Any]) -> None:
        _call_k8s(
            "patch_status",
            lambda: api.patch_namespaced_custom_object_status(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=PLURAL_REMOTE_PEERING_CONNECTIONS,
                name=name,
                body={"status": status},
            ),
        )

    return persist
