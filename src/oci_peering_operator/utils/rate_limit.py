"""Client-side rate limiting for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_OCI_RATE_LIMIT_PER_SECOND = float(os.getenv("OCI_RATE_LIMIT_PER_SECOND", "5.0"))

# Last call time per API type
_last_call_time: dict[str, float] = {"k8s": 0.0, "oci": 0.0}
_lock = threading.Lock()


def _throttle(api_type: str, per_second: float) -> None:
    if per_second <= 0:
        return
    min_interval = 1.0 / per_second
    with _lock:
        since_last = time.time() - _last_call_time[api_type]
        if since_last < min_interval:
            metrics.rate_limit_hits_total.labels(api_type=api_type).inc()
            time.sleep(min_interval - since_last)
        _last_call_time[api_type] = time.time()


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        _throttle("k8s", _K8S_RATE_LIMIT_PER_SECOND)
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_oci(func: _F) -> _F:
    """Decorator to rate limit OCI API calls.

    Spaces calls out so a burst of reconciliations does not trip the service's
    own throttling (HTTP 429), which the retry policy would otherwise absorb.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        _throttle("oci", _OCI_RATE_LIMIT_PER_SECOND)
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def is_k8s_rate_limit_error(e: Exception) -> bool:
    """Check whether a Kubernetes API exception is a rate limit response."""
    if not isinstance(e, ApiException):
        return False
    return e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower())


def k8s_backoff_seconds(attempt: int) -> float:
    """Exponential backoff for Kubernetes rate limit errors: 1s, 2s, 4s."""
    return float(2 ** attempt)
