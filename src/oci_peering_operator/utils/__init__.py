"""Utility functions for the OCI Peering Operator."""

from .conditions import set_provider_not_ready_condition, set_ready_condition, update_condition
from .errors import sanitize_dict, sanitize_exception
from .events import emit_event
from .rate_limit import rate_limit_k8s, rate_limit_oci
from .secrets import get_secret_value

__all__ = [
    "update_condition",
    "set_ready_condition",
    "set_provider_not_ready_condition",
    "emit_event",
    "get_secret_value",
    "sanitize_dict",
    "sanitize_exception",
    "rate_limit_k8s",
    "rate_limit_oci",
]
