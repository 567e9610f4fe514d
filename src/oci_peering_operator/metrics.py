"""Prometheus metrics for the OCI Peering Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "oci_peering_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "oci_peering_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 1200.0],
)

error_total = Counter(
    "oci_peering_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "oci_peering_operator_resource_status_total",
    "Resource status transitions",
    ["kind", "status"],
)

# Remote peering connection lifecycle metrics
rpc_operations_total = Counter(
    "oci_peering_operator_rpc_operations_total",
    "Total number of remote peering connection operations",
    ["operation", "result"],
)

poll_attempts_total = Counter(
    "oci_peering_operator_poll_attempts_total",
    "State polls performed while waiting for a lifecycle or peering status change",
    ["operation", "result"],
)

peer_rollback_total = Counter(
    "oci_peering_operator_peer_rollback_total",
    "Number of times the recorded peer id was cleared after a failed connect",
    ["reason"],
)

drift_detected_total = Counter(
    "oci_peering_operator_drift_detected_total",
    "Total number of configuration drift detections",
    ["kind", "field"],
)

provider_connectivity_total = Counter(
    "oci_peering_operator_provider_connectivity_total",
    "Provider connectivity status changes",
    ["provider", "status"],
)

# API call metrics
api_call_total = Counter(
    "oci_peering_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "oci_peering_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "oci_peering_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
