"""Constants for the OCI Peering Operator."""

# API Group
API_GROUP = "peering.cloud37.dev"
API_GROUP_VERSION = f"{API_GROUP}/v1alpha1"
API_VERSION = "v1alpha1"

# Resource Kinds
KIND_PROVIDER = "Provider"
KIND_REMOTE_PEERING_CONNECTION = "RemotePeeringConnection"

# Plurals
PLURAL_PROVIDERS = "providers"
PLURAL_REMOTE_PEERING_CONNECTIONS = "remotepeeringconnections"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "oci-peering-operator"

# Condition Types
COND_READY = "Ready"
COND_PROVIDER_NOT_READY = "ProviderNotReady"
COND_AUTH_VALID = "AuthValid"
COND_ENDPOINT_REACHABLE = "EndpointReachable"
COND_CREATION_FAILED = "CreationFailed"
COND_PEERED = "Peered"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_SUCCEEDED = "ValidateSucceeded"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_RPC_CREATED = "RemotePeeringConnectionCreated"
EVENT_REASON_RPC_UPDATED = "RemotePeeringConnectionUpdated"
EVENT_REASON_RPC_DELETED = "RemotePeeringConnectionDeleted"
EVENT_REASON_RPC_RECREATED = "RemotePeeringConnectionRecreated"
EVENT_REASON_PEERING_ESTABLISHED = "PeeringEstablished"
EVENT_REASON_PEERING_FAILED = "PeeringFailed"

# Operation names used for metrics, logs and timeouts
OP_CREATE = "create"
OP_READ = "read"
OP_UPDATE = "update"
OP_DELETE = "delete"
OP_CONNECT = "connect"

# Default operation budgets in seconds
DEFAULT_CREATE_TIMEOUT_SECONDS = 20 * 60
DEFAULT_UPDATE_TIMEOUT_SECONDS = 20 * 60
DEFAULT_DELETE_TIMEOUT_SECONDS = 20 * 60
