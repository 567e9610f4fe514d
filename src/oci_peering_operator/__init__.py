"""Kubernetes operator for OCI Remote Peering Connections."""

__version__ = "0.1.0"
