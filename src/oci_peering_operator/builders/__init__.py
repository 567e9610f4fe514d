"""Builders for desired specs and OCI service clients."""

from .peering import create_desired_spec_from_spec
from .provider import create_oci_config_from_spec, create_service_from_spec

__all__ = ["create_desired_spec_from_spec", "create_oci_config_from_spec", "create_service_from_spec"]
