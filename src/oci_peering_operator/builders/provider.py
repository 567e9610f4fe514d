"""Builder for OCI service clients."""

from __future__ import annotations

from typing import Any

import oci
from kubernetes import client, config

from ..services.oci.client import OCIPeeringService
from ..utils.secrets import get_secret_value


def load_kube_config() -> None:
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def create_oci_config_from_spec(
    spec: dict[str, Any],
    meta: dict[str, Any],
    api: client.CoreV1Api | None = None,
) -> dict[str, Any]:
    """Create an OCI SDK configuration dict from a Provider spec.

    Args:
        spec: Provider CRD spec
        meta: Provider metadata
        api: Optional CoreV1Api used to read the key secrets

    Returns:
        Validated OCI SDK configuration

    Raises:
        ValueError: If configuration is invalid
    """
    tenancy = spec.get("tenancyId")
    user = spec.get("userId")
    fingerprint = spec.get("fingerprint")
    region = spec.get("region")
    if not tenancy or not user or not fingerprint or not region:
        raise ValueError("tenancyId, userId, fingerprint and region are required")

    key_ref = spec.get("privateKeySecretRef", {})
    key_name = key_ref.get("name")
    if not key_name:
        raise ValueError("privateKeySecretRef.name is required")

    if api is None:
        load_kube_config()
        api = client.CoreV1Api()

    namespace = meta.get("namespace", "default")
    oci_config: dict[str, Any] = {
        "tenancy": tenancy,
        "user": user,
        "fingerprint": fingerprint,
        "region": region,
        "key_content": get_secret_value(api, namespace, key_name, key_ref.get("key", "private-key")),
    }

    passphrase_ref = spec.get("passphraseSecretRef")
    if passphrase_ref and passphrase_ref.get("name"):
        oci_config["pass_phrase"] = get_secret_value(
            api, namespace, passphrase_ref["name"], passphrase_ref.get("key", "passphrase")
        )

    try:
        oci.config.validate_config(oci_config)
    except oci.exceptions.InvalidConfig as e:
        raise ValueError(f"Invalid OCI configuration: {e}") from e
    return oci_config


def create_service_from_spec(
    spec: dict[str, Any],
    meta: dict[str, Any],
    api: client.CoreV1Api | None = None,
) -> OCIPeeringService:
    """Create a remote peering service from a Provider spec."""
    return OCIPeeringService(create_oci_config_from_spec(spec, meta, api))
