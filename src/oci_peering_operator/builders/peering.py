"""Builder for desired remote peering connection specs."""

from __future__ import annotations

from typing import Any

from ..models import DesiredSpec, FieldValue


def create_desired_spec_from_spec(spec: dict[str, Any]) -> DesiredSpec:
    """Create a DesiredSpec from a RemotePeeringConnection CRD spec.

    Args:
        spec: RemotePeeringConnection CRD spec

    Returns:
        Validated desired spec

    Raises:
        ValueError: If the resource spec is invalid
    """
    desired = DesiredSpec(
        compartment_id=spec.get("compartmentId") or "",
        drg_id=spec.get("drgId") or "",
        display_name=FieldValue.of(spec.get("displayName")),
        peer_id=FieldValue.of(spec.get("peerId")),
        peer_region_name=FieldValue.of(spec.get("peerRegionName")),
    )
    desired.validate()
    return desired
