"""Remote service interface for Remote Peering Connections."""

from __future__ import annotations

from typing import Protocol

from ..models import DesiredSpec, ObservedState


class RemoteService(Protocol):
    """Protocol defining the remote operations the synchronizer consumes.

    Implementations raise :class:`~..sync.exceptions.NotFoundError` for missing
    entities, :class:`~..sync.exceptions.TransientError` for throttling and
    transient failures, and :class:`~..sync.exceptions.RemoteServiceError`
    for everything else.
    """

    def create_entity(self, desired: DesiredSpec) -> ObservedState:
        """Create a remote peering connection and return its initial state."""
        ...

    def get_entity(self, identity: str) -> ObservedState:
        """Fetch the current state of a remote peering connection."""
        ...

    def update_entity(self, identity: str, display_name: str | None) -> ObservedState:
        """Update the mutable fields of a remote peering connection."""
        ...

    def delete_entity(self, identity: str) -> None:
        """Delete a remote peering connection."""
        ...

    def attach_peer(self, identity: str, peer_id: str, peer_region_name: str | None = None) -> None:
        """Start the peering handshake with another remote peering connection."""
        ...

    def test_connectivity(self, compartment_id: str) -> bool:
        """Test connectivity and credentials against the service."""
        ...
