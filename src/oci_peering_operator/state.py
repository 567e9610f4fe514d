"""Recorded state of a Remote Peering Connection."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from .models import DesiredSpec, ObservedState

# Recorded attribute name -> status key
STATUS_FIELDS = {
    "compartment_id": "compartmentId",
    "drg_id": "drgId",
    "display_name": "displayName",
    "peer_id": "peerId",
    "peer_region_name": "peerRegionName",
    "peer_tenancy_id": "peerTenancyId",
    "is_cross_tenancy_peering": "isCrossTenancyPeering",
    "peering_status": "peeringStatus",
    "state": "state",
    "time_created": "timeCreated",
}


class StateStore(Protocol):
    """What the synchronizer needs from the state engine."""

    @property
    def identity(self) -> str | None:
        ...

    def set_identity(self, identity: str | None) -> None:
        ...

    def get(self, name: str) -> Any:
        ...

    def set(self, name: str, value: Any) -> None:
        ...

    def mark_changed(self, name: str) -> None:
        ...

    def record(self, observed: ObservedState) -> None:
        ...

    def force_new_changes(self, desired: DesiredSpec) -> list[str]:
        ...

    def mutable_changes(self, desired: DesiredSpec) -> list[str]:
        ...

    def flush(self) -> None:
        ...


class ResourceState:
    """In-memory recorded attributes, persisted through an optional callback.

    The persist callback receives the rendered status block; the operator uses it
    to write status through the Kubernetes API so that a freshly created
    connection is durably recorded before the peering handshake starts.
    """

    def __init__(
        self,
        identity: str | None = None,
        values: dict[str, Any] | None = None,
        persist: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self._identity = identity
        self._values: dict[str, Any] = dict(values or {})
        self._changed: set[str] = set()
        self._persist = persist

    @classmethod
    def from_status(
        cls,
        status: dict[str, Any] | None,
        persist: Callable[[dict[str, Any]], None] | None = None,
    ) -> "ResourceState":
        status = status or {}
        values = {}
        for name, key in STATUS_FIELDS.items():
            if key in status and status[key] is not None:
                values[name] = status[key]
        return cls(identity=status.get("id") or None, values=values, persist=persist)

    @property
    def identity(self) -> str | None:
        return self._identity

    def set_identity(self, identity: str | None) -> None:
        self._identity = identity
        if identity is None:
            self._values.clear()

    def get(self, name: str) -> Any:
        return self._values.get(name)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def mark_changed(self, name: str) -> None:
        self._changed.add(name)

    @property
    def changed_fields(self) -> frozenset[str]:
        return frozenset(self._changed)

    def record(self, observed: ObservedState) -> None:
        """Copy an observation into the recorded attributes."""
        if observed.id:
            self._identity = observed.id
        for name in (
            "compartment_id",
            "display_name",
            "drg_id",
            "is_cross_tenancy_peering",
            "peer_id",
            "peer_region_name",
            "peer_tenancy_id",
            "time_created",
        ):
            value = getattr(observed, name)
            if value is not None:
                self._values[name] = value
        self._values["peering_status"] = observed.peering_status
        self._values["state"] = observed.lifecycle_state

    def force_new_changes(self, desired: DesiredSpec) -> list[str]:
        """Names of fields that can only change by recreating the connection."""
        changes = []
        for name in DesiredSpec.FORCE_NEW_FIELDS:
            wanted = desired.desired_value(name)
            if wanted.is_set and wanted.get() != self.get(name):
                changes.append(name)
        return changes

    def mutable_changes(self, desired: DesiredSpec) -> list[str]:
        changes = []
        for name in DesiredSpec.MUTABLE_FIELDS:
            wanted = desired.desired_value(name)
            if wanted.is_set and wanted.get() != self.get(name):
                changes.append(name)
        return changes

    def to_status(self) -> dict[str, Any]:
        status: dict[str, Any] = {"id": self._identity}
        for name, key in STATUS_FIELDS.items():
            status[key] = self._values.get(name)
        return status

    def flush(self) -> None:
        if self._persist is not None:
            self._persist(self.to_status())
