"""Data model for Remote Peering Connections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class LifecycleState(str, Enum):
    """Lifecycle states reported by the OCI API for a Remote Peering Connection."""

    PROVISIONING = "PROVISIONING"
    AVAILABLE = "AVAILABLE"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"


class PeeringStatus(str, Enum):
    """Peering handshake status of a Remote Peering Connection."""

    INVALID = "INVALID"
    NEW = "NEW"
    PENDING = "PENDING"
    PEERED = "PEERED"
    REVOKED = "REVOKED"


CREATED_PENDING = frozenset({LifecycleState.PROVISIONING.value})
CREATED_TARGET = frozenset({LifecycleState.AVAILABLE.value})
DELETED_PENDING = frozenset({LifecycleState.TERMINATING.value})
DELETED_TARGET = frozenset({LifecycleState.TERMINATED.value})
CONNECT_PENDING = frozenset({PeeringStatus.PENDING.value})
CONNECT_TARGET = frozenset({PeeringStatus.PEERED.value})


class FieldState(str, Enum):
    UNSET = "unset"
    EMPTY = "empty"
    VALUE = "value"


@dataclass(frozen=True)
class FieldValue(Generic[T]):
    """Optional spec field that keeps "not given" apart from "given but empty"."""

    state: FieldState = FieldState.UNSET
    value: Optional[T] = None

    @classmethod
    def unset(cls) -> "FieldValue[Any]":
        return cls(FieldState.UNSET, None)

    @classmethod
    def of(cls, value: Any) -> "FieldValue[Any]":
        if value is None:
            return cls(FieldState.UNSET, None)
        if value == "":
            return cls(FieldState.EMPTY, value)
        return cls(FieldState.VALUE, value)

    @property
    def is_set(self) -> bool:
        return self.state is FieldState.VALUE

    @property
    def is_empty(self) -> bool:
        return self.state is FieldState.EMPTY

    def get(self, default: Any = None) -> Any:
        return self.value if self.is_set else default


@dataclass(frozen=True)
class DesiredSpec:
    """User-declared attributes of a Remote Peering Connection.

    ``compartment_id``, ``drg_id``, ``peer_id`` and ``peer_region_name`` are
    fixed at creation; changing them requires recreating the connection.
    ``display_name`` may be updated in place.
    """

    compartment_id: str
    drg_id: str
    display_name: FieldValue[str] = field(default_factory=FieldValue.unset)
    peer_id: FieldValue[str] = field(default_factory=FieldValue.unset)
    peer_region_name: FieldValue[str] = field(default_factory=FieldValue.unset)

    FORCE_NEW_FIELDS = ("compartment_id", "drg_id", "peer_id", "peer_region_name")
    MUTABLE_FIELDS = ("display_name",)

    def validate(self) -> None:
        """Validate the desired fields.

        Raises:
            ValueError: If a required field is missing or an optional field is an empty string
        """
        if not self.compartment_id:
            raise ValueError("compartmentId is required")
        if not self.drg_id:
            raise ValueError("drgId is required")
        if self.peer_id.is_empty:
            raise ValueError("peerId must not be an empty string")
        if self.peer_region_name.is_empty:
            raise ValueError("peerRegionName must not be an empty string")
        if self.peer_region_name.is_set and not self.peer_id.is_set:
            raise ValueError("peerRegionName requires peerId")

    def desired_value(self, name: str) -> FieldValue[Any]:
        """Return a field as a FieldValue, wrapping the required plain strings."""
        value = getattr(self, name)
        if isinstance(value, FieldValue):
            return value
        return FieldValue.of(value)


@dataclass(frozen=True)
class ObservedState:
    """Last-fetched snapshot of a Remote Peering Connection."""

    id: str
    lifecycle_state: str
    peering_status: Optional[str] = None
    compartment_id: Optional[str] = None
    drg_id: Optional[str] = None
    display_name: Optional[str] = None
    peer_id: Optional[str] = None
    peer_region_name: Optional[str] = None
    peer_tenancy_id: Optional[str] = None
    is_cross_tenancy_peering: Optional[bool] = None
    time_created: Optional[str] = None

    @property
    def is_peered(self) -> bool:
        return self.peering_status == PeeringStatus.PEERED.value


@dataclass
class SyncContext:
    """Per-operation bookkeeping for a single synchronizer call."""

    operation: str
    timeout: float
    started_at: float
    disable_not_found_retries: bool = False

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.started_at)

    def remaining(self, now: float) -> float:
        return max(0.0, self.timeout - self.elapsed(now))
