"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any

import pytest

from oci_peering_operator.models import DesiredSpec, FieldValue
from oci_peering_operator.state import ResourceState
from oci_peering_operator.sync.retry import PolicyFactory, RetryConfig
from oci_peering_operator.sync.waiter import LifecycleWaiter

from .fakes import FakeClock, FakeRemoteService


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policies() -> PolicyFactory:
    return PolicyFactory(RetryConfig(jitter=0.0))


@pytest.fixture
def waiter(clock: FakeClock, policies: PolicyFactory) -> LifecycleWaiter:
    return LifecycleWaiter(policies.default(), clock=clock, sleep=clock.sleep)


@pytest.fixture
def service() -> FakeRemoteService:
    return FakeRemoteService()


@pytest.fixture
def persisted() -> list[dict[str, Any]]:
    return []


@pytest.fixture
def store(persisted: list[dict[str, Any]]) -> ResourceState:
    return ResourceState(persist=persisted.append)


@pytest.fixture
def desired() -> DesiredSpec:
    return DesiredSpec(
        compartment_id="ocid1.compartment.oc1..aaaa",
        drg_id="ocid1.drg.oc1..bbbb",
        display_name=FieldValue.of("rpc-one"),
        peer_id=FieldValue.of("P1"),
        peer_region_name=FieldValue.of("us-ashburn-1"),
    )
