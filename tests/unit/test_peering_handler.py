"""Unit tests for the RemotePeeringConnection handler."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import kopf
import pytest
from kubernetes.client.exceptions import ApiException

from oci_peering_operator.constants import FINALIZER
from oci_peering_operator.handlers.peering import RemotePeeringConnectionHandler
from oci_peering_operator.sync.exceptions import NotFoundError, RemoteServiceError

from .fakes import make_observed

SPEC = {
    "providerRef": {"name": "oci"},
    "compartmentId": "ocid1.compartment.oc1..aaaa",
    "drgId": "ocid1.drg.oc1..bbbb",
    "displayName": "rpc-one",
    "peerId": "P1",
    "peerRegionName": "us-ashburn-1",
}

RECORDED_STATUS = {
    "id": "rpc-1",
    "compartmentId": "ocid1.compartment.oc1..aaaa",
    "drgId": "ocid1.drg.oc1..bbbb",
    "displayName": "rpc-one",
    "peerId": "P1",
    "peerRegionName": "us-ashburn-1",
    "peeringStatus": "PEERED",
    "state": "AVAILABLE",
}

READY_PROVIDER = {
    "metadata": {"name": "oci", "namespace": "default"},
    "spec": {"tenancyId": "ocid1.tenancy.oc1..aaaa", "region": "eu-frankfurt-1"},
    "status": {"conditions": [{"type": "Ready", "status": "True"}]},
}


@pytest.fixture(autouse=True)
def quiet_side_effects():
    with patch("oci_peering_operator.utils.events.kopf.event") as mock_event, \
            patch("oci_peering_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 0):
        yield mock_event


@pytest.fixture
def api():
    api = MagicMock()
    api.get_namespaced_custom_object.return_value = READY_PROVIDER
    return api


@pytest.fixture
def handler(service, waiter, policies, api):
    return RemotePeeringConnectionHandler(
        waiter=waiter,
        policies=policies,
        service_factory=lambda spec, meta: service,
        k8s_client_factory=lambda: api,
    )


@pytest.fixture
def meta():
    return {"name": "rpc-one", "namespace": "default", "uid": "uid-1", "generation": 1, "finalizers": [FINALIZER]}


def _condition(status: dict[str, Any], condition_type: str) -> dict[str, Any]:
    return next(cond for cond in status["conditions"] if cond["type"] == condition_type)


class TestReconcileCreate:
    """Test cases for reconciling a resource without a recorded connection."""

    def test_creates_and_peers(self, handler, service, api, meta):
        service.get_responses = [
            make_observed("PROVISIONING"),
            make_observed("AVAILABLE", peering_status="NEW"),
            make_observed("AVAILABLE", peering_status="PEERED", peer_id="P1", peer_region_name="us-ashburn-1"),
        ]
        patch_obj = kopf.Patch()

        handler.reconcile(SPEC, meta, {}, patch_obj)

        assert patch_obj.status["id"] == "rpc-1"
        assert patch_obj.status["peeringStatus"] == "PEERED"
        assert patch_obj.status["phase"] == "Available"
        assert _condition(patch_obj.status, "Peered")["status"] == "True"
        assert _condition(patch_obj.status, "Ready")["status"] == "True"
        assert service.count("create") == 1

    def test_persists_identity_before_handshake(self, handler, service, api, meta):
        """Test that the new connection id is written to status as soon as it exists."""
        service.get_responses = [make_observed("AVAILABLE", peering_status="PEERED")]

        handler.reconcile(SPEC, meta, {}, kopf.Patch())

        first_body = api.patch_namespaced_custom_object_status.call_args_list[0].kwargs["body"]
        assert first_body["status"]["id"] == "rpc-1"
        assert first_body["status"]["state"] == "PROVISIONING"

    def test_without_peer(self, handler, service, meta):
        spec = {key: value for key, value in SPEC.items() if key not in ("peerId", "peerRegionName")}
        service.get_responses = [make_observed("AVAILABLE")]
        patch_obj = kopf.Patch()

        handler.reconcile(spec, meta, {}, patch_obj)

        assert service.count("attach") == 0
        assert all(cond["type"] != "Peered" for cond in patch_obj.status["conditions"])
        assert _condition(patch_obj.status, "Ready")["status"] == "True"

    def test_revoked_peer_is_permanent(self, handler, service, meta, quiet_side_effects):
        """Test that a REVOKED peer clears the recorded peer and fails the handler."""
        service.get_responses = [
            make_observed("AVAILABLE", peering_status="NEW"),
            make_observed("AVAILABLE", peering_status="REVOKED"),
        ]
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.PermanentError, match="REVOKED"):
            handler.reconcile(SPEC, meta, {}, patch_obj)

        assert patch_obj.status["id"] == "rpc-1"
        assert patch_obj.status["peerId"] == ""
        assert patch_obj.status["phase"] == "Failed"
        assert _condition(patch_obj.status, "Peered")["status"] == "False"
        assert _condition(patch_obj.status, "Ready")["status"] == "False"
        reasons = [call.kwargs["reason"] for call in quiet_side_effects.call_args_list]
        assert "PeeringFailed" in reasons

    def test_timeout_is_temporary(self, handler, service, meta):
        handler.create_timeout = 30
        service.get_responses = [make_observed("PROVISIONING")]
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile(SPEC, meta, {}, patch_obj)

        assert patch_obj.status["id"] == "rpc-1"
        assert _condition(patch_obj.status, "CreationFailed")["status"] == "True"

    def test_invalid_spec_is_permanent(self, handler, service, meta):
        spec = dict(SPEC, peerId="")

        with pytest.raises(kopf.PermanentError, match="peerId"):
            handler.reconcile(spec, meta, {}, kopf.Patch())

        assert service.calls == []


class TestReconcileExisting:
    """Test cases for reconciling a resource with a recorded connection."""

    def test_unchanged_only_reads(self, handler, service, meta):
        service.get_responses = [
            make_observed(peering_status="PEERED", peer_id="P1", peer_region_name="us-ashburn-1")
        ]
        patch_obj = kopf.Patch()

        handler.reconcile(SPEC, meta, dict(RECORDED_STATUS), patch_obj)

        assert [call[0] for call in service.calls] == ["get"]
        assert _condition(patch_obj.status, "Ready")["status"] == "True"
        assert "lastSyncTime" in patch_obj.status

    def test_display_name_updated_in_place(self, handler, service, meta):
        service.get_responses = [make_observed(peering_status="PEERED", peer_id="P1")]
        patch_obj = kopf.Patch()

        handler.reconcile(dict(SPEC, displayName="rpc-renamed"), meta, dict(RECORDED_STATUS), patch_obj)

        assert ("update", "rpc-1", "rpc-renamed") in service.calls
        assert service.count("create") == 0
        assert patch_obj.status["displayName"] == "rpc-renamed"

    def test_force_new_change_recreates(self, handler, service, meta):
        """Test that changing the DRG deletes the old connection and creates a new one."""
        service.create_result = make_observed("PROVISIONING", rpc_id="rpc-2", drg_id="ocid1.drg.oc1..other")
        service.get_responses = [
            make_observed(peering_status="PEERED", peer_id="P1"),
            NotFoundError("gone", status=404),
            make_observed("AVAILABLE", rpc_id="rpc-2", drg_id="ocid1.drg.oc1..other", peering_status="NEW"),
            make_observed("AVAILABLE", rpc_id="rpc-2", drg_id="ocid1.drg.oc1..other", peering_status="PEERED"),
        ]
        patch_obj = kopf.Patch()

        handler.reconcile(dict(SPEC, drgId="ocid1.drg.oc1..other"), meta, dict(RECORDED_STATUS), patch_obj)

        assert ("delete", "rpc-1") in service.calls
        assert service.count("create") == 1
        assert patch_obj.status["id"] == "rpc-2"
        assert patch_obj.status["drgId"] == "ocid1.drg.oc1..other"

    def test_vanished_connection_is_recreated(self, handler, service, meta):
        service.get_responses = [
            NotFoundError("gone", status=404),
            make_observed("AVAILABLE", peering_status="NEW"),
            make_observed("AVAILABLE", peering_status="PEERED"),
        ]
        patch_obj = kopf.Patch()

        handler.reconcile(SPEC, meta, dict(RECORDED_STATUS), patch_obj)

        assert service.count("delete") == 0
        assert service.count("create") == 1
        assert _condition(patch_obj.status, "Ready")["status"] == "True"

    def test_rolled_back_peer_is_retried(self, handler, service, meta):
        """Test that a cleared peer id leads to a fresh connection and handshake."""
        status = dict(RECORDED_STATUS, peerId="", peeringStatus="REVOKED")
        service.get_responses = [
            make_observed(peering_status="REVOKED"),
            NotFoundError("gone", status=404),
            make_observed("AVAILABLE", peering_status="NEW"),
            make_observed("AVAILABLE", peering_status="PEERED", peer_id="P1"),
        ]
        patch_obj = kopf.Patch()

        handler.reconcile(SPEC, meta, status, patch_obj)

        assert service.count("attach") == 1
        assert patch_obj.status["peerId"] == "P1"
        assert patch_obj.status["peeringStatus"] == "PEERED"

    def test_provisioning_connection_is_awaited(self, handler, service, meta):
        status = dict(RECORDED_STATUS, state="PROVISIONING", peeringStatus="NEW")
        service.get_responses = [
            make_observed("PROVISIONING", peering_status="NEW", peer_id="P1", peer_region_name="us-ashburn-1"),
            make_observed("AVAILABLE", peering_status="PEERED", peer_id="P1", peer_region_name="us-ashburn-1"),
        ]
        patch_obj = kopf.Patch()

        handler.reconcile(SPEC, meta, status, patch_obj)

        assert service.count("get") == 2
        assert patch_obj.status["state"] == "AVAILABLE"


class TestProviderResolution:
    """Test cases for provider lookup."""

    def test_missing_provider_ref(self, handler, meta):
        spec = {key: value for key, value in SPEC.items() if key != "providerRef"}

        with pytest.raises(kopf.PermanentError, match="providerRef.name"):
            handler.reconcile(spec, meta, {}, kopf.Patch())

    def test_provider_not_found(self, handler, api, meta):
        api.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile(SPEC, meta, {}, patch_obj)

        assert _condition(patch_obj.status, "ProviderNotReady")["status"] == "True"

    def test_provider_not_ready(self, handler, api, service, meta):
        api.get_namespaced_custom_object.return_value = dict(READY_PROVIDER, status={"conditions": []})

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile(SPEC, meta, {}, kopf.Patch())

        assert service.calls == []


class TestDelete:
    """Test cases for RemotePeeringConnectionHandler.delete."""

    def test_nothing_recorded(self, handler, service, api, meta):
        patch_obj = kopf.Patch()

        handler.delete(SPEC, meta, {}, patch_obj)

        assert service.calls == []
        api.get_namespaced_custom_object.assert_not_called()
        assert patch_obj.metadata["finalizers"] is None

    def test_deletes_recorded_connection(self, handler, service, meta):
        service.get_responses = [make_observed("TERMINATING"), make_observed("TERMINATED")]
        patch_obj = kopf.Patch()

        handler.delete(SPEC, meta, dict(RECORDED_STATUS), patch_obj)

        assert ("delete", "rpc-1") in service.calls
        assert patch_obj.metadata["finalizers"] is None

    def test_delete_failure_keeps_finalizer(self, handler, service, meta):
        service.delete_error = RemoteServiceError("not authorized", status=401)
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.PermanentError):
            handler.delete(SPEC, meta, dict(RECORDED_STATUS), patch_obj)

        assert "finalizers" not in patch_obj.metadata
