"""Handler for RemotePeeringConnection CRD."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Callable

import kopf
from kubernetes import client

from .. import metrics
from ..builders.peering import create_desired_spec_from_spec
from ..builders.provider import create_service_from_spec
from ..constants import (
    DEFAULT_CREATE_TIMEOUT_SECONDS,
    DEFAULT_DELETE_TIMEOUT_SECONDS,
    DEFAULT_UPDATE_TIMEOUT_SECONDS,
    KIND_REMOTE_PEERING_CONNECTION,
)
from ..models import DesiredSpec, PeeringStatus
from ..services.base import RemoteService
from ..state import ResourceState
from ..sync.exceptions import NotFoundError
from ..sync.retry import PolicyFactory
from ..sync.synchronizer import ResourceSynchronizer, SyncPhase
from ..sync.waiter import LifecycleWaiter
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import (
    remove_condition,
    set_creation_failed_condition,
    set_peered_condition,
    set_ready_condition,
)
from ..utils.errors import sanitize_exception
from ..utils.events import (
    emit_peering_established,
    emit_peering_failed,
    emit_rpc_created,
    emit_rpc_deleted,
    emit_rpc_recreated,
    emit_rpc_updated,
    emit_validate_succeeded,
)
from .base import BaseHandler
from .shared import get_k8s_client, get_provider, is_provider_ready, make_status_persister


class RemotePeeringConnectionHandler(BaseHandler):
    """Handler for RemotePeeringConnection resources."""

    def __init__(
        self,
        waiter: LifecycleWaiter | None = None,
        policies: PolicyFactory | None = None,
        service_factory: Callable[[dict[str, Any], dict[str, Any]], RemoteService] = create_service_from_spec,
        k8s_client_factory: Callable[[], Any] = get_k8s_client,
    ):
        super().__init__(KIND_REMOTE_PEERING_CONNECTION)
        self.waiter = waiter or LifecycleWaiter()
        self.policies = policies or PolicyFactory()
        self.service_factory = service_factory
        self.k8s_client_factory = k8s_client_factory
        self.create_timeout = float(os.getenv("RPC_CREATE_TIMEOUT_SECONDS", str(DEFAULT_CREATE_TIMEOUT_SECONDS)))
        self.update_timeout = float(os.getenv("RPC_UPDATE_TIMEOUT_SECONDS", str(DEFAULT_UPDATE_TIMEOUT_SECONDS)))
        self.delete_timeout = float(os.getenv("RPC_DELETE_TIMEOUT_SECONDS", str(DEFAULT_DELETE_TIMEOUT_SECONDS)))

    def _resolve_service(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> tuple[RemoteService, Any]:
        provider_ref = spec.get("providerRef", {})
        provider_name = provider_ref.get("name")
        if not provider_name:
            self.handle_validation_error(meta, "providerRef.name is required")
        provider_ns = provider_ref.get("namespace", meta.get("namespace", "default"))

        api = self.k8s_client_factory()
        try:
            provider_obj = get_provider(api, provider_name, provider_ns)
        except client.exceptions.ApiException as e:
            if e.status == 404:
                self.handle_provider_not_ready(
                    meta, status, patch, provider_name,
                    f"Provider {provider_name} not found in namespace {provider_ns}",
                )
            raise

        if not is_provider_ready(provider_obj):
            self.handle_provider_not_ready(meta, status, patch, provider_name, f"Provider {provider_name} is not ready")

        return self.service_factory(provider_obj.get("spec", {}), provider_obj.get("metadata", {})), api

    def _synchronizer(self, service: RemoteService, store: ResourceState) -> ResourceSynchronizer:
        return ResourceSynchronizer(service, store, self.waiter, self.policies)

    def reconcile(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Reconcile RemotePeeringConnection resource."""
        name = meta.get("name", "unknown")
        namespace = meta.get("namespace", "default")

        with trace_span("reconcile_remote_peering_connection", kind=self.kind, attributes={"rpc.name": name}):
            try:
                desired = create_desired_spec_from_spec(spec)
            except ValueError as e:
                self.handle_validation_error(meta, str(e))
            emit_validate_succeeded(meta)

            service, api = self._resolve_service(spec, meta, status, patch)
            store = ResourceState.from_status(status, persist=make_status_persister(api, namespace, name))
            sync = self._synchronizer(service, store)
            conditions = status.get("conditions", [])

            try:
                self._converge(sync, store, desired, meta)
            except Exception as e:
                message = sanitize_exception(e)
                if "peer_id" in store.changed_fields:
                    conditions = set_peered_condition(conditions, False, message)
                    emit_peering_failed(meta, message)
                else:
                    conditions = set_creation_failed_condition(conditions, message)
                conditions = set_ready_condition(conditions, False, message)
                self.log_error(meta, "Failed to reconcile remote peering connection", error=e,
                               reason="ReconcileFailed", phase=sync.phase.value, rpc_id=store.identity)
                self.update_resource_status(patch, meta, False, {
                    **store.to_status(),
                    "phase": sync.phase.value,
                    "conditions": conditions,
                })
                raise self.to_kopf_error(e) from e

            add_span_attribute("rpc.id", store.identity or "")
            conditions = remove_condition(conditions, "CreationFailed")
            conditions = remove_condition(conditions, "ProviderNotReady")
            peering_status = store.get("peering_status")
            if desired.peer_id.is_set:
                peered = peering_status == PeeringStatus.PEERED.value
                conditions = set_peered_condition(
                    conditions, peered, f"Peering status is {peering_status}"
                )
            conditions = set_ready_condition(conditions, True, f"Remote peering connection {store.identity} is ready")
            self.update_resource_status(patch, meta, True, {
                **store.to_status(),
                "phase": sync.phase.value,
                "lastSyncTime": datetime.now(timezone.utc).isoformat(),
                "conditions": conditions,
            })

    def _converge(
        self,
        sync: ResourceSynchronizer,
        store: ResourceState,
        desired: DesiredSpec,
        meta: dict[str, Any],
    ) -> None:
        if store.identity:
            try:
                sync.read(retry_not_found=False)
            except NotFoundError:
                self.log_warning(meta, f"Remote peering connection {store.identity} no longer exists, recreating",
                                 reason="DriftDetected", rpc_id=store.identity)
                metrics.drift_detected_total.labels(kind=self.kind, field="id").inc()
                store.set_identity(None)
                sync.phase = SyncPhase.ABSENT

        if not store.identity:
            self._provision(sync, desired, meta)
            return

        force_new = store.force_new_changes(desired)
        if force_new:
            for field_name in force_new:
                metrics.drift_detected_total.labels(kind=self.kind, field=field_name).inc()
            self.log_info(meta, f"Fields {force_new} changed, recreating remote peering connection",
                          reason="DriftDetected", rpc_id=store.identity, fields=force_new)
            sync.teardown(self.delete_timeout)
            self._provision(sync, desired, meta)
            emit_rpc_recreated(meta, force_new)
            return

        if sync.is_provisioning:
            sync.wait_until_available(self.create_timeout)

        mutable = store.mutable_changes(desired)
        if mutable:
            for field_name in mutable:
                metrics.drift_detected_total.labels(kind=self.kind, field=field_name).inc()
            sync.update(desired, self.update_timeout)
            emit_rpc_updated(meta, store.identity)
            self.log_info(meta, f"Updated remote peering connection {store.identity}",
                          reason="Updated", rpc_id=store.identity, fields=mutable)

    def _provision(self, sync: ResourceSynchronizer, desired: DesiredSpec, meta: dict[str, Any]) -> None:
        with trace_span("provision_remote_peering_connection", kind=self.kind):
            observed = sync.provision(desired, self.create_timeout)
        emit_rpc_created(meta, observed.id)
        self.log_info(meta, f"Created remote peering connection {observed.id}",
                      reason="Created", rpc_id=observed.id, peering_status=observed.peering_status)
        if desired.peer_id.is_set:
            emit_peering_established(meta, desired.peer_id.get())

    def delete(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Handle RemotePeeringConnection deletion."""
        store = ResourceState.from_status(status)
        rpc_id = store.identity
        if not rpc_id:
            self.log_info(meta, "Nothing to delete, no remote peering connection recorded", reason="Deletion")
            self.remove_finalizer(meta, patch)
            return

        with trace_span("delete_remote_peering_connection", kind=self.kind, attributes={"rpc.id": rpc_id}):
            service, _ = self._resolve_service(spec, meta, status, patch)
            sync = self._synchronizer(service, store)
            try:
                sync.teardown(self.delete_timeout)
            except Exception as e:
                self.log_error(meta, f"Failed to delete remote peering connection {rpc_id}", error=e,
                               reason="DeletionFailed", rpc_id=rpc_id)
                raise self.to_kopf_error(e) from e

        emit_rpc_deleted(meta, rpc_id)
        self.log_info(meta, f"Deleted remote peering connection {rpc_id}", event="deletion",
                      reason="Deleted", rpc_id=rpc_id)
        self.remove_finalizer(meta, patch)
