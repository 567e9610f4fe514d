"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_PEERING_ESTABLISHED,
    EVENT_REASON_PEERING_FAILED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_RPC_CREATED,
    EVENT_REASON_RPC_DELETED,
    EVENT_REASON_RPC_RECREATED,
    EVENT_REASON_RPC_UPDATED,
    EVENT_REASON_VALIDATE_FAILED,
    EVENT_REASON_VALIDATE_SUCCEEDED,
)


def emit_event(
    meta: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        meta: Resource metadata
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        meta,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(meta: dict[str, Any]) -> None:
    emit_event(meta, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(meta: dict[str, Any], message: str) -> None:
    emit_event(meta, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_validate_succeeded(meta: dict[str, Any]) -> None:
    emit_event(meta, EVENT_REASON_VALIDATE_SUCCEEDED, "Validation succeeded")


def emit_validate_failed(meta: dict[str, Any], message: str) -> None:
    emit_event(meta, EVENT_REASON_VALIDATE_FAILED, message, type_="Warning")


def emit_rpc_created(meta: dict[str, Any], rpc_id: str) -> None:
    emit_event(meta, EVENT_REASON_RPC_CREATED, f"Remote peering connection {rpc_id} created")


def emit_rpc_updated(meta: dict[str, Any], rpc_id: str) -> None:
    emit_event(meta, EVENT_REASON_RPC_UPDATED, f"Remote peering connection {rpc_id} updated")


def emit_rpc_deleted(meta: dict[str, Any], rpc_id: str) -> None:
    emit_event(meta, EVENT_REASON_RPC_DELETED, f"Remote peering connection {rpc_id} deleted")


def emit_rpc_recreated(meta: dict[str, Any], fields: list[str]) -> None:
    emit_event(
        meta,
        EVENT_REASON_RPC_RECREATED,
        f"Remote peering connection recreated because {', '.join(fields)} changed",
    )


def emit_peering_established(meta: dict[str, Any], peer_id: str) -> None:
    emit_event(meta, EVENT_REASON_PEERING_ESTABLISHED, f"Peered with {peer_id}")


def emit_peering_failed(meta: dict[str, Any], message: str) -> None:
    emit_event(meta, EVENT_REASON_PEERING_FAILED, message, type_="Warning")
