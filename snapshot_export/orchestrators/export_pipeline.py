"""Durable Functions orchestrator for the snapshot export batch.

Receives an ``OrchestratorInput`` dict from a trigger and coordinates:

1. ``check_changes`` activity: change gate (mode ``all``, not forced).
2. ``list_tenants`` activity: community ids.
3. ``load_reference`` activity: tenant-independent lookup rows, once.
   When it fails, each ``build_tenant`` loads them itself.
4. ``build_tenant`` activities: bounded ``task_all`` batches of
   ``max_concurrency`` communities.

``build_tenant`` catches its own failures and returns an outcome dict,
so one community never aborts the others.  In mode ``one`` only the
requested community is built and steps 1-3 are skipped.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

    import azure.durable_functions as df

logger = logging.getLogger("snapshot_export.orchestrators.export_pipeline")

DEFAULT_MAX_CONCURRENCY = 4


def _failed_outcome(tenant_id: int, message: str, correlation_id: str) -> dict[str, object]:
    return {
        "tenant_id": tenant_id,
        "succeeded": False,
        "blob_path": "",
        "error": {
            "category": "transient",
            "code": "ACTIVITY_FAILED",
            "stage": "build_tenant",
            "message": message,
            "retryable": True,
            "correlation_id": correlation_id,
        },
    }


def run_tenant_batches(
    context: df.DurableOrchestrationContext,
    tenant_ids: list[int],
    *,
    reference: dict[str, Any] | None,
    correlation_id: str,
    batch_size: int,
) -> Generator[Any, Any, list[dict[str, Any]]]:
    """Fan out ``build_tenant`` in bounded batches; one outcome per tenant, in order."""
    outcomes: list[dict[str, Any]] = []

    for batch_start in range(0, len(tenant_ids), batch_size):
        batch = tenant_ids[batch_start : batch_start + batch_size]
        tasks = [
            context.call_activity(
                "build_tenant",
                {
                    "tenant_id": tenant_id,
                    "reference": reference,
                    "correlation_id": correlation_id,
                },
            )
            for tenant_id in batch
        ]

        try:
            batch_results = yield context.task_all(tasks)
        except Exception as exc:
            if not context.is_replaying:
                logger.exception(
                    "Tenant batch failed | instance=%s | batch_error=%s | batch_size=%d",
                    context.instance_id,
                    exc,
                    len(batch),
                )
            outcomes.extend(_failed_outcome(t, str(exc), correlation_id) for t in batch)
            continue

        results = batch_results if isinstance(batch_results, list) else [batch_results]
        for tenant_id, result in zip(batch, results, strict=False):
            if isinstance(result, dict):
                outcomes.append(result)
            else:
                outcomes.append(
                    _failed_outcome(tenant_id, f"Unexpected non-dict result: {result!r}", correlation_id)
                )

    return outcomes


def orchestrator_function(
    context: df.DurableOrchestrationContext,
) -> Generator[Any, Any, dict[str, object]]:
    """Snapshot export orchestrator.

    Input (via ``context.get_input``): ``mode``, ``force``,
    ``tenant_id``, ``max_concurrency``, ``correlation_id``,
    ``requested_at``.

    Returns:
        Dict summarising the batch: ``status`` (``skipped`` or
        ``completed``), tenant counts and per-tenant outcomes.
    """
    payload: dict[str, Any] = context.get_input() or {}
    instance_id = context.instance_id
    mode = payload.get("mode", "all")
    force = payload.get("force") is True
    correlation_id = str(payload.get("correlation_id", ""))
    batch_size = max(1, int(payload.get("max_concurrency") or DEFAULT_MAX_CONCURRENCY))

    if not context.is_replaying:
        logger.info(
            "Orchestrator started | instance=%s | mode=%s | force=%s | correlation_id=%s",
            instance_id,
            mode,
            force,
            correlation_id,
        )

    reference: dict[str, Any] | None = None
    if mode == "one":
        tenant_ids = [int(payload["tenant_id"])]
    else:
        if not force:
            should = yield context.call_activity("check_changes", {"force": force})
            if not should:
                if not context.is_replaying:
                    logger.info("Orchestrator skipped | instance=%s | reason=no_changes", instance_id)
                return {
                    "status": "skipped",
                    "instance_id": instance_id,
                    "correlation_id": correlation_id,
                    "tenant_count": 0,
                    "succeeded": 0,
                    "failed": 0,
                    "outcomes": [],
                }

        tenant_ids = yield context.call_activity("list_tenants", {})
        try:
            reference = yield context.call_activity("load_reference", {})
        except Exception as exc:
            if not context.is_replaying:
                logger.warning(
                    "Shared reference load failed | instance=%s | error=%s | falling back to per-tenant loads",
                    instance_id,
                    exc,
                )
            reference = None

    outcomes = yield from run_tenant_batches(
        context,
        list(tenant_ids),
        reference=reference,
        correlation_id=correlation_id,
        batch_size=batch_size,
    )

    succeeded = sum(1 for o in outcomes if o.get("succeeded"))
    if not context.is_replaying:
        logger.info(
            "Orchestrator completed | instance=%s | tenants=%d | succeeded=%d | failed=%d",
            instance_id,
            len(outcomes),
            succeeded,
            len(outcomes) - succeeded,
        )

    return {
        "status": "completed",
        "instance_id": instance_id,
        "correlation_id": correlation_id,
        "tenant_count": len(outcomes),
        "succeeded": succeeded,
        "failed": len(outcomes) - succeeded,
        "outcomes": outcomes,
    }
