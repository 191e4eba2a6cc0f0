"""In-process batch orchestrator.

Runs one export cycle for every community on a bounded thread pool:

1. Change gate (returns ``False`` without touching the graph on skip).
2. List communities.  A failure here fails the whole batch.
3. Load tenant-independent reference data once.  On failure each
   community loads it itself, so the error lands in its outcome.
4. Build every community on ``ThreadPoolExecutor(max_concurrency)``.

Each community yields exactly one ``TenantOutcome``; outcomes are
returned in community-list order regardless of completion order.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Literal

from snapshot_export.activities.change_gate import should_rebuild
from snapshot_export.activities.fetch_features import list_tenants
from snapshot_export.activities.load_reference import load_reference_data
from snapshot_export.core.exceptions import UpstreamFetchError
from snapshot_export.orchestrators.tenant_pipeline import (
    ExportDependencies,
    TenantOutcome,
    build_tenant_snapshot,
    run_tenant,
)

if TYPE_CHECKING:
    from snapshot_export.core.config import ExportConfig
    from snapshot_export.models.reference import ReferenceData

logger = logging.getLogger("snapshot_export.orchestrators.batch")

__all__ = [
    "ExportDependencies",
    "TenantOutcome",
    "build_all",
    "build_one",
    "build_tenant_snapshot",
]


def build_all(
    force: bool,
    *,
    deps: ExportDependencies,
    config: ExportConfig,
    correlation_id: str = "",
) -> Literal[False] | list[TenantOutcome]:
    """Run one export cycle for every community.

    Args:
        force: Bypass the change gate.
        deps: Shared upstream clients.
        config: Pipeline configuration (``max_concurrency``,
            ``change_window_hours``, ``work_dir``, ``export_container``).
        correlation_id: Identifier copied into failure payloads.

    Returns:
        ``False`` when the gate skipped the cycle, otherwise one outcome
        per community in listing order.

    Raises:
        UpstreamFetchError: If the community list cannot be loaded.
    """
    if not should_rebuild(
        force,
        events_source=deps.events_source,
        window_hours=config.change_window_hours,
    ):
        logger.info("Batch skipped | reason=no_changes")
        return False

    started = time.monotonic()
    tenant_ids = list_tenants(deps.graph)
    reference: ReferenceData | None
    try:
        reference = load_reference_data(deps.source)
    except UpstreamFetchError:
        logger.exception("Shared reference load failed | falling back to per-tenant loads")
        reference = None

    logger.info(
        "Batch started | tenants=%d | max_concurrency=%d | correlation_id=%s",
        len(tenant_ids),
        config.max_concurrency,
        correlation_id,
    )

    with ThreadPoolExecutor(
        max_workers=config.max_concurrency,
        thread_name_prefix="snapshot-export",
    ) as pool:
        futures = [
            pool.submit(
                run_tenant,
                tenant_id,
                deps=deps,
                config=config,
                reference=reference,
                correlation_id=correlation_id,
            )
            for tenant_id in tenant_ids
        ]
        outcomes = [future.result() for future in futures]

    succeeded = sum(1 for o in outcomes if o.succeeded)
    logger.info(
        "Batch completed | tenants=%d | succeeded=%d | failed=%d | duration=%.1fs",
        len(outcomes),
        succeeded,
        len(outcomes) - succeeded,
        time.monotonic() - started,
    )
    return outcomes


def build_one(
    tenant_id: int,
    *,
    deps: ExportDependencies,
    config: ExportConfig,
    correlation_id: str = "",
) -> TenantOutcome:
    """Rebuild a single community, bypassing the change gate."""
    return run_tenant(tenant_id, deps=deps, config=config, correlation_id=correlation_id)
