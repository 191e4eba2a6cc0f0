"""Sequential per-community pipeline.

    fetch features -> normalize -> load tenant reference -> build -> publish

Stages run strictly in order for one community.  Upstream clients are
bundled in ``ExportDependencies`` and injected, so the same code runs
inside the thread-pool batch and inside a Durable Functions activity.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from azure.storage.blob import BlobServiceClient

from snapshot_export.activities.build_snapshot import build_snapshot
from snapshot_export.activities.fetch_features import fetch_feature_graph
from snapshot_export.activities.load_reference import load_reference_data, load_tenant_reference
from snapshot_export.activities.normalize import normalize_graph
from snapshot_export.activities.publish_snapshot import publish_snapshot
from snapshot_export.clients.graph import GraphClient
from snapshot_export.clients.relational import EventLogSource, ReferenceSource
from snapshot_export.core.constants import SCHEMA_VERSION
from snapshot_export.core.exceptions import PipelineError
from snapshot_export.utils.blob_paths import build_local_snapshot_path

if TYPE_CHECKING:
    from snapshot_export.core.config import ExportConfig
    from snapshot_export.models.reference import ReferenceData

logger = logging.getLogger("snapshot_export.orchestrators.tenant_pipeline")


@dataclass(frozen=True, slots=True)
class ExportDependencies:
    """Clients shared by every community of a batch.

    Attributes:
        graph: Graph-query client.
        source: Reference-table reader.
        events_source: Change event-log reader.
        blob_service_client: Azure ``BlobServiceClient`` for publishing.
    """

    graph: GraphClient
    source: ReferenceSource
    events_source: EventLogSource
    blob_service_client: BlobServiceClient

    @classmethod
    def from_config(cls, config: ExportConfig) -> ExportDependencies:
        """Construct every client from configuration.

        Raises:
            ConfigValidationError: If a required connection setting is empty.
        """
        return cls(
            graph=GraphClient.from_config(config),
            source=ReferenceSource.from_config(config),
            events_source=EventLogSource.from_config(config),
            blob_service_client=BlobServiceClient.from_connection_string(
                config.require("storage_connection_string")
            ),
        )

    def close(self) -> None:
        self.graph.close()
        self.blob_service_client.close()


@dataclass(frozen=True, slots=True)
class TenantOutcome:
    """Result of building one community's snapshot.

    Attributes:
        tenant_id: Community id.
        succeeded: Whether the snapshot was published.
        blob_path: Storage key on success.
        error: Structured error payload on failure.
    """

    tenant_id: int
    succeeded: bool
    blob_path: str = ""
    error: dict[str, object] | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "tenant_id": self.tenant_id,
            "succeeded": self.succeeded,
            "blob_path": self.blob_path,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TenantOutcome:
        error = data.get("error")
        return cls(
            tenant_id=int(data.get("tenant_id", 0)),
            succeeded=bool(data.get("succeeded", False)),
            blob_path=str(data.get("blob_path", "")),
            error=error if isinstance(error, dict) else None,
        )


def build_tenant_snapshot(
    tenant_id: int,
    *,
    deps: ExportDependencies,
    config: ExportConfig,
    reference: ReferenceData | None = None,
) -> str:
    """Build and publish the snapshot of one community.

    Args:
        tenant_id: Community id.
        deps: Shared upstream clients.
        config: Pipeline configuration.
        reference: Precomputed tenant-independent lookup rows; loaded
            from the relational source when omitted.

    Returns:
        The storage key of the published snapshot.

    Raises:
        PipelineError: From whichever stage failed.
    """
    started = time.monotonic()
    logger.info("Tenant build started | tenant=%s", tenant_id)

    if reference is None:
        reference = load_reference_data(deps.source)

    graph = fetch_feature_graph(deps.graph, tenant_id)
    normalized = normalize_graph(graph)
    tenant_reference = load_tenant_reference(deps.source, tenant_id)

    path = build_local_snapshot_path(config.work_dir, tenant_id)
    stats = build_snapshot(path, normalized, reference, tenant_reference)

    result = publish_snapshot(
        path,
        tenant_id,
        blob_service_client=deps.blob_service_client,
        container=config.export_container,
        schema_version=SCHEMA_VERSION,
    )

    logger.info(
        "Tenant build completed | tenant=%s | features=%d | blob=%s | bytes=%d | duration=%.1fs",
        tenant_id,
        stats.feature_count,
        result.blob_path,
        result.size_bytes,
        time.monotonic() - started,
    )
    return result.blob_path


def run_tenant(
    tenant_id: int,
    *,
    deps: ExportDependencies,
    config: ExportConfig,
    reference: ReferenceData | None = None,
    correlation_id: str = "",
) -> TenantOutcome:
    """Run ``build_tenant_snapshot`` and capture any failure as an outcome.

    A failure is logged with its traceback and returned, never raised,
    so one community cannot abort the rest of a batch.
    """
    try:
        blob_path = build_tenant_snapshot(tenant_id, deps=deps, config=config, reference=reference)
    except PipelineError as exc:
        exc.correlation_id = exc.correlation_id or correlation_id
        logger.exception(
            "Tenant build failed | tenant=%s | stage=%s | code=%s",
            tenant_id,
            exc.stage,
            exc.code,
        )
        return TenantOutcome(tenant_id=tenant_id, succeeded=False, error=exc.to_error_dict())
    except Exception as exc:
        logger.exception("Tenant build failed | tenant=%s | unexpected error", tenant_id)
        return TenantOutcome(
            tenant_id=tenant_id,
            succeeded=False,
            error={
                "category": "unknown",
                "code": "UNEXPECTED_ERROR",
                "stage": "tenant_pipeline",
                "message": str(exc),
                "retryable": False,
                "correlation_id": correlation_id,
            },
        )
    return TenantOutcome(tenant_id=tenant_id, succeeded=True, blob_path=blob_path)
