"""Azure Functions entry point: Community Snapshot Export.

This module registers all Azure Functions (triggers, orchestrator,
activities) using the Python v2 programming model.

All business logic lives in the snapshot_export package. This file is
purely the wiring layer between Azure Functions bindings and
application code.
"""

from __future__ import annotations

import json
import logging

import azure.durable_functions as df
import azure.functions as func

from snapshot_export.core.auth import check_admin_auth
from snapshot_export.core.config import ConfigValidationError, ExportConfig
from snapshot_export.core.exceptions import AuthorizationError, PipelineError
from snapshot_export.core.ingress import build_orchestrator_input, deserialize_activity_input
from snapshot_export.orchestrators.triggers import (
    ORCHESTRATOR_NAME,
    TriggerResponse,
    config_error,
    events_source_for,
    handle_cron_export,
    handle_export_all,
    handle_export_one,
    start_orchestration,
    unauthorized,
)

app = func.FunctionApp()

logger = logging.getLogger("snapshot_export.function_app")


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def _http_response(response: TriggerResponse) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(response.body),
        status_code=response.status_code,
        mimetype="application/json",
        headers=response.headers,
    )


# ---------------------------------------------------------------------------
# HTTP: manual export triggers
# ---------------------------------------------------------------------------


@app.function_name("export_all")
@app.route(route="export/sqlite/all", methods=["POST"])
@app.durable_client_input(client_name="client")
async def export_all(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Queue a snapshot rebuild for every community (``{"force": true}`` skips the gate)."""
    return _http_response(await handle_export_all(req.headers, req.get_body(), client))


@app.function_name("export_one")
@app.route(route="export/sqlite/one", methods=["POST"])
@app.durable_client_input(client_name="client")
async def export_one(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Queue a snapshot rebuild for the community in ``{"id": ...}``."""
    return _http_response(await handle_export_one(req.headers, req.get_body(), client))


# ---------------------------------------------------------------------------
# HTTP: scheduler endpoint
# ---------------------------------------------------------------------------


@app.function_name("cron_export")
@app.route(route="cron/sqlite-export", methods=["GET", "POST"])
@app.durable_client_input(client_name="client")
async def cron_export(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Scheduler entry point: evaluate the change gate, then queue the batch."""
    return _http_response(await handle_cron_export(req.headers, req.get_body(), client))


# ---------------------------------------------------------------------------
# Timer: hourly batch
# ---------------------------------------------------------------------------


@app.function_name("hourly_export")
@app.timer_trigger(schedule="0 5 * * * *", arg_name="timer", run_on_startup=False)
@app.durable_client_input(client_name="client")
async def hourly_export(timer: func.TimerRequest, client: df.DurableOrchestrationClient) -> None:
    """Start the batch orchestration at five past every hour (gate inside)."""
    if timer.past_due:
        logger.warning("Hourly export timer is past due")

    config = ExportConfig.from_env()
    orchestrator_input = build_orchestrator_input(max_concurrency=config.max_concurrency)
    await start_orchestration(client, dict(orchestrator_input))


# ---------------------------------------------------------------------------
# HTTP: Orchestrator Status Endpoint (convenience for local debugging)
# ---------------------------------------------------------------------------


@app.function_name("orchestrator_status")
@app.route(route="orchestrator/{instance_id}", methods=["GET"])
@app.durable_client_input(client_name="client")
async def orchestrator_status(
    req: func.HttpRequest,
    client: df.DurableOrchestrationClient,
) -> func.HttpResponse:
    """Return the status of a specific orchestrator instance."""
    try:
        config = ExportConfig.from_env()
        check_admin_auth(req.headers, config)
    except AuthorizationError as exc:
        return _http_response(unauthorized(exc))
    except ConfigValidationError as exc:
        return _http_response(config_error(exc))

    instance_id = req.route_params.get("instance_id", "")
    if not instance_id:
        return func.HttpResponse("Missing instance_id", status_code=400)

    status = await client.get_status(instance_id)
    if not status:
        return func.HttpResponse("Instance not found", status_code=404)

    return client.create_check_status_response(req, instance_id)


# ---------------------------------------------------------------------------
# Orchestrator: Snapshot Export Batch
# ---------------------------------------------------------------------------


@app.function_name(ORCHESTRATOR_NAME)
@app.orchestration_trigger(context_name="context")
def snapshot_export_orchestrator(context: df.DurableOrchestrationContext) -> object:
    """Durable Functions orchestrator for the snapshot export batch.

    See ``snapshot_export.orchestrators.export_pipeline`` for implementation.
    """
    from snapshot_export.orchestrators.export_pipeline import orchestrator_function

    return orchestrator_function(context)


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


@app.function_name("check_changes")
@app.activity_trigger(input_name="activityInput")
def check_changes_activity(activityInput: str) -> bool:  # noqa: N803
    """Durable Functions activity: evaluate the change gate."""
    from snapshot_export.activities.change_gate import should_rebuild

    payload = deserialize_activity_input(activityInput)
    config = ExportConfig.from_env()
    return should_rebuild(
        payload.get("force") is True,
        events_source=events_source_for(config),
        window_hours=config.change_window_hours,
    )


@app.function_name("list_tenants")
@app.activity_trigger(input_name="activityInput")
def list_tenants_activity(activityInput: str) -> list[int]:  # noqa: N803
    """Durable Functions activity: list every community id."""
    from snapshot_export.activities.fetch_features import list_tenants
    from snapshot_export.clients.graph import GraphClient

    deserialize_activity_input(activityInput)
    with GraphClient.from_config(ExportConfig.from_env()) as graph:
        return list_tenants(graph)


@app.function_name("load_reference")
@app.activity_trigger(input_name="activityInput")
def load_reference_activity(activityInput: str) -> dict[str, object]:  # noqa: N803
    """Durable Functions activity: load tenant-independent reference rows."""
    from snapshot_export.activities.load_reference import load_reference_data
    from snapshot_export.clients.relational import ReferenceSource

    deserialize_activity_input(activityInput)
    source = ReferenceSource.from_config(ExportConfig.from_env())
    return load_reference_data(source).to_dict()


@app.function_name("build_tenant")
@app.activity_trigger(input_name="activityInput")
def build_tenant_activity(activityInput: str) -> dict[str, object]:  # noqa: N803
    """Durable Functions activity: build and publish one community snapshot.

    Never raises: failures are returned as a ``TenantOutcome`` dict so
    the orchestrator can carry on with the other communities.

    Input:
        ``tenant_id``, optional ``reference`` (a ``ReferenceData`` dict),
        ``correlation_id``.
    """
    from snapshot_export.models.reference import ReferenceData
    from snapshot_export.orchestrators.tenant_pipeline import (
        ExportDependencies,
        TenantOutcome,
        run_tenant,
    )

    payload = deserialize_activity_input(activityInput)
    tenant_id = int(payload.get("tenant_id", 0))
    correlation_id = str(payload.get("correlation_id", ""))
    reference_raw = payload.get("reference")
    reference = ReferenceData.from_dict(reference_raw) if isinstance(reference_raw, dict) else None

    logger.info(
        "build_tenant activity started | tenant=%s | correlation_id=%s",
        tenant_id,
        correlation_id,
    )

    try:
        config = ExportConfig.from_env()
        deps = ExportDependencies.from_config(config)
    except PipelineError as exc:
        exc.correlation_id = correlation_id
        logger.exception("build_tenant activity not configured | tenant=%s", tenant_id)
        return TenantOutcome(tenant_id=tenant_id, succeeded=False, error=exc.to_error_dict()).to_dict()

    try:
        outcome = run_tenant(
            tenant_id,
            deps=deps,
            config=config,
            reference=reference,
            correlation_id=correlation_id,
        )
    finally:
        deps.close()

    logger.info(
        "build_tenant activity completed | tenant=%s | succeeded=%s | correlation_id=%s",
        tenant_id,
        outcome.succeeded,
        correlation_id,
    )
    return outcome.to_dict()
