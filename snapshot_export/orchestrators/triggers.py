"""HTTP trigger handlers that queue the export orchestration.

Each handler takes the request headers and raw body plus a Durable
orchestration client and returns a ``TriggerResponse``.
``function_app`` only converts that into ``func.HttpResponse``, so the
authentication, parsing, gate and start logic runs without the
Functions host.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from snapshot_export.activities.change_gate import should_rebuild
from snapshot_export.clients.relational import EventLogSource
from snapshot_export.core.auth import ADMIN_SECRET_HEADER, check_admin_auth, check_cron_auth
from snapshot_export.core.config import ConfigValidationError, ExportConfig
from snapshot_export.core.exceptions import AuthorizationError, ValidationError
from snapshot_export.core.ingress import (
    build_orchestrator_input,
    parse_force_flag,
    parse_request_json,
    parse_tenant_id,
)

if TYPE_CHECKING:
    import azure.durable_functions as df

logger = logging.getLogger("snapshot_export.orchestrators.triggers")

ORCHESTRATOR_NAME = "snapshot_export_orchestrator"

EventsSourceFactory = Callable[[ExportConfig], EventLogSource | None]


@dataclass(frozen=True, slots=True)
class TriggerResponse:
    """JSON body, status and extra headers of a trigger reply."""

    body: dict[str, Any]
    status_code: int = 200
    headers: dict[str, str] | None = None


def unauthorized(exc: AuthorizationError) -> TriggerResponse:
    return TriggerResponse(
        {"error": "Unauthorized", "message": exc.message or "Admin authentication required"},
        status_code=401,
        headers={"WWW-Authenticate": ADMIN_SECRET_HEADER},
    )


def config_error(exc: ConfigValidationError) -> TriggerResponse:
    logger.error("Configuration invalid | key=%s | error=%s", exc.key, exc)
    return TriggerResponse(
        {"error": "Export not configured", "details": exc.message},
        status_code=500,
    )


def events_source_for(config: ExportConfig) -> EventLogSource | None:
    """Event-log reader, or ``None`` (gate fails open) when it is not configured."""
    try:
        return EventLogSource.from_config(config)
    except ConfigValidationError:
        logger.exception("Event log not configured, change gate will fail open")
        return None


async def start_orchestration(
    client: df.DurableOrchestrationClient,
    orchestrator_input: dict[str, object],
) -> str:
    """Start the export orchestrator and return its instance id."""
    try:
        instance_id = await client.start_new(ORCHESTRATOR_NAME, client_input=orchestrator_input)
    except Exception:
        logger.exception(
            "Failed to start orchestrator | correlation_id=%s",
            orchestrator_input.get("correlation_id", ""),
        )
        raise

    logger.info(
        "Orchestrator queued | instance_id=%s | mode=%s | force=%s | tenant=%s | correlation_id=%s",
        instance_id,
        orchestrator_input.get("mode"),
        orchestrator_input.get("force"),
        orchestrator_input.get("tenant_id"),
        orchestrator_input.get("correlation_id"),
    )
    return instance_id


# ---------------------------------------------------------------------------
# Manual export
# ---------------------------------------------------------------------------


async def handle_export_all(
    headers: Mapping[str, str],
    body: bytes | str | None,
    client: df.DurableOrchestrationClient,
    *,
    config: ExportConfig | None = None,
) -> TriggerResponse:
    """Queue a snapshot rebuild for every community.

    Body (optional): ``{"force": true}`` bypasses the change gate.
    """
    try:
        config = config or ExportConfig.from_env()
        check_admin_auth(headers, config)
    except AuthorizationError as exc:
        return unauthorized(exc)
    except ConfigValidationError as exc:
        return config_error(exc)

    force = parse_force_flag(parse_request_json(body))
    orchestrator_input = build_orchestrator_input(
        force=force,
        max_concurrency=config.max_concurrency,
    )
    instance_id = await start_orchestration(client, dict(orchestrator_input))

    return TriggerResponse(
        {
            "success": True,
            "message": "Queued",
            "instance_id": instance_id,
            "force": force,
            "correlation_id": orchestrator_input["correlation_id"],
        },
        status_code=202,
    )


async def handle_export_one(
    headers: Mapping[str, str],
    body: bytes | str | None,
    client: df.DurableOrchestrationClient,
    *,
    config: ExportConfig | None = None,
) -> TriggerResponse:
    """Queue a snapshot rebuild for one community.

    Body: ``{"id": <community id>}``.  Single-community rebuilds always
    bypass the change gate.
    """
    try:
        config = config or ExportConfig.from_env()
        check_admin_auth(headers, config)
    except AuthorizationError as exc:
        return unauthorized(exc)
    except ConfigValidationError as exc:
        return config_error(exc)

    try:
        tenant_id = parse_tenant_id(parse_request_json(body))
    except ValidationError as exc:
        return TriggerResponse({"error": exc.message, "code": exc.code}, status_code=400)

    orchestrator_input = build_orchestrator_input(
        tenant_id=tenant_id,
        max_concurrency=config.max_concurrency,
    )
    instance_id = await start_orchestration(client, dict(orchestrator_input))

    return TriggerResponse(
        {
            "success": True,
            "message": f"Queued snapshot export for community {tenant_id}",
            "communityId": tenant_id,
            "instance_id": instance_id,
            "correlation_id": orchestrator_input["correlation_id"],
        },
        status_code=202,
    )


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


async def handle_cron_export(
    headers: Mapping[str, str],
    body: bytes | str | None,
    client: df.DurableOrchestrationClient,
    *,
    config: ExportConfig | None = None,
    events_source_factory: EventsSourceFactory = events_source_for,
) -> TriggerResponse:
    """Evaluate the change gate, then queue the batch.

    Skipped on the ``production`` stage, where the timer trigger owns
    the schedule.
    """
    try:
        config = config or ExportConfig.from_env()
        check_cron_auth(headers, config)
    except AuthorizationError as exc:
        logger.warning("Cron request rejected | error=%s", exc.message)
        return TriggerResponse({"error": "Unauthorized"}, status_code=401)
    except ConfigValidationError as exc:
        return config_error(exc)

    if config.is_production:
        logger.info("Cron export skipped | stage=production")
        return TriggerResponse(
            {
                "success": True,
                "message": "Skipped snapshot export in production environment",
                "skipped": True,
            }
        )

    force = parse_force_flag(parse_request_json(body))
    orchestrator_input = build_orchestrator_input(
        force=force,
        max_concurrency=config.max_concurrency,
    )
    correlation_id = orchestrator_input["correlation_id"]

    if not force and not should_rebuild(
        False,
        events_source=events_source_factory(config),
        window_hours=config.change_window_hours,
    ):
        logger.info("Cron export skipped | reason=no_changes | correlation_id=%s", correlation_id)
        return TriggerResponse(
            {
                "success": True,
                "message": "No recent changes detected, skipping snapshot export",
                "correlation_id": correlation_id,
            }
        )

    # The gate already passed; the orchestration must not evaluate it again.
    orchestrator_input["force"] = True
    instance_id = await start_orchestration(client, dict(orchestrator_input))

    return TriggerResponse(
        {
            "success": True,
            "message": "Queued",
            "instance_id": instance_id,
            "hasChanges": True,
            "force": force,
            "correlation_id": correlation_id,
        },
        status_code=202,
    )
