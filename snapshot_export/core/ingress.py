"""Thin ingress boundary helpers for Azure Functions entrypoints.

Centralises the transport concerns so that ``function_app.py`` contains
only trigger bindings and handoff:

- **deserialize_activity_input**: normalises the JSON-string-or-dict
  payload that Durable Functions passes to activities (idempotent on
  replays).
- **parse_request_json** / **parse_force_flag** / **parse_tenant_id**:
  read the small JSON bodies the export endpoints accept.
- **build_orchestrator_input**: constructs the canonical
  ``OrchestratorInput`` dict for the export orchestration, propagating a
  correlation identifier.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Literal, TypedDict

from snapshot_export.core.exceptions import ContractError, ValidationError

logger = logging.getLogger("snapshot_export.core.ingress")


# ---------------------------------------------------------------------------
# Canonical orchestrator input schema
# ---------------------------------------------------------------------------


class OrchestratorInput(TypedDict):
    """Canonical payload for export orchestrator starts.

    ``mode == "all"`` builds every community (gated by the change gate
    unless ``force``); ``mode == "one"`` builds only ``tenant_id``.
    """

    mode: Literal["all", "one"]
    force: bool
    tenant_id: int | None
    max_concurrency: int
    correlation_id: str
    requested_at: str


# ---------------------------------------------------------------------------
# Activity input deserialisation
# ---------------------------------------------------------------------------


def deserialize_activity_input(raw: str | dict[str, Any] | object) -> dict[str, Any]:
    """Normalise Durable Functions activity input to a plain dict.

    During initial execution the activity input arrives as a JSON
    string; on orchestrator replay it may already be a ``dict``.

    Raises:
        ContractError: If *raw* is neither a JSON string nor a dict.
    """
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Activity input is not valid JSON: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
        if not isinstance(parsed, dict):
            msg = f"Activity input JSON must be an object, got {type(parsed).__name__}"
            raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
        return parsed
    if isinstance(raw, dict):
        return raw
    msg = f"Unexpected activity input type: {type(raw).__name__}"
    raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")


# ---------------------------------------------------------------------------
# HTTP body parsing
# ---------------------------------------------------------------------------


def parse_request_json(body: bytes | str | None) -> dict[str, Any] | None:
    """Parse an HTTP request body as a JSON object.

    An empty, malformed or non-object body yields ``None`` rather than an
    error; the export endpoints treat a missing body as "no options".
    """
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_force_flag(body: dict[str, Any] | None) -> bool:
    """Return ``True`` only when the body carries ``"force": true``."""
    return body is not None and body.get("force") is True


def parse_tenant_id(body: dict[str, Any] | None) -> int:
    """Extract the community id from a single-tenant export request.

    Accepts an integer or a numeric string (``{"id": "12"}``).

    Raises:
        ValidationError: If the id is missing or not an integer.
    """
    raw = body.get("id") if body else None
    if raw is None or raw == "":
        msg = "Community ID is required"
        raise ValidationError(msg, stage="ingress", code="MISSING_TENANT_ID")
    if isinstance(raw, bool):
        msg = "Invalid community ID"
        raise ValidationError(msg, stage="ingress", code="INVALID_TENANT_ID")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        msg = "Invalid community ID"
        raise ValidationError(msg, stage="ingress", code="INVALID_TENANT_ID") from exc


# ---------------------------------------------------------------------------
# Canonical orchestrator input builder
# ---------------------------------------------------------------------------


def build_orchestrator_input(
    *,
    force: bool = False,
    tenant_id: int | None = None,
    max_concurrency: int = 4,
    correlation_id: str = "",
) -> OrchestratorInput:
    """Build the canonical ``OrchestratorInput`` for an export run.

    A ``tenant_id`` selects single-tenant mode, which always rebuilds.
    """
    payload: OrchestratorInput = {
        "mode": "all" if tenant_id is None else "one",
        "force": bool(force) or tenant_id is not None,
        "tenant_id": tenant_id,
        "max_concurrency": max(1, int(max_concurrency)),
        "correlation_id": correlation_id or uuid.uuid4().hex[:12],
        "requested_at": datetime.now(UTC).isoformat(),
    }

    logger.debug(
        "Built orchestrator input | mode=%s | force=%s | tenant=%s | correlation_id=%s",
        payload["mode"],
        payload["force"],
        payload["tenant_id"],
        payload["correlation_id"],
    )

    return payload
