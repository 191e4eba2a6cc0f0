"""Tests for the HTTP trigger handlers.

Drives ``handle_export_all``, ``handle_export_one`` and
``handle_cron_export`` with an ``AsyncMock`` durable client and plain
header dicts, covering authentication, body parsing, the production
skip, the change gate and the orchestrator start.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from snapshot_export.core.auth import ADMIN_SECRET_HEADER
from snapshot_export.core.config import ExportConfig
from snapshot_export.orchestrators.triggers import (
    ORCHESTRATOR_NAME,
    handle_cron_export,
    handle_export_all,
    handle_export_one,
)

_CONFIG = ExportConfig(
    auth_secret="admin-secret",
    cron_secret="cron-secret",
    max_concurrency=3,
    stage_name="staging",
)
_ADMIN = {ADMIN_SECRET_HEADER: "admin-secret"}
_CRON = {"authorization": "Bearer cron-secret"}


def _client(instance_id: str = "instance-123") -> AsyncMock:
    client = AsyncMock()
    client.start_new.return_value = instance_id
    return client


def _events(recent: int) -> Any:
    events = MagicMock()
    events.count_recent_events.return_value = recent
    return lambda _config: events


def _sent(client: AsyncMock) -> dict[str, Any]:
    assert client.start_new.call_args.args[0] == ORCHESTRATOR_NAME
    return client.start_new.call_args.kwargs["client_input"]


class TestExportAll:
    @pytest.mark.asyncio()
    async def test_queues_forced_batch(self) -> None:
        client = _client()
        response = await handle_export_all(_ADMIN, b'{"force": true}', client, config=_CONFIG)

        assert response.status_code == 202
        assert response.body["success"] is True
        assert response.body["instance_id"] == "instance-123"
        assert response.body["force"] is True
        sent = _sent(client)
        assert sent["mode"] == "all"
        assert sent["force"] is True
        assert sent["max_concurrency"] == 3
        assert response.body["correlation_id"] == sent["correlation_id"]

    @pytest.mark.asyncio()
    async def test_missing_body_is_not_forced(self) -> None:
        client = _client()
        response = await handle_export_all(_ADMIN, b"", client, config=_CONFIG)
        assert response.body["force"] is False
        assert _sent(client)["force"] is False

    @pytest.mark.asyncio()
    async def test_bad_secret_rejected_before_queueing(self) -> None:
        client = _client()
        response = await handle_export_all({ADMIN_SECRET_HEADER: "wrong"}, b"", client, config=_CONFIG)

        assert response.status_code == 401
        assert response.headers == {"WWW-Authenticate": ADMIN_SECRET_HEADER}
        client.start_new.assert_not_called()

    @pytest.mark.asyncio()
    async def test_invalid_config_is_server_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_CONCURRENCY", "0")
        client = _client()
        response = await handle_export_all(_ADMIN, b"", client)

        assert response.status_code == 500
        assert response.body["error"] == "Export not configured"
        client.start_new.assert_not_called()


class TestExportOne:
    @pytest.mark.asyncio()
    async def test_queues_single_tenant(self) -> None:
        client = _client("instance-42")
        response = await handle_export_one(_ADMIN, b'{"id": "42"}', client, config=_CONFIG)

        assert response.status_code == 202
        assert response.body["communityId"] == 42
        sent = _sent(client)
        assert sent["mode"] == "one"
        assert sent["tenant_id"] == 42

    @pytest.mark.asyncio()
    async def test_missing_id_is_client_error(self) -> None:
        client = _client()
        response = await handle_export_one(_ADMIN, b"{}", client, config=_CONFIG)

        assert response.status_code == 400
        assert response.body["error"] == "Community ID is required"
        client.start_new.assert_not_called()


class TestCronExport:
    @pytest.mark.asyncio()
    async def test_production_stage_skips_without_gate(self) -> None:
        client = _client()
        factory = MagicMock()
        config = ExportConfig(cron_secret="cron-secret", stage_name="production")
        response = await handle_cron_export(_CRON, b"", client, config=config, events_source_factory=factory)

        assert response.status_code == 200
        assert response.body["skipped"] is True
        assert response.body["message"] == "Skipped snapshot export in production environment"
        factory.assert_not_called()
        client.start_new.assert_not_called()

    @pytest.mark.asyncio()
    async def test_no_changes_does_not_queue(self) -> None:
        client = _client()
        response = await handle_cron_export(_CRON, b"", client, config=_CONFIG, events_source_factory=_events(0))

        assert response.status_code == 200
        assert response.body["message"] == "No recent changes detected, skipping snapshot export"
        client.start_new.assert_not_called()

    @pytest.mark.asyncio()
    async def test_changes_queue_forced_batch(self) -> None:
        client = _client()
        response = await handle_cron_export(_CRON, b"", client, config=_CONFIG, events_source_factory=_events(5))

        assert response.status_code == 202
        assert response.body["hasChanges"] is True
        assert response.body["force"] is False
        assert _sent(client)["force"] is True

    @pytest.mark.asyncio()
    async def test_force_bypasses_gate(self) -> None:
        client = _client()
        factory = MagicMock()
        response = await handle_cron_export(
            _CRON, b'{"force": true}', client, config=_CONFIG, events_source_factory=factory
        )

        assert response.status_code == 202
        assert response.body["force"] is True
        factory.assert_not_called()

    @pytest.mark.asyncio()
    async def test_unconfigured_event_log_fails_open(self) -> None:
        client = _client()
        response = await handle_cron_export(
            _CRON, b"", client, config=_CONFIG, events_source_factory=lambda _config: None
        )
        assert response.status_code == 202
        client.start_new.assert_called_once()

    @pytest.mark.asyncio()
    async def test_github_actions_header_accepted(self) -> None:
        client = _client()
        response = await handle_cron_export(
            {"x-github-actions": "true"}, b"", client, config=_CONFIG, events_source_factory=_events(1)
        )
        assert response.status_code == 202

    @pytest.mark.asyncio()
    async def test_bad_credentials_rejected(self) -> None:
        client = _client()
        response = await handle_cron_export(
            {"authorization": "Bearer nope"}, b"", client, config=_CONFIG, events_source_factory=_events(5)
        )

        assert response.status_code == 401
        assert response.body == {"error": "Unauthorized"}
        client.start_new.assert_not_called()
