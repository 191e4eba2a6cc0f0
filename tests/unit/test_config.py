"""Tests for pipeline configuration loading and validation.

Covers:
- Defaults when no environment variables are set
- from_env() parsing of every supported variable
- Range validation raising ConfigValidationError
- require() for connection strings and secrets
"""

from __future__ import annotations

import pytest

from snapshot_export.core.config import ConfigValidationError, ExportConfig
from snapshot_export.core.constants import (
    DEFAULT_CHANGE_WINDOW_HOURS,
    DEFAULT_EXPORT_CONTAINER,
    DEFAULT_WORK_DIR,
)
from snapshot_export.core.exceptions import PipelineError

_ALL_KEYS = (
    "DATABASE_URL",
    "EVENTS_DATABASE_URL",
    "GRAPHQL_URL",
    "HASURA_ADMIN_SECRET",
    "AzureWebJobsStorage",
    "EXPORT_CONTAINER",
    "EXPORT_WORK_DIR",
    "MAX_CONCURRENCY",
    "CHANGE_WINDOW_HOURS",
    "HTTP_TIMEOUT_SECONDS",
    "HTTP_CONNECT_TIMEOUT_SECONDS",
    "HTTP_MAX_CONNECTIONS",
    "DB_CONNECT_TIMEOUT_SECONDS",
    "AUTH_SECRET",
    "CRON_SECRET",
    "STAGE_NAME",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ALL_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_default_values(self) -> None:
        config = ExportConfig.from_env()
        assert config.export_container == DEFAULT_EXPORT_CONTAINER
        assert config.work_dir == DEFAULT_WORK_DIR
        assert config.max_concurrency == 4
        assert config.change_window_hours == DEFAULT_CHANGE_WINDOW_HOURS
        assert config.http_timeout_seconds == 30.0
        assert config.http_connect_timeout_seconds == 10.0
        assert config.db_connect_timeout_seconds == 10

    def test_connection_settings_empty_by_default(self) -> None:
        config = ExportConfig.from_env()
        assert config.database_url == ""
        assert config.graphql_url == ""
        assert config.storage_connection_string == ""

    def test_frozen(self) -> None:
        config = ExportConfig()
        with pytest.raises(AttributeError):
            config.max_concurrency = 8  # type: ignore[misc]


class TestFromEnv:
    def test_reads_connection_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://app")
        monkeypatch.setenv("EVENTS_DATABASE_URL", "postgresql://events")
        monkeypatch.setenv("GRAPHQL_URL", "https://graph.test/v1/graphql")
        monkeypatch.setenv("HASURA_ADMIN_SECRET", "s3cret")
        monkeypatch.setenv("AzureWebJobsStorage", "UseDevelopmentStorage=true")

        config = ExportConfig.from_env()

        assert config.database_url == "postgresql://app"
        assert config.events_database_url == "postgresql://events"
        assert config.graphql_url == "https://graph.test/v1/graphql"
        assert config.graphql_admin_secret == "s3cret"
        assert config.storage_connection_string == "UseDevelopmentStorage=true"

    def test_reads_numeric_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_CONCURRENCY", "8")
        monkeypatch.setenv("CHANGE_WINDOW_HOURS", "2.5")
        monkeypatch.setenv("HTTP_MAX_CONNECTIONS", "20")

        config = ExportConfig.from_env()

        assert config.max_concurrency == 8
        assert config.change_window_hours == 2.5
        assert config.http_max_connections == 20

    def test_stage_flags(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAGE_NAME", "production")
        config = ExportConfig.from_env()
        assert config.is_production is True
        assert config.is_dev is False

    def test_dev_stage(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STAGE_NAME", "dev")
        assert ExportConfig.from_env().is_dev is True

    def test_unparseable_number_raises_value_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_CONCURRENCY", "abc")
        with pytest.raises(ValueError, match="invalid literal"):
            ExportConfig.from_env()


class TestValidation:
    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("MAX_CONCURRENCY", "0"),
            ("CHANGE_WINDOW_HOURS", "0"),
            ("HTTP_TIMEOUT_SECONDS", "-1"),
            ("HTTP_CONNECT_TIMEOUT_SECONDS", "0"),
            ("HTTP_MAX_CONNECTIONS", "0"),
            ("DB_CONNECT_TIMEOUT_SECONDS", "0"),
        ],
    )
    def test_out_of_range_values_rejected(
        self, monkeypatch: pytest.MonkeyPatch, key: str, value: str
    ) -> None:
        monkeypatch.setenv(key, value)
        with pytest.raises(ConfigValidationError) as exc_info:
            ExportConfig.from_env()
        assert exc_info.value.key == key

    def test_empty_container_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXPORT_CONTAINER", "")
        with pytest.raises(ConfigValidationError, match="EXPORT_CONTAINER"):
            ExportConfig.from_env()

    def test_error_is_pipeline_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_CONCURRENCY", "-3")
        with pytest.raises(PipelineError) as exc_info:
            ExportConfig.from_env()
        assert exc_info.value.code == "CONFIG_VALIDATION_FAILED"
        assert exc_info.value.stage == "config"
        assert exc_info.value.retryable is False


class TestRequire:
    def test_returns_configured_value(self) -> None:
        config = ExportConfig(database_url="postgresql://app")
        assert config.require("database_url") == "postgresql://app"

    def test_missing_value_names_environment_variable(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            ExportConfig().require("storage_connection_string")
        assert exc_info.value.key == "AzureWebJobsStorage"

    def test_missing_graph_secret(self) -> None:
        with pytest.raises(ConfigValidationError, match="HASURA_ADMIN_SECRET"):
            ExportConfig(graphql_url="https://graph.test").require("graphql_admin_secret")
