"""Pipeline configuration loaded from environment variables.

Azure Functions app settings (or ``local.settings.json`` for local dev)
are the source of truth.

``from_env()`` raises ``ConfigValidationError`` if any numeric value is
out of its valid range, so bad configuration is caught at startup rather
than halfway through a batch.  Connection strings and secrets are only
checked when a client that needs them is constructed (see ``require``),
because the trigger functions and the builder need different subsets.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from snapshot_export.core.constants import (
    DEFAULT_CHANGE_WINDOW_HOURS,
    DEFAULT_EXPORT_CONTAINER,
    DEFAULT_WORK_DIR,
)
from snapshot_export.core.exceptions import PipelineError


class ConfigValidationError(PipelineError):
    """Raised when configuration values are missing or out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


# Environment variable name for each field that ``require`` can check.
_ENV_KEYS: dict[str, str] = {
    "database_url": "DATABASE_URL",
    "events_database_url": "EVENTS_DATABASE_URL",
    "graphql_url": "GRAPHQL_URL",
    "graphql_admin_secret": "HASURA_ADMIN_SECRET",
    "storage_connection_string": "AzureWebJobsStorage",
    "auth_secret": "AUTH_SECRET",
    "cron_secret": "CRON_SECRET",
}


@dataclass(frozen=True, slots=True)
class ExportConfig:
    """Immutable pipeline configuration.

    Attributes:
        database_url: Postgres DSN for reference tables.
        events_database_url: Postgres DSN for the ``hasura_events`` log.
        graphql_url: Graph-query endpoint.
        graphql_admin_secret: Value of the ``x-hasura-admin-secret`` header.
        storage_connection_string: Azure Storage connection string.
        export_container: Blob container receiving compressed snapshots.
        work_dir: Local scratch directory for snapshot files.
        max_concurrency: Tenants built at the same time.
        change_window_hours: Change-gate look-back window.
        http_timeout_seconds: Read/write/pool timeout for graph requests.
        http_connect_timeout_seconds: Connect timeout for graph requests.
        http_max_connections: Connection-pool size of the graph client.
        db_connect_timeout_seconds: Postgres ``connect_timeout``.
        auth_secret: Shared secret for the admin trigger endpoints.
        cron_secret: Bearer secret sent by the platform scheduler.
        stage_name: Deployment stage (``dev``, ``staging``, ``production``).
    """

    database_url: str = ""
    events_database_url: str = ""
    graphql_url: str = ""
    graphql_admin_secret: str = ""
    storage_connection_string: str = ""
    export_container: str = DEFAULT_EXPORT_CONTAINER
    work_dir: str = DEFAULT_WORK_DIR
    max_concurrency: int = 4
    change_window_hours: float = DEFAULT_CHANGE_WINDOW_HOURS
    http_timeout_seconds: float = 30.0
    http_connect_timeout_seconds: float = 10.0
    http_max_connections: int = 10
    db_connect_timeout_seconds: int = 10
    auth_secret: str = ""
    cron_secret: str = ""
    stage_name: str = ""

    @classmethod
    def from_env(cls) -> ExportConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``MAX_CONCURRENCY=abc``).
        """
        config = cls(
            database_url=os.getenv("DATABASE_URL", ""),
            events_database_url=os.getenv("EVENTS_DATABASE_URL", ""),
            graphql_url=os.getenv("GRAPHQL_URL", ""),
            graphql_admin_secret=os.getenv("HASURA_ADMIN_SECRET", ""),
            storage_connection_string=os.getenv("AzureWebJobsStorage", ""),  # noqa: SIM112
            export_container=os.getenv("EXPORT_CONTAINER", DEFAULT_EXPORT_CONTAINER),
            work_dir=os.getenv("EXPORT_WORK_DIR", DEFAULT_WORK_DIR),
            max_concurrency=int(os.getenv("MAX_CONCURRENCY", "4")),
            change_window_hours=float(
                os.getenv("CHANGE_WINDOW_HOURS", str(DEFAULT_CHANGE_WINDOW_HOURS))
            ),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
            http_connect_timeout_seconds=float(os.getenv("HTTP_CONNECT_TIMEOUT_SECONDS", "10")),
            http_max_connections=int(os.getenv("HTTP_MAX_CONNECTIONS", "10")),
            db_connect_timeout_seconds=int(os.getenv("DB_CONNECT_TIMEOUT_SECONDS", "10")),
            auth_secret=os.getenv("AUTH_SECRET", ""),
            cron_secret=os.getenv("CRON_SECRET", ""),
            stage_name=os.getenv("STAGE_NAME", ""),
        )
        _validate(config)
        return config

    def require(self, field_name: str) -> str:
        """Return a connection string or secret, failing fast when it is empty.

        Raises:
            ConfigValidationError: If the value is not configured.
        """
        value = str(getattr(self, field_name))
        if not value:
            env_key = _ENV_KEYS.get(field_name, field_name.upper())
            raise ConfigValidationError(env_key, value, "environment variable is not set")
        return value

    @property
    def is_dev(self) -> bool:
        return self.stage_name == "dev"

    @property
    def is_production(self) -> bool:
        return self.stage_name == "production"


def _validate(config: ExportConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.max_concurrency < 1:
        raise ConfigValidationError(
            "MAX_CONCURRENCY",
            config.max_concurrency,
            "must be >= 1 (tenants)",
        )

    if config.change_window_hours <= 0:
        raise ConfigValidationError(
            "CHANGE_WINDOW_HOURS",
            config.change_window_hours,
            "must be > 0 (hours)",
        )

    if config.http_timeout_seconds <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_SECONDS",
            config.http_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if config.http_connect_timeout_seconds <= 0:
        raise ConfigValidationError(
            "HTTP_CONNECT_TIMEOUT_SECONDS",
            config.http_connect_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if config.http_max_connections < 1:
        raise ConfigValidationError(
            "HTTP_MAX_CONNECTIONS",
            config.http_max_connections,
            "must be >= 1 (connections)",
        )

    if config.db_connect_timeout_seconds < 1:
        raise ConfigValidationError(
            "DB_CONNECT_TIMEOUT_SECONDS",
            config.db_connect_timeout_seconds,
            "must be >= 1 (seconds)",
        )

    if not config.export_container:
        raise ConfigValidationError(
            "EXPORT_CONTAINER",
            config.export_container,
            "must not be empty",
        )

    if not config.work_dir:
        raise ConfigValidationError(
            "EXPORT_WORK_DIR",
            config.work_dir,
            "must not be empty",
        )
