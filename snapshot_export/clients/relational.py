"""Postgres access for reference tables and the change event log.

Each query opens a short-lived connection with a bounded
``connect_timeout`` and closes it before returning, so tenant workers
never hold a connection across pipeline stages.  Rows are returned as
plain dicts (``psycopg.rows.dict_row``).

Every psycopg failure is re-raised as ``UpstreamFetchError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import psycopg
from psycopg.rows import dict_row

from snapshot_export.core.constants import EVENT_LOG_TABLE, WATCHED_TABLES
from snapshot_export.core.exceptions import UpstreamFetchError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from snapshot_export.core.config import ExportConfig

logger = logging.getLogger("snapshot_export.clients.relational")

# Organizations that belong to community %(community_id)s.
_TENANT_ORGANIZATIONS = """
    SELECT member_id FROM community_memberships
    WHERE community_id = %(community_id)s AND member_type = 'Organization'
"""

POI_TYPES_SQL = "SELECT id, name FROM point_of_interest_types ORDER BY id"

SUPER_CATEGORIES_SQL = """
    SELECT id, name FROM tag_categories
    WHERE group_id IS NOT NULL
    ORDER BY id
"""

TAG_DESCRIPTORS_SQL = """
    SELECT td.id, td.feature_type, td.key, td.name, tc.name AS category, td.super_category_id
    FROM tag_descriptors td
    JOIN tag_categories tc ON td.tag_category_id = tc.id
    ORDER BY td.id
"""

ORGANIZATIONS_SQL = f"""
    SELECT o.id AS id, i.uploaded_file AS image_file, o.logo_image_id AS image_id, o.name AS name
    FROM organizations o
    LEFT JOIN images i ON o.logo_image_id = i.id
    WHERE o.id IN ({_TENANT_ORGANIZATIONS})
    ORDER BY o.id
"""

ARTICLES_SQL = f"""
    SELECT id, name FROM content_bundles
    WHERE visibility = 'Published'
    AND feature_id IN ({_TENANT_ORGANIZATIONS})
    ORDER BY id
"""

CHALLENGES_SQL = f"""
    SELECT id, name FROM challenges
    WHERE organization_id IN ({_TENANT_ORGANIZATIONS})
    ORDER BY id
"""

EVENTS_SQL = f"""
    SELECT id, name FROM future_events
    WHERE id IN (
        SELECT id FROM events
        WHERE organization_id IN ({_TENANT_ORGANIZATIONS})
    )
    ORDER BY id
"""

RECENT_EVENTS_SQL = f"""
    SELECT COUNT(*) AS count FROM {EVENT_LOG_TABLE}
    WHERE table_name = ANY(%(tables)s)
    AND created_at > NOW() - (%(window_hours)s * INTERVAL '1 hour')
"""


class _PostgresSource:
    def __init__(self, dsn: str, *, connect_timeout: int = 10) -> None:
        self._dsn = dsn
        self._connect_timeout = connect_timeout

    def _fetch_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        label: str,
    ) -> list[dict[str, Any]]:
        try:
            with psycopg.connect(
                self._dsn,
                connect_timeout=self._connect_timeout,
                row_factory=dict_row,
            ) as conn:
                rows = conn.execute(sql, params).fetchall()
        except psycopg.Error as exc:
            msg = f"Relational query {label!r} failed: {exc}"
            raise UpstreamFetchError(msg, stage="load_reference", code="RELATIONAL_QUERY_FAILED") from exc
        logger.debug("Relational query | query=%s | rows=%d", label, len(rows))
        return rows


class ReferenceSource(_PostgresSource):
    """Read-only access to the reference tables behind ``DATABASE_URL``."""

    @classmethod
    def from_config(cls, config: ExportConfig) -> ReferenceSource:
        return cls(
            config.require("database_url"),
            connect_timeout=config.db_connect_timeout_seconds,
        )

    def poi_types(self) -> list[dict[str, Any]]:
        return self._fetch_all(POI_TYPES_SQL, label="poi_types")

    def super_categories(self) -> list[dict[str, Any]]:
        return self._fetch_all(SUPER_CATEGORIES_SQL, label="super_categories")

    def tag_descriptors(self) -> list[dict[str, Any]]:
        return self._fetch_all(TAG_DESCRIPTORS_SQL, label="tag_descriptors")

    def organizations(self, community_id: int) -> list[dict[str, Any]]:
        return self._fetch_all(
            ORGANIZATIONS_SQL, {"community_id": community_id}, label="organizations"
        )

    def articles(self, community_id: int) -> list[dict[str, Any]]:
        return self._fetch_all(ARTICLES_SQL, {"community_id": community_id}, label="articles")

    def challenges(self, community_id: int) -> list[dict[str, Any]]:
        return self._fetch_all(CHALLENGES_SQL, {"community_id": community_id}, label="challenges")

    def events(self, community_id: int) -> list[dict[str, Any]]:
        return self._fetch_all(EVENTS_SQL, {"community_id": community_id}, label="events")


class EventLogSource(_PostgresSource):
    """Access to the append-only ``hasura_events`` log behind ``EVENTS_DATABASE_URL``."""

    @classmethod
    def from_config(cls, config: ExportConfig) -> EventLogSource:
        return cls(
            config.require("events_database_url"),
            connect_timeout=config.db_connect_timeout_seconds,
        )

    def count_recent_events(
        self,
        window_hours: float,
        tables: Sequence[str] = WATCHED_TABLES,
    ) -> int:
        """Count log entries for *tables* created within the last *window_hours*."""
        rows = self._fetch_all(
            RECENT_EVENTS_SQL,
            {"tables": list(tables), "window_hours": window_hours},
            label="recent_events",
        )
        if not rows:
            return 0
        return int(rows[0].get("count") or 0)
