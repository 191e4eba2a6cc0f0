"""Snapshot builder activity: writes one community's SQLite file.

Build order:
1. Remove any stale file at the target path.
2. Create tables, then indexes.
3. Seed ``feature_types``, ``visibilities`` and ``metadata``
   (``version`` + ``created_at``).
4. Insert reference rows (tenant-independent, then tenant-scoped).
5. Per kind (Area, Outing, PointOfInterest, Trail): insert ``features``
   rows when there is at least one, then that kind's association rows.

All inserts are batched with ``executemany`` inside a single
transaction.  The connection is always closed before this function
returns or raises, so a failed build never leaves an open handle on a
half-written file.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from snapshot_export.core.constants import SCHEMA_VERSION
from snapshot_export.core.exceptions import SnapshotBuildError
from snapshot_export.models import schema

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from snapshot_export.core.constants import FeatureKind
    from snapshot_export.models.features import NormalizedFeature, NormalizedGraph
    from snapshot_export.models.reference import ReferenceData, TenantReferenceData

logger = logging.getLogger("snapshot_export.activities.build_snapshot")


@dataclass(slots=True)
class SnapshotStats:
    """Row counts written per table."""

    path: str
    rows: dict[str, int] = field(default_factory=dict)

    def add(self, table: str, count: int) -> None:
        self.rows[table] = self.rows.get(table, 0) + count

    @property
    def feature_count(self) -> int:
        return self.rows.get("features", 0)


def build_snapshot(
    path: str | Path,
    graph: NormalizedGraph,
    reference: ReferenceData,
    tenant_reference: TenantReferenceData,
    *,
    created_at: datetime | None = None,
) -> SnapshotStats:
    """Create the snapshot file at *path* from normalized rows.

    Args:
        path: Target ``.db`` path; its parent directory is created.
        graph: Normalized feature rows of the community.
        reference: Tenant-independent lookup rows.
        tenant_reference: Organizations, articles, challenges and events
            of the community.
        created_at: Build timestamp recorded in ``metadata``.  Defaults
            to the current UTC time.

    Returns:
        Row counts per table.

    Raises:
        SnapshotBuildError: If the file cannot be created or populated.
    """
    db_path = Path(path)
    stamp = (created_at or datetime.now(UTC)).isoformat()
    stats = SnapshotStats(path=str(db_path))

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db_path.unlink(missing_ok=True)
        conn = sqlite3.connect(db_path)
    except (OSError, sqlite3.Error) as exc:
        msg = f"Cannot create snapshot file {db_path}: {exc}"
        raise SnapshotBuildError(msg) from exc

    try:
        with conn:
            _create_schema(conn)
            _seed(conn, stats, stamp)
            _insert_reference(conn, stats, reference, tenant_reference)
            for kind, rows in graph.by_kind():
                if rows:
                    _insert_features(conn, stats, kind, rows)
    except sqlite3.Error as exc:
        logger.error("Snapshot build failed | path=%s | error=%s", db_path, exc)
        msg = f"Snapshot build failed for {db_path}: {exc}"
        raise SnapshotBuildError(msg) from exc
    finally:
        conn.close()

    logger.info(
        "Snapshot built | path=%s | features=%d | organizations=%d | version=%s",
        db_path,
        stats.feature_count,
        stats.rows.get("organizations", 0),
        SCHEMA_VERSION,
    )
    return stats


def _create_schema(conn: sqlite3.Connection) -> None:
    for ddl in schema.TABLES.values():
        conn.execute(ddl)
    for index in schema.INDEXES:
        conn.execute(index)


def _seed(conn: sqlite3.Connection, stats: SnapshotStats, created_at: str) -> None:
    _insert_rows(conn, stats, "feature_types", ("id", "name"), schema.FEATURE_TYPE_ROWS)
    _insert_rows(conn, stats, "visibilities", ("id", "name"), schema.VISIBILITY_ROWS)
    _insert_rows(
        conn,
        stats,
        "metadata",
        ("name", "value"),
        (("version", SCHEMA_VERSION), ("created_at", created_at)),
    )


def _insert_reference(
    conn: sqlite3.Connection,
    stats: SnapshotStats,
    reference: ReferenceData,
    tenant_reference: TenantReferenceData,
) -> None:
    sources: dict[str, Sequence[tuple[Any, ...]]] = {
        "organizations": tenant_reference.organizations,
        "poi_types": reference.poi_types,
        "super_categories": reference.super_categories,
        "tag_descriptors": reference.tag_descriptors,
        "articles": tenant_reference.articles,
        "challenges": tenant_reference.challenges,
        "events": tenant_reference.events,
    }
    for table, rows in sources.items():
        if rows:
            _insert_rows(conn, stats, table, schema.REFERENCE_COLUMNS[table], rows)


def _insert_features(
    conn: sqlite3.Connection,
    stats: SnapshotStats,
    kind: FeatureKind,
    rows: Sequence[NormalizedFeature],
) -> None:
    logger.debug("Inserting features | kind=%s | count=%d", kind.label, len(rows))
    _insert_rows(conn, stats, "features", schema.FEATURE_COLUMNS[kind], [r.values for r in rows])
    _insert_rows(
        conn,
        stats,
        "feature_super_categories",
        schema.SUPER_CATEGORY_LINK_COLUMNS,
        _flatten(r.super_categories for r in rows),
    )
    _insert_rows(
        conn,
        stats,
        "feature_stewardships",
        schema.STEWARDSHIP_LINK_COLUMNS,
        _flatten(r.stewardships for r in rows),
    )
    _insert_rows(
        conn,
        stats,
        "feature_outings",
        schema.OUTING_LINK_COLUMNS,
        _flatten(r.outings for r in rows),
    )
    _insert_rows(conn, stats, "feature_tags", schema.TAG_LINK_COLUMNS, _flatten(r.tags for r in rows))


def _flatten(groups: Iterable[list[tuple[Any, ...]] | None]) -> list[tuple[Any, ...]]:
    return [row for group in groups if group for row in group]


def _insert_rows(
    conn: sqlite3.Connection,
    stats: SnapshotStats,
    table: str,
    columns: tuple[str, ...],
    rows: Sequence[tuple[Any, ...]],
) -> None:
    if not rows:
        return
    conn.executemany(schema.insert_sql(table, columns), rows)
    stats.add(table, len(rows))


def read_snapshot_rows(path: str | Path, table: str) -> list[dict[str, Any]]:
    """Return every row of *table* as a dict, ordered by rowid."""
    if table not in schema.TABLES:
        msg = f"Unknown snapshot table: {table!r}"
        raise ValueError(msg)
    conn = sqlite3.connect(Path(path))
    try:
        conn.row_factory = sqlite3.Row
        return [dict(row) for row in conn.execute(f"SELECT * FROM {table} ORDER BY rowid")]  # noqa: S608
    finally:
        conn.close()
