"""Shared pipeline constants: single source of truth.

Centralises the snapshot schema version, the feature-kind and
visibility code tables, the change-log allow-list, and storage
defaults that would otherwise be duplicated across activities and
orchestrators.
"""

from __future__ import annotations

from enum import IntEnum

# ---------------------------------------------------------------------------
# Snapshot format
# ---------------------------------------------------------------------------

SCHEMA_VERSION: str = "1.0.3"
"""Semantic version of the snapshot table layout.

Bump whenever a table or column is added, removed, renamed or reordered.
The version is written into the ``metadata`` table and the storage key so
old and new consumers can coexist during a rollout.
"""

SNAPSHOT_EXTENSION: str = "db"
"""File extension of the uncompressed snapshot."""


class FeatureKind(IntEnum):
    """Numeric feature-type codes shared by ``features`` and satellite tables."""

    AREA = 1
    TRAIL = 2
    POINT_OF_INTEREST = 3
    OUTING = 4

    @property
    def label(self) -> str:
        """Display name stored in the ``feature_types`` lookup table."""
        return _FEATURE_KIND_LABELS[self]


_FEATURE_KIND_LABELS: dict[FeatureKind, str] = {
    FeatureKind.AREA: "Area",
    FeatureKind.TRAIL: "Trail",
    FeatureKind.POINT_OF_INTEREST: "PointOfInterest",
    FeatureKind.OUTING: "Outing",
}


class Visibility(IntEnum):
    """Publication state codes stored in ``features.visibility``."""

    DRAFT = 1
    PUBLISHED = 2
    ARCHIVED = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


VISIBILITY_CODES: dict[str, int] = {v.label: int(v) for v in Visibility}
"""Source visibility label → numeric code (``{"Draft": 1, ...}``)."""


# ---------------------------------------------------------------------------
# Change gate
# ---------------------------------------------------------------------------

DEFAULT_CHANGE_WINDOW_HOURS: float = 1.1
"""Look-back window for the change gate; longer than the hourly schedule."""

EVENT_LOG_TABLE: str = "hasura_events"

WATCHED_TABLES: tuple[str, ...] = (
    "areas",
    "articles",
    "challenges",
    "communities",
    "content_bundles",
    "events",
    "image_attachments",
    "organizations",
    "outings",
    "points_of_interest",
    "stewardships",
    "tags",
    "trails",
)
"""Source tables whose mutations can change a snapshot."""


# ---------------------------------------------------------------------------
# Feature graph
# ---------------------------------------------------------------------------

DEFAULT_SINCE: str = "2000-01-01"
"""``since`` filter for the feature query; every cycle re-fetches everything."""


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

DEFAULT_EXPORT_CONTAINER: str = "exports"
"""Blob container receiving compressed snapshots."""

DEFAULT_WORK_DIR: str = "/tmp/exports/sqlite"  # noqa: S108
"""Local scratch directory for snapshot files before upload."""

EXPORT_PREFIX: str = "exports"
"""Key prefix inside the export container."""

SNAPSHOT_CONTENT_TYPE: str = "application/octet-stream"
SNAPSHOT_CONTENT_ENCODING: str = "gzip"
