"""Snapshot table layout (schema version ``SCHEMA_VERSION``).

Any change here must bump ``SCHEMA_VERSION`` in ``core.constants``:
offline consumers select the snapshot by version.
"""

from __future__ import annotations

from snapshot_export.core.constants import FeatureKind, Visibility
from snapshot_export.models.reference import (
    NAMED_ROW_COLUMNS,
    ORGANIZATION_COLUMNS,
    POI_TYPE_COLUMNS,
    SUPER_CATEGORY_COLUMNS,
    TAG_DESCRIPTOR_COLUMNS,
)

TABLES: dict[str, str] = {
    "articles": """
        CREATE TABLE articles (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
    "challenges": """
        CREATE TABLE challenges (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
    "events": """
        CREATE TABLE events (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
    "feature_stewardships": """
        CREATE TABLE feature_stewardships (
            id INTEGER PRIMARY KEY,
            feature_type INTEGER,
            feature_id INTEGER,
            organization_id INTEGER,
            role VARCHAR
        )""",
    "feature_outings": """
        CREATE TABLE feature_outings (
            id INTEGER PRIMARY KEY,
            feature_type INTEGER,
            feature_id INTEGER,
            outing_id INTEGER
        )""",
    "feature_super_categories": """
        CREATE TABLE feature_super_categories (
            id INTEGER PRIMARY KEY,
            feature_type INTEGER,
            feature_id INTEGER,
            super_category_id INTEGER
        )""",
    "feature_types": """
        CREATE TABLE feature_types (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
    "feature_tags": """
        CREATE TABLE feature_tags (
            id INTEGER PRIMARY KEY,
            feature_type INTEGER,
            feature_id INTEGER,
            key VARCHAR
        )""",
    "tag_descriptors": """
        CREATE TABLE tag_descriptors (
            id INTEGER PRIMARY KEY,
            feature_type INTEGER,
            key VARCHAR,
            name VARCHAR,
            category VARCHAR,
            super_category_id INTEGER
        )""",
    "features": """
        CREATE TABLE features (
            id INTEGER PRIMARY KEY,
            area_id INTEGER,
            closed INTEGER,
            feature_id INTEGER,
            owner_id INTEGER,
            bounds_max_lat FLOAT,
            bounds_max_lon FLOAT,
            bounds_min_lat FLOAT,
            bounds_min_lon FLOAT,
            lat FLOAT,
            lon FLOAT,
            image_file VARCHAR,
            image_id INTEGER,
            name VARCHAR,
            poi_type INTEGER,
            feature_type INTEGER,
            visibility INTEGER,
            area_meters FLOAT,
            difficulty VARCHAR,
            route_type VARCHAR,
            display_length VARCHAR,
            length_meters FLOAT
        )""",
    "metadata": """
        CREATE TABLE metadata (
            id INTEGER PRIMARY KEY,
            name VARCHAR,
            value VARCHAR
        )""",
    "organizations": """
        CREATE TABLE organizations (
            id INTEGER PRIMARY KEY,
            image_file VARCHAR,
            image_id INTEGER,
            name VARCHAR
        )""",
    "poi_types": """
        CREATE TABLE poi_types (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
    "super_categories": """
        CREATE TABLE super_categories (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
    "visibilities": """
        CREATE TABLE visibilities (
            id INTEGER PRIMARY KEY,
            name VARCHAR
        )""",
}

INDEXES: tuple[str, ...] = (
    "CREATE INDEX idx_area_id ON features (area_id)",
    "CREATE INDEX idx_feature_type ON features (feature_type)",
    "CREATE INDEX idx_visibility ON features (visibility)",
    "CREATE INDEX idx_feature_outing_type ON feature_outings (feature_type)",
    "CREATE INDEX idx_feature_outing_id ON feature_outings (feature_id)",
    "CREATE INDEX idx_feature_sc_type ON feature_super_categories (feature_type)",
    "CREATE INDEX idx_feature_sc_id ON feature_super_categories (feature_id)",
    "CREATE INDEX idx_feature_s_type ON feature_stewardships (feature_type)",
    "CREATE INDEX idx_feature_s_id ON feature_stewardships (feature_id)",
    "CREATE INDEX idx_feature_t_type ON feature_tags (feature_type)",
    "CREATE INDEX idx_feature_t_id ON feature_tags (feature_id)",
)

FEATURE_TYPE_ROWS: tuple[tuple[int, str], ...] = tuple((int(k), k.label) for k in FeatureKind)
VISIBILITY_ROWS: tuple[tuple[int, str], ...] = tuple((int(v), v.label) for v in Visibility)


# ---------------------------------------------------------------------------
# Column lists
# ---------------------------------------------------------------------------

FEATURE_COLUMNS: dict[FeatureKind, tuple[str, ...]] = {
    FeatureKind.AREA: (
        "feature_id",
        "name",
        "owner_id",
        "image_file",
        "image_id",
        "feature_type",
        "closed",
        "bounds_max_lat",
        "bounds_max_lon",
        "bounds_min_lat",
        "bounds_min_lon",
        "lat",
        "lon",
        "visibility",
        "area_meters",
    ),
    FeatureKind.TRAIL: (
        "feature_id",
        "name",
        "owner_id",
        "image_file",
        "image_id",
        "feature_type",
        "area_id",
        "closed",
        "bounds_max_lat",
        "bounds_max_lon",
        "bounds_min_lat",
        "bounds_min_lon",
        "lat",
        "lon",
        "visibility",
        "length_meters",
    ),
    FeatureKind.POINT_OF_INTEREST: (
        "feature_id",
        "name",
        "owner_id",
        "image_file",
        "image_id",
        "feature_type",
        "closed",
        "area_id",
        "lat",
        "lon",
        "poi_type",
        "visibility",
    ),
    FeatureKind.OUTING: (
        "feature_id",
        "name",
        "owner_id",
        "image_file",
        "image_id",
        "feature_type",
        "visibility",
        "bounds_max_lat",
        "bounds_max_lon",
        "bounds_min_lat",
        "bounds_min_lon",
        "lat",
        "lon",
        "closed",
        "difficulty",
        "route_type",
        "display_length",
        "length_meters",
    ),
}

SUPER_CATEGORY_LINK_COLUMNS = ("feature_type", "feature_id", "super_category_id")
STEWARDSHIP_LINK_COLUMNS = ("feature_type", "feature_id", "organization_id", "role")
TAG_LINK_COLUMNS = ("feature_type", "feature_id", "key")
OUTING_LINK_COLUMNS = ("feature_type", "feature_id", "outing_id")

REFERENCE_COLUMNS: dict[str, tuple[str, ...]] = {
    "poi_types": POI_TYPE_COLUMNS,
    "super_categories": SUPER_CATEGORY_COLUMNS,
    "tag_descriptors": TAG_DESCRIPTOR_COLUMNS,
    "organizations": ORGANIZATION_COLUMNS,
    "articles": NAMED_ROW_COLUMNS,
    "challenges": NAMED_ROW_COLUMNS,
    "events": NAMED_ROW_COLUMNS,
}


def insert_sql(table: str, columns: tuple[str, ...]) -> str:
    """Return a parameterised ``INSERT`` for *columns* of *table*."""
    if table not in TABLES:
        msg = f"Unknown snapshot table: {table!r}"
        raise ValueError(msg)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
