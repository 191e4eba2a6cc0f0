"""Deterministic storage paths for community snapshots.

    exports/{schema_version}/tenant_{id}_features.db.gz

The schema version is part of the key so consumers of an older layout
keep reading their own objects while a new version rolls out.  The same
tenant and version always map to the same key; uploads overwrite.
"""

from __future__ import annotations

from pathlib import Path

from snapshot_export.core.constants import EXPORT_PREFIX, SCHEMA_VERSION, SNAPSHOT_EXTENSION

COMPRESSED_SUFFIX = ".gz"


def snapshot_filename(tenant_id: int) -> str:
    """Return ``tenant_{id}_features.db``."""
    return f"tenant_{int(tenant_id)}_features.{SNAPSHOT_EXTENSION}"


def build_snapshot_blob_path(tenant_id: int, schema_version: str = SCHEMA_VERSION) -> str:
    """Build the storage key of a compressed snapshot.

    Raises:
        ValueError: If *schema_version* is empty.
    """
    if not schema_version:
        msg = "schema_version must not be empty"
        raise ValueError(msg)
    return f"{EXPORT_PREFIX}/{schema_version}/{snapshot_filename(tenant_id)}{COMPRESSED_SUFFIX}"


def build_local_snapshot_path(work_dir: str | Path, tenant_id: int) -> Path:
    """Return the scratch path of the uncompressed snapshot."""
    return Path(work_dir) / snapshot_filename(tenant_id)


def compressed_path(path: str | Path) -> Path:
    """Return ``<path>.gz``."""
    source = Path(path)
    return source.with_name(source.name + COMPRESSED_SUFFIX)
