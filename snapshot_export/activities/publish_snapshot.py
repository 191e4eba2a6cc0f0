"""Publish activity: gzip a finished snapshot and upload it to Blob Storage.

The compressed file is fully written and closed before the upload
starts.  Uploads use ``overwrite=True``, so republishing the same tenant
and schema version replaces the previous object.

On success both local files are deleted.  On failure they are kept for
inspection and ``PublishError`` is raised.
"""

from __future__ import annotations

import gzip
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from azure.storage.blob import ContentSettings

from snapshot_export.core.constants import (
    SCHEMA_VERSION,
    SNAPSHOT_CONTENT_ENCODING,
    SNAPSHOT_CONTENT_TYPE,
)
from snapshot_export.core.exceptions import PublishError
from snapshot_export.utils.blob_paths import build_snapshot_blob_path, compressed_path

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger("snapshot_export.activities.publish_snapshot")

_COPY_CHUNK_BYTES = 1024 * 1024


@dataclass(frozen=True, slots=True)
class PublishResult:
    """Where a snapshot was published.

    Attributes:
        tenant_id: Community id.
        container: Blob container.
        blob_path: Storage key inside the container.
        size_bytes: Compressed size.
    """

    tenant_id: int
    container: str
    blob_path: str
    size_bytes: int


def compress_snapshot(path: str | Path) -> Path:
    """Stream *path* through gzip into ``<path>.gz`` and return the new path.

    Raises:
        PublishError: If the source cannot be read or the target written.
    """
    source = Path(path)
    target = compressed_path(source)
    try:
        with source.open("rb") as src, gzip.open(target, "wb") as dst:
            shutil.copyfileobj(src, dst, _COPY_CHUNK_BYTES)
    except OSError as exc:
        msg = f"Failed to compress {source}: {exc}"
        raise PublishError(msg, code="SNAPSHOT_COMPRESS_FAILED", retryable=False) from exc
    return target


def publish_snapshot(
    path: str | Path,
    tenant_id: int,
    *,
    blob_service_client: BlobServiceClient,
    container: str,
    schema_version: str = SCHEMA_VERSION,
) -> PublishResult:
    """Compress and upload one community snapshot.

    Args:
        path: Closed, fully-built snapshot file.
        tenant_id: Community id (part of the storage key).
        blob_service_client: Azure ``BlobServiceClient``.
        container: Target container name.
        schema_version: Layout version (part of the storage key).

    Returns:
        A ``PublishResult`` describing the uploaded object.

    Raises:
        PublishError: If compression or upload fails.  Local files are
            retained in that case.
    """
    source = Path(path)
    archive = compress_snapshot(source)
    blob_path = build_snapshot_blob_path(tenant_id, schema_version)
    size_bytes = archive.stat().st_size

    try:
        blob_client = blob_service_client.get_blob_client(container=container, blob=blob_path)
        with archive.open("rb") as data:
            blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(
                    content_type=SNAPSHOT_CONTENT_TYPE,
                    content_encoding=SNAPSHOT_CONTENT_ENCODING,
                ),
            )
    except Exception as exc:
        logger.error(
            "Snapshot upload failed | tenant=%s | blob=%s | error=%s",
            tenant_id,
            blob_path,
            exc,
        )
        msg = f"Failed to upload snapshot to {container}/{blob_path}: {exc}"
        raise PublishError(msg) from exc

    source.unlink(missing_ok=True)
    archive.unlink(missing_ok=True)

    logger.info(
        "Snapshot published | tenant=%s | container=%s | blob=%s | bytes=%d",
        tenant_id,
        container,
        blob_path,
        size_bytes,
    )
    return PublishResult(
        tenant_id=int(tenant_id),
        container=container,
        blob_path=blob_path,
        size_bytes=size_bytes,
    )
