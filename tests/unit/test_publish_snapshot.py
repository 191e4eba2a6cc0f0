"""Tests for snapshot compression and upload."""

from __future__ import annotations

import gzip
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from snapshot_export.activities.publish_snapshot import compress_snapshot, publish_snapshot
from snapshot_export.core.constants import SCHEMA_VERSION
from snapshot_export.core.exceptions import PublishError

_CONTENT = b"SQLite format 3\x00" + b"\x01" * 4096


@pytest.fixture()
def snapshot_file(tmp_path: Path) -> Path:
    path = tmp_path / "tenant_12_features.db"
    path.write_bytes(_CONTENT)
    return path


class TestCompressSnapshot:
    def test_writes_gzip_beside_source(self, snapshot_file: Path) -> None:
        target = compress_snapshot(snapshot_file)
        assert target == snapshot_file.with_name("tenant_12_features.db.gz")
        assert gzip.decompress(target.read_bytes()) == _CONTENT
        assert snapshot_file.exists()

    def test_missing_source(self, tmp_path: Path) -> None:
        with pytest.raises(PublishError) as exc_info:
            compress_snapshot(tmp_path / "missing.db")
        assert exc_info.value.code == "SNAPSHOT_COMPRESS_FAILED"
        assert exc_info.value.retryable is False


class TestPublishSnapshot:
    def test_uploads_to_versioned_key(self, snapshot_file: Path, blob_service_client: MagicMock) -> None:
        result = publish_snapshot(
            snapshot_file,
            12,
            blob_service_client=blob_service_client,
            container="exports",
        )

        expected_key = f"exports/{SCHEMA_VERSION}/tenant_12_features.db.gz"
        blob_service_client.get_blob_client.assert_called_once_with(container="exports", blob=expected_key)
        assert result.blob_path == expected_key
        assert result.container == "exports"
        assert result.tenant_id == 12
        assert result.size_bytes > 0

    def test_upload_overwrites_with_gzip_settings(
        self, snapshot_file: Path, blob_service_client: MagicMock
    ) -> None:
        publish_snapshot(snapshot_file, 12, blob_service_client=blob_service_client, container="exports")

        blob_client = blob_service_client.get_blob_client.return_value
        blob_client.upload_blob.assert_called_once()
        kwargs = blob_client.upload_blob.call_args.kwargs
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == "application/octet-stream"
        assert kwargs["content_settings"].content_encoding == "gzip"

    def test_uploaded_bytes_are_compressed_snapshot(
        self, snapshot_file: Path, blob_service_client: MagicMock
    ) -> None:
        uploaded: list[bytes] = []
        blob_client = blob_service_client.get_blob_client.return_value
        blob_client.upload_blob.side_effect = lambda data, **_: uploaded.append(data.read())

        publish_snapshot(snapshot_file, 12, blob_service_client=blob_service_client, container="exports")

        assert gzip.decompress(uploaded[0]) == _CONTENT

    def test_local_files_removed_on_success(
        self, snapshot_file: Path, blob_service_client: MagicMock
    ) -> None:
        publish_snapshot(snapshot_file, 12, blob_service_client=blob_service_client, container="exports")
        assert not snapshot_file.exists()
        assert not snapshot_file.with_name("tenant_12_features.db.gz").exists()

    def test_upload_failure_keeps_local_files(
        self, snapshot_file: Path, blob_service_client: MagicMock
    ) -> None:
        blob_client = blob_service_client.get_blob_client.return_value
        blob_client.upload_blob.side_effect = RuntimeError("network down")

        with pytest.raises(PublishError, match="network down") as exc_info:
            publish_snapshot(snapshot_file, 12, blob_service_client=blob_service_client, container="exports")

        assert exc_info.value.retryable is True
        assert snapshot_file.exists()
        assert snapshot_file.with_name("tenant_12_features.db.gz").exists()

    def test_custom_schema_version(self, snapshot_file: Path, blob_service_client: MagicMock) -> None:
        result = publish_snapshot(
            snapshot_file,
            12,
            blob_service_client=blob_service_client,
            container="exports",
            schema_version="2.0.0",
        )
        assert result.blob_path == "exports/2.0.0/tenant_12_features.db.gz"
