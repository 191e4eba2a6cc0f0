"""Tests for the unified exception taxonomy.

Verifies category resolution, default stage/code per concrete error,
retryability defaults and the structured ``to_error_dict`` payload.
"""

from __future__ import annotations

import pytest

from snapshot_export.core.config import ConfigValidationError
from snapshot_export.core.exceptions import (
    AuthorizationError,
    ContractError,
    PermanentError,
    PipelineError,
    PublishError,
    SnapshotBuildError,
    TransientError,
    UpstreamFetchError,
    ValidationError,
)

_ERROR_KEYS = {"category", "code", "stage", "message", "retryable", "correlation_id"}


class TestCategories:
    @pytest.mark.parametrize(
        ("exc", "category"),
        [
            (ValidationError("x"), "validation"),
            (TransientError("x"), "transient"),
            (PermanentError("x"), "permanent"),
            (ContractError("x"), "contract"),
            (UpstreamFetchError("x"), "transient"),
            (SnapshotBuildError("x"), "permanent"),
            (PublishError("x"), "transient"),
            (AuthorizationError("x"), "validation"),
        ],
    )
    def test_category(self, exc: PipelineError, category: str) -> None:
        assert exc.category == category

    def test_base_category_follows_retryable(self) -> None:
        assert PipelineError("x", retryable=True).category == "transient"
        assert PipelineError("x").category == "permanent"


class TestRetryability:
    def test_transient_retryable_by_default(self) -> None:
        assert UpstreamFetchError("x").retryable is True
        assert PublishError("x").retryable is True

    def test_permanent_not_retryable(self) -> None:
        assert SnapshotBuildError("x").retryable is False

    def test_override(self) -> None:
        assert PublishError("x", retryable=False).retryable is False


class TestDefaults:
    @pytest.mark.parametrize(
        ("cls", "stage", "code"),
        [
            (UpstreamFetchError, "fetch_features", "UPSTREAM_FETCH_FAILED"),
            (SnapshotBuildError, "build_snapshot", "SNAPSHOT_BUILD_FAILED"),
            (PublishError, "publish_snapshot", "SNAPSHOT_PUBLISH_FAILED"),
            (AuthorizationError, "ingress", "UNAUTHORIZED"),
        ],
    )
    def test_stage_and_code(self, cls: type[PipelineError], stage: str, code: str) -> None:
        exc = cls("boom")
        assert exc.stage == stage
        assert exc.code == code

    def test_kwargs_override_defaults(self) -> None:
        exc = UpstreamFetchError("boom", stage="load_reference", code="RELATIONAL_QUERY_FAILED")
        assert exc.stage == "load_reference"
        assert exc.code == "RELATIONAL_QUERY_FAILED"

    def test_config_error_is_pipeline_error(self) -> None:
        exc = ConfigValidationError("MAX_CONCURRENCY", 0, "must be >= 1")
        assert isinstance(exc, PipelineError)
        assert "MAX_CONCURRENCY" in str(exc)


class TestErrorDict:
    def test_stable_keys(self) -> None:
        payload = PublishError("upload failed", correlation_id="c-1").to_error_dict()
        assert set(payload) == _ERROR_KEYS
        assert payload["message"] == "upload failed"
        assert payload["correlation_id"] == "c-1"
        assert payload["category"] == "transient"

    def test_message_is_str(self) -> None:
        exc = SnapshotBuildError("disk full")
        assert str(exc) == "disk full"
        assert exc.message == "disk full"
