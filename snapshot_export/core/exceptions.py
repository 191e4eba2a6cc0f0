"""Unified exception taxonomy for the snapshot export pipeline.

Every domain exception inherits from ``PipelineError`` and carries
structured context fields that enable consistent retry decisions,
alerting, and operator diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``: input/contract violations, never retryable.
- ``TransientError``: temporary failures (network, throttle), retryable.
- ``PermanentError``: unrecoverable domain failures, not retryable.
- ``ContractError``: payload/schema drift between stages, never retryable.

Concrete stage errors
---------------------
- ``UpstreamFetchError``: graph service or relational source failure.
- ``SnapshotBuildError``: SQLite build failure (file handle already closed).
- ``PublishError``: compression or upload failure (local files kept).
- ``AuthorizationError``: trigger caller rejected before work is queued.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for orchestrator history and logging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"fetch_features"``, ``"publish_snapshot"``).
        code: Machine-readable error code (e.g. ``"GRAPH_QUERY_FAILED"``).
        retryable: Whether a later cycle could succeed without intervention.
        correlation_id: Request/orchestration correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """Payload or schema drift between pipeline stages. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Stage errors
# ---------------------------------------------------------------------------


class UpstreamFetchError(TransientError):
    """The graph service or relational source could not be read."""

    default_stage = "fetch_features"
    default_code = "UPSTREAM_FETCH_FAILED"


class SnapshotBuildError(PermanentError):
    """The SQLite snapshot could not be built."""

    default_stage = "build_snapshot"
    default_code = "SNAPSHOT_BUILD_FAILED"


class PublishError(TransientError):
    """Compression or upload of a finished snapshot failed."""

    default_stage = "publish_snapshot"
    default_code = "SNAPSHOT_PUBLISH_FAILED"


class AuthorizationError(ValidationError):
    """A trigger request did not carry a valid shared secret."""

    default_stage = "ingress"
    default_code = "UNAUTHORIZED"
