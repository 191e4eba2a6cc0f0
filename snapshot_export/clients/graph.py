"""HTTP client for the federated graph-query service.

One ``GraphClient`` is built per batch and shared by every tenant
worker.  ``httpx.Client`` is thread-safe and its connection pool is
capped by ``max_connections``, so a stalled tenant cannot exhaust the
sockets the rest of the batch needs.  Bounded connect and read timeouts
make a hung upstream surface as ``UpstreamFetchError`` instead of
blocking a worker forever.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from snapshot_export.core.exceptions import UpstreamFetchError

if TYPE_CHECKING:
    from types import TracebackType

    from snapshot_export.core.config import ExportConfig

logger = logging.getLogger("snapshot_export.clients.graph")

CLIENT_NAME = "snapshot-export-admin"
ADMIN_SECRET_HEADER = "x-hasura-admin-secret"


class GraphClient:
    """Admin-authenticated GraphQL client.

    Args:
        url: GraphQL endpoint URL.
        admin_secret: Value sent in the ``x-hasura-admin-secret`` header.
        timeout_seconds: Read/write/pool timeout per request.
        connect_timeout_seconds: TCP/TLS connect timeout.
        max_connections: Upper bound on open connections.
        transport: Optional ``httpx`` transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        url: str,
        admin_secret: str,
        *,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
        max_connections: int = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            headers={
                ADMIN_SECRET_HEADER: admin_secret,
                "X-Hasura-Client-Name": CLIENT_NAME,
            },
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: ExportConfig) -> GraphClient:
        """Build a client from ``GRAPHQL_URL`` / ``HASURA_ADMIN_SECRET``.

        Raises:
            ConfigValidationError: If either value is not configured.
        """
        return cls(
            config.require("graphql_url"),
            config.require("graphql_admin_secret"),
            timeout_seconds=config.http_timeout_seconds,
            connect_timeout_seconds=config.http_connect_timeout_seconds,
            max_connections=config.http_max_connections,
        )

    def query(self, document: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute *document* and return its ``data`` object.

        Raises:
            UpstreamFetchError: On transport failure, non-2xx status, a
                non-JSON body, GraphQL ``errors``, or a missing ``data``
                object.  No partial result is ever returned.
        """
        try:
            response = self._client.post(
                self._url,
                json={"query": document, "variables": variables or {}},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            msg = f"Graph query failed with HTTP {exc.response.status_code}"
            raise UpstreamFetchError(msg, code="GRAPH_HTTP_ERROR") from exc
        except httpx.HTTPError as exc:
            logger.error("Graph fetch error | url=%s | error=%s", self._url, exc)
            msg = f"Graph query transport error: {exc}"
            raise UpstreamFetchError(msg, code="GRAPH_TRANSPORT_ERROR") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            msg = "Graph response is not valid JSON"
            raise UpstreamFetchError(msg, code="GRAPH_INVALID_RESPONSE") from exc

        if not isinstance(payload, dict):
            msg = f"Graph response must be an object, got {type(payload).__name__}"
            raise UpstreamFetchError(msg, code="GRAPH_INVALID_RESPONSE")

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else errors
            detail = first.get("message", first) if isinstance(first, dict) else first
            msg = f"Graph query returned errors: {detail}"
            raise UpstreamFetchError(msg, code="GRAPH_QUERY_ERRORS")

        data = payload.get("data")
        if not isinstance(data, dict):
            msg = "Graph response has no data object"
            raise UpstreamFetchError(msg, code="GRAPH_INVALID_RESPONSE")
        return data

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GraphClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
