"""Tests for the GraphQL client using ``httpx.MockTransport``."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from snapshot_export.clients.graph import ADMIN_SECRET_HEADER, GraphClient
from snapshot_export.core.config import ConfigValidationError, ExportConfig
from snapshot_export.core.exceptions import UpstreamFetchError

_URL = "https://graph.example.test/v1/graphql"


def _client(handler: Any) -> GraphClient:
    return GraphClient(_URL, "graph-secret", transport=httpx.MockTransport(handler))


class TestQuery:
    def test_returns_data_object(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"communities": [{"id": 1}]}})

        with _client(handler) as client:
            data = client.query("query { communities { id } }", {"since": "2000-01-01"})

        assert data == {"communities": [{"id": 1}]}
        body = json.loads(seen[0].content)
        assert body["variables"] == {"since": "2000-01-01"}
        assert seen[0].headers[ADMIN_SECRET_HEADER] == "graph-secret"
        assert str(seen[0].url) == _URL

    def test_variables_default_to_empty(self) -> None:
        seen: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {}})

        with _client(handler) as client:
            client.query("query { x }")
        assert seen[0]["variables"] == {}

    def test_http_error(self) -> None:
        with _client(lambda _: httpx.Response(503)) as client, pytest.raises(UpstreamFetchError) as exc_info:
            client.query("query { x }")
        assert exc_info.value.code == "GRAPH_HTTP_ERROR"
        assert exc_info.value.retryable is True

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with _client(handler) as client, pytest.raises(UpstreamFetchError) as exc_info:
            client.query("query { x }")
        assert exc_info.value.code == "GRAPH_TRANSPORT_ERROR"

    def test_graphql_errors(self) -> None:
        payload = {"errors": [{"message": "field 'nope' not found"}], "data": None}
        with _client(lambda _: httpx.Response(200, json=payload)) as client, pytest.raises(
            UpstreamFetchError, match="field 'nope' not found"
        ) as exc_info:
            client.query("query { nope }")
        assert exc_info.value.code == "GRAPH_QUERY_ERRORS"

    def test_partial_data_with_errors_rejected(self) -> None:
        payload = {"errors": [{"message": "boom"}], "data": {"areas": {"nodes": []}}}
        with _client(lambda _: httpx.Response(200, json=payload)) as client, pytest.raises(
            UpstreamFetchError
        ):
            client.query("query { areas { nodes { id } } }")

    def test_non_json_body(self) -> None:
        with _client(lambda _: httpx.Response(200, content=b"<html>")) as client, pytest.raises(
            UpstreamFetchError
        ) as exc_info:
            client.query("query { x }")
        assert exc_info.value.code == "GRAPH_INVALID_RESPONSE"

    def test_missing_data(self) -> None:
        with _client(lambda _: httpx.Response(200, json={})) as client, pytest.raises(
            UpstreamFetchError, match="no data"
        ):
            client.query("query { x }")


class TestFromConfig:
    def test_requires_url_and_secret(self) -> None:
        with pytest.raises(ConfigValidationError, match="GRAPHQL_URL"):
            GraphClient.from_config(ExportConfig())

    def test_builds_from_config(self) -> None:
        config = ExportConfig(graphql_url=_URL, graphql_admin_secret="s")
        client = GraphClient.from_config(config)
        client.close()
