"""Feature-graph fetch activity.

One composite GraphQL request per community returns every area, outing,
point of interest and trail owned by its organizations, with nested
image, super-categories, stewardships, tags and outing areas.  Errors
from the graph client are not caught here: a failed fetch never yields
a partial graph.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from snapshot_export.clients.queries import COMMUNITIES_QUERY, FEATURE_INDEX_QUERY
from snapshot_export.core.constants import DEFAULT_SINCE
from snapshot_export.core.exceptions import UpstreamFetchError
from snapshot_export.models.features import FeatureGraph

if TYPE_CHECKING:
    from snapshot_export.clients.graph import GraphClient

logger = logging.getLogger("snapshot_export.activities.fetch_features")


def list_tenants(graph_client: GraphClient) -> list[int]:
    """Return the ids of every community.

    Raises:
        UpstreamFetchError: If the query fails or returns no
            ``communities`` field.
    """
    data = graph_client.query(COMMUNITIES_QUERY)
    communities = data.get("communities")
    if not isinstance(communities, list):
        msg = "No communities data found"
        raise UpstreamFetchError(msg, code="NO_COMMUNITIES")
    tenant_ids = [int(c["id"]) for c in communities if isinstance(c, dict) and c.get("id") is not None]
    logger.info("Tenants listed | count=%d", len(tenant_ids))
    return tenant_ids


def fetch_feature_graph(
    graph_client: GraphClient,
    tenant_id: int,
    *,
    since: str = DEFAULT_SINCE,
) -> FeatureGraph:
    """Fetch all features of one community.

    Args:
        graph_client: Shared graph client.
        tenant_id: Community id.
        since: Lower bound on ``updated_at``; the pipeline always passes
            the epoch default so every cycle is a full rebuild.

    Raises:
        UpstreamFetchError: On any upstream failure.
    """
    data = graph_client.query(FEATURE_INDEX_QUERY, {"communityId": tenant_id, "since": since})
    graph = FeatureGraph.from_dict(data)
    logger.info(
        "Features fetched | tenant=%s | areas=%d | trails=%d | points_of_interest=%d | outings=%d",
        tenant_id,
        len(graph.areas),
        len(graph.trails),
        len(graph.points_of_interest),
        len(graph.outings),
    )
    return graph
