"""Row normalization activity.

Flattens the nested feature-graph records of one community into
``features`` rows and association rows with a fixed column order per
kind (see ``models.schema.FEATURE_COLUMNS``).

Geometry rules:
- Bounding boxes come from the exterior ring of the extent polygon
  (vertices are ``[lon, lat]``).  An absent or empty ring yields
  ``(0.0, 0.0, 0.0, 0.0)``; a NaN component becomes ``0.0``.
- Representative points are the first coordinate pair.  An absent point
  is ``None`` (NULL in the snapshot), never ``(0, 0)``.
- Coordinates are rounded to 6 decimals.

Values are returned raw.  The builder binds them as statement
parameters, so names containing quotes or backslashes are stored
verbatim.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from functools import singledispatch
from typing import TYPE_CHECKING, Any

from shapely.geometry import shape

from snapshot_export.core.constants import VISIBILITY_CODES, FeatureKind, Visibility
from snapshot_export.models.features import (
    AreaNode,
    FeatureGraph,
    NormalizedFeature,
    NormalizedGraph,
    OutingNode,
    PointOfInterestNode,
    TrailNode,
)

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Sequence

    from snapshot_export.models.features import Coordinate, FeatureNode, Ring

logger = logging.getLogger("snapshot_export.activities.normalize")

COORDINATE_PRECISION = 6
ROUTE_LENGTH_PRECISION = 1

Bbox = tuple[float, float, float, float]
EMPTY_BBOX: Bbox = (0.0, 0.0, 0.0, 0.0)


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def _round_coordinate(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return round(value, COORDINATE_PRECISION)


def compute_bbox(ring: Ring | None) -> Bbox:
    """Compute ``(max_lat, max_lon, min_lat, min_lon)`` of an exterior ring.

    Args:
        ring: Sequence of ``[lon, lat]`` vertices, or ``None``.

    Returns:
        The rounded bounding box, or ``EMPTY_BBOX`` for an absent or
        empty ring.
    """
    if not ring:
        return EMPTY_BBOX
    lons = [v[0] for v in ring]
    lats = [v[1] for v in ring]
    return (
        _round_coordinate(_extreme(lats, max)),
        _round_coordinate(_extreme(lons, max)),
        _round_coordinate(_extreme(lats, min)),
        _round_coordinate(_extreme(lons, min)),
    )


def _extreme(values: list[float], pick: Any) -> float:
    # A single NaN poisons the whole component.
    if any(math.isnan(v) for v in values):
        return math.nan
    return float(pick(values))


def representative_point(coordinates: Coordinate | Sequence[float] | None) -> tuple[float, float] | None:
    """Return ``(lat, lon)`` of a ``[lon, lat]`` pair rounded to 6 decimals."""
    if coordinates is None or len(coordinates) < 2:
        return None
    return (_round_coordinate(float(coordinates[1])), _round_coordinate(float(coordinates[0])))


def location_point(geometry: dict[str, Any] | None) -> tuple[float, float] | None:
    """Return ``(lat, lon)`` of a Point, or of the first point of a MultiPoint."""
    if not geometry or not geometry.get("coordinates"):
        return None
    try:
        geom = shape(geometry)
    except (ValueError, TypeError, AttributeError, IndexError) as exc:
        logger.warning("Unreadable location geometry | type=%s | error=%s", geometry.get("type"), exc)
        return None
    if geom.is_empty:
        return None
    if geom.geom_type == "MultiPoint":
        geom = geom.geoms[0]
    if geom.geom_type != "Point":
        return None
    return (_round_coordinate(geom.y), _round_coordinate(geom.x))


def visibility_code(label: str | None) -> int:
    """Map a source visibility label to its code; unknown labels are Draft."""
    return VISIBILITY_CODES.get(label or "", int(Visibility.DRAFT))


# ---------------------------------------------------------------------------
# Association rows
# ---------------------------------------------------------------------------


def _unique(rows: Iterable[tuple[Hashable, ...]]) -> list[tuple[Any, ...]] | None:
    """Deduplicate preserving first-seen order; ``None`` when empty."""
    seen: dict[tuple[Hashable, ...], None] = dict.fromkeys(rows)
    return list(seen) or None


def _associations(kind: FeatureKind, node: FeatureNode) -> dict[str, list[tuple[Any, ...]] | None]:
    code = int(kind)
    return {
        "super_categories": _unique((code, node.id, sc_id) for sc_id in node.super_category_ids),
        "stewardships": _unique(
            (code, node.id, s.organization_id, s.role) for s in node.stewardships
        ),
        "tags": _unique((code, node.id, key) for key in node.tag_keys),
    }


def _image(node: FeatureNode) -> tuple[str | None, int | None]:
    if node.image is None:
        return (None, None)
    return (node.image.file, node.image.id)


# ---------------------------------------------------------------------------
# Per-kind normalization
# ---------------------------------------------------------------------------


@singledispatch
def normalize(node: object) -> NormalizedFeature:
    """Normalize one source node into a ``features`` row plus associations."""
    msg = f"Cannot normalize {type(node).__name__}"
    raise TypeError(msg)


@normalize.register
def _(node: AreaNode) -> NormalizedFeature:
    image_file, image_id = _image(node)
    point = representative_point(node.centroid)
    lat, lon = point if point is not None else (None, None)
    values = (
        node.id,
        node.name,
        node.organization_id,
        image_file,
        image_id,
        int(FeatureKind.AREA),
        node.closed,
        *compute_bbox(node.extent),
        lat,
        lon,
        visibility_code(node.visibility),
        node.size_meters or 0,
    )
    return NormalizedFeature(FeatureKind.AREA, values, **_associations(FeatureKind.AREA, node))


@normalize.register
def _(node: TrailNode) -> NormalizedFeature:
    image_file, image_id = _image(node)
    point = representative_point(node.start)
    lat, lon = point if point is not None else (None, None)
    values = (
        node.id,
        node.name,
        node.organization_id,
        image_file,
        image_id,
        int(FeatureKind.TRAIL),
        node.area_id,
        node.closed,
        *compute_bbox(node.extent),
        lat,
        lon,
        visibility_code(node.visibility),
        node.cached_length or 0,
    )
    return NormalizedFeature(FeatureKind.TRAIL, values, **_associations(FeatureKind.TRAIL, node))


@normalize.register
def _(node: PointOfInterestNode) -> NormalizedFeature:
    image_file, image_id = _image(node)
    point = location_point(node.location)
    lat, lon = point if point is not None else (None, None)
    values = (
        node.id,
        node.name,
        node.organization_id,
        image_file,
        image_id,
        int(FeatureKind.POINT_OF_INTEREST),
        node.closed,
        node.area_id,
        lat,
        lon,
        node.poi_type_id,
        visibility_code(node.visibility),
    )
    return NormalizedFeature(
        FeatureKind.POINT_OF_INTEREST,
        values,
        **_associations(FeatureKind.POINT_OF_INTEREST, node),
    )


@normalize.register
def _(node: OutingNode) -> NormalizedFeature:
    image_file, image_id = _image(node)
    if node.extent:
        bbox = compute_bbox(node.extent)
        point = representative_point(node.start)
    else:
        bbox, point = EMPTY_BBOX, None
    lat, lon = point if point is not None else (None, None)
    length = node.route_length_meters
    values = (
        node.id,
        node.name,
        node.organization_id,
        image_file,
        image_id,
        int(FeatureKind.OUTING),
        visibility_code(node.visibility),
        *bbox,
        lat,
        lon,
        node.closed,
        node.difficulty,
        node.route_type,
        node.display_length,
        round(length, ROUTE_LENGTH_PRECISION) if length else 0,
    )
    # Outing links are stored against the Area: (1, area_id, outing_id).
    outings = _unique(
        (int(FeatureKind.AREA), link.area_id, link.outing_id) for link in node.outing_areas
    )
    return NormalizedFeature(
        FeatureKind.OUTING,
        values,
        outings=outings,
        **_associations(FeatureKind.OUTING, node),
    )


# ---------------------------------------------------------------------------
# Whole graph
# ---------------------------------------------------------------------------


def dedupe_areas(nodes: Iterable[AreaNode]) -> tuple[AreaNode, ...]:
    """Keep the first node per area id.

    An area shared by several organizations of one community appears
    once per organization in the graph response.
    """
    first: dict[int, AreaNode] = {}
    for node in nodes:
        first.setdefault(node.id, node)
    return tuple(first.values())


def normalize_graph(graph: FeatureGraph) -> NormalizedGraph:
    """Normalize every feature of one community."""
    areas = dedupe_areas(graph.areas)
    if len(areas) != len(graph.areas):
        logger.debug(
            "Duplicate areas dropped | received=%d | kept=%d",
            len(graph.areas),
            len(areas),
        )
    area_ids = {node.id for node in areas}
    return NormalizedGraph(
        areas=tuple(normalize(n) for n in areas),
        trails=tuple(normalize(n) for n in graph.trails),
        points_of_interest=tuple(normalize(n) for n in graph.points_of_interest),
        outings=tuple(drop_foreign_outing_links(normalize(n), area_ids) for n in graph.outings),
    )


def drop_foreign_outing_links(feature: NormalizedFeature, area_ids: set[int]) -> NormalizedFeature:
    """Remove outing links whose area is not part of the snapshot."""
    if not feature.outings:
        return feature
    kept = [row for row in feature.outings if row[1] in area_ids]
    if len(kept) == len(feature.outings):
        return feature
    logger.debug(
        "Outing links to unknown areas dropped | outing=%s | dropped=%d",
        feature.values[0],
        len(feature.outings) - len(kept),
    )
    return replace(feature, outings=kept or None)
