"""Data models for feature-graph records and their normalized rows.

Source side: one frozen dataclass per feature kind (``AreaNode``,
``TrailNode``, ``PointOfInterestNode``, ``OutingNode``), each built with
``from_dict`` from a ``{"organization_id": ..., "feature": {...}}`` node
of the composite graph response.  ``FeatureGraph`` groups the four
collections for one tenant.

Output side: ``NormalizedFeature`` carries one ``features`` row plus its
association rows; ``NormalizedGraph`` groups them per kind in insertion
order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from snapshot_export.core.constants import FeatureKind

if TYPE_CHECKING:
    from collections.abc import Iterator

Coordinate = tuple[float, ...]
"""A ``[lon, lat]`` (optionally ``[lon, lat, alt]``) position."""

Ring = tuple[Coordinate, ...]


# ---------------------------------------------------------------------------
# Nested value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ImageRef:
    """Primary image of a feature (first attachment by position)."""

    id: int | None = None
    file: str | None = None

    @classmethod
    def from_dict(cls, data: object) -> ImageRef | None:
        if not isinstance(data, dict):
            return None
        return cls(id=_optional_int(data.get("id")), file=_optional_str(data.get("uploaded_file")))


@dataclass(frozen=True, slots=True)
class Stewardship:
    role: str | None
    organization_id: int | None


@dataclass(frozen=True, slots=True)
class OutingAreaLink:
    outing_id: int | None
    area_id: int | None


# ---------------------------------------------------------------------------
# Source nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FeatureNode:
    """Attributes shared by every feature kind.

    Attributes:
        organization_id: Owning organization.
        id: Kind-scoped feature id.
        name: Display name.
        image: Primary image, if any.
        closed: Closure status string, ``None`` when open.
        visibility: Source visibility label (``"Published"``, ...).
        super_category_ids: Super-category memberships, source order.
        stewardships: Stewardship roles, source order.
        tag_keys: Keys of tags whose value is ``"yes"``.
    """

    organization_id: int | None = None
    id: int = 0
    name: str | None = None
    image: ImageRef | None = None
    closed: str | None = None
    visibility: str | None = None
    super_category_ids: tuple[int, ...] = ()
    stewardships: tuple[Stewardship, ...] = ()
    tag_keys: tuple[str, ...] = ()

    @staticmethod
    def _common(node: dict[str, Any], feature: dict[str, Any]) -> dict[str, Any]:
        return {
            "organization_id": _optional_int(node.get("organization_id")),
            "id": int(feature.get("id") or 0),
            "name": _optional_str(feature.get("name")),
            "closed": _closed_status(feature.get("closed")),
            "visibility": _optional_str(feature.get("visibility")),
            "super_category_ids": tuple(
                int(item["id"])
                for item in _list(feature.get("super_categories"))
                if isinstance(item, dict) and item.get("id") is not None
            ),
            "stewardships": tuple(
                Stewardship(
                    role=_optional_str(item.get("role")),
                    organization_id=_optional_int(item.get("organization_id")),
                )
                for item in _list(feature.get("stewardships"))
                if isinstance(item, dict)
            ),
            "tag_keys": tuple(
                str(item["key"])
                for item in _list(feature.get("tags"))
                if isinstance(item, dict) and item.get("key") is not None
            ),
        }


@dataclass(frozen=True, slots=True)
class AreaNode(FeatureNode):
    centroid: Coordinate | None = None
    extent: Ring | None = None
    size_meters: float | None = None

    @classmethod
    def from_dict(cls, node: dict[str, Any]) -> AreaNode:
        feature = _feature(node)
        return cls(
            **cls._common(node, feature),
            image=_first_attachment(feature),
            centroid=_point(_geometry(feature.get("centroid"))),
            extent=_first_ring(_geometry(feature.get("extent"))),
            size_meters=_optional_float(_dict(feature.get("size")).get("meters")),
        )


@dataclass(frozen=True, slots=True)
class TrailNode(FeatureNode):
    area_id: int | None = None
    start: Coordinate | None = None
    extent: Ring | None = None
    cached_length: float | None = None

    @classmethod
    def from_dict(cls, node: dict[str, Any]) -> TrailNode:
        feature = _feature(node)
        # Trail extents come back as a bare geometry, not wrapped.
        return cls(
            **cls._common(node, feature),
            image=_first_attachment(feature),
            area_id=_optional_int(feature.get("area_id")),
            start=_point(_geometry(feature.get("start"))),
            extent=_first_ring(feature.get("extent")),
            cached_length=_optional_float(feature.get("cached_length")),
        )


@dataclass(frozen=True, slots=True)
class PointOfInterestNode(FeatureNode):
    area_id: int | None = None
    location: dict[str, Any] | None = None
    poi_type_id: int | None = None

    @classmethod
    def from_dict(cls, node: dict[str, Any]) -> PointOfInterestNode:
        feature = _feature(node)
        location = _geometry(feature.get("location"))
        return cls(
            **cls._common(node, feature),
            image=_first_attachment(feature),
            area_id=_optional_int(feature.get("area_id")),
            location=location if isinstance(location, dict) else None,
            poi_type_id=_optional_int(feature.get("point_of_interest_type_id")),
        )


@dataclass(frozen=True, slots=True)
class OutingNode(FeatureNode):
    start: Coordinate | None = None
    extent: Ring | None = None
    difficulty: str | None = None
    route_type: str | None = None
    display_length: str | None = None
    route_length_meters: float | None = None
    outing_areas: tuple[OutingAreaLink, ...] = ()

    @classmethod
    def from_dict(cls, node: dict[str, Any]) -> OutingNode:
        feature = _feature(node)
        return cls(
            **cls._common(node, feature),
            image=ImageRef.from_dict(feature.get("featured_image")),
            start=_point(_geometry(feature.get("start"))),
            extent=_first_ring(_geometry(feature.get("extent"))),
            difficulty=_optional_str(feature.get("difficulty")),
            route_type=_optional_str(feature.get("route_type")),
            display_length=_optional_str(feature.get("display_length")),
            route_length_meters=_optional_float(_dict(feature.get("route")).get("length_meters")),
            outing_areas=tuple(
                OutingAreaLink(
                    outing_id=_optional_int(item.get("outing_id")),
                    area_id=_optional_int(item.get("area_id")),
                )
                for item in _list(feature.get("outing_areas"))
                if isinstance(item, dict)
            ),
        )


@dataclass(frozen=True, slots=True)
class FeatureGraph:
    """All features of one tenant, as returned by the composite query."""

    areas: tuple[AreaNode, ...] = ()
    trails: tuple[TrailNode, ...] = ()
    points_of_interest: tuple[PointOfInterestNode, ...] = ()
    outings: tuple[OutingNode, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureGraph:
        """Build from the ``data`` object of the feature query.

        A missing or ``null`` collection becomes an empty tuple.
        """
        return cls(
            areas=tuple(AreaNode.from_dict(n) for n in _nodes(data, "areas")),
            trails=tuple(TrailNode.from_dict(n) for n in _nodes(data, "trails")),
            points_of_interest=tuple(
                PointOfInterestNode.from_dict(n) for n in _nodes(data, "points_of_interest")
            ),
            outings=tuple(OutingNode.from_dict(n) for n in _nodes(data, "outings")),
        )

    @property
    def feature_count(self) -> int:
        return len(self.areas) + len(self.trails) + len(self.points_of_interest) + len(self.outings)


# ---------------------------------------------------------------------------
# Normalized output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NormalizedFeature:
    """One ``features`` row plus its association rows.

    Attributes:
        kind: Feature kind code.
        values: Row values in the kind's ``features`` column order.
        super_categories: ``(feature_type, feature_id, super_category_id)``
            rows, or ``None`` when there are none.
        stewardships: ``(feature_type, feature_id, organization_id, role)``
            rows, or ``None``.
        tags: ``(feature_type, feature_id, key)`` rows, or ``None``.
        outings: ``(feature_type, feature_id, outing_id)`` rows (Outings
            only), or ``None``.
    """

    kind: FeatureKind
    values: tuple[Any, ...]
    super_categories: list[tuple[Any, ...]] | None = None
    stewardships: list[tuple[Any, ...]] | None = None
    tags: list[tuple[Any, ...]] | None = None
    outings: list[tuple[Any, ...]] | None = None


@dataclass(frozen=True, slots=True)
class NormalizedGraph:
    """Normalized rows of one tenant, grouped by kind."""

    areas: tuple[NormalizedFeature, ...] = ()
    trails: tuple[NormalizedFeature, ...] = ()
    points_of_interest: tuple[NormalizedFeature, ...] = ()
    outings: tuple[NormalizedFeature, ...] = ()

    def by_kind(self) -> Iterator[tuple[FeatureKind, tuple[NormalizedFeature, ...]]]:
        """Yield ``(kind, rows)`` in snapshot insertion order."""
        yield FeatureKind.AREA, self.areas
        yield FeatureKind.OUTING, self.outings
        yield FeatureKind.POINT_OF_INTEREST, self.points_of_interest
        yield FeatureKind.TRAIL, self.trails


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _dict(value: object) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: object) -> list[Any]:
    return value if isinstance(value, list) else []


def _feature(node: dict[str, Any]) -> dict[str, Any]:
    return _dict(node.get("feature"))


def _nodes(data: dict[str, Any], collection: str) -> list[dict[str, Any]]:
    return [n for n in _list(_dict(data.get(collection)).get("nodes")) if isinstance(n, dict)]


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _optional_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _closed_status(value: object) -> str | None:
    if not isinstance(value, dict):
        return None
    status = value.get("status")
    return str(status) if status else None


def _first_attachment(feature: dict[str, Any]) -> ImageRef | None:
    attachments = _list(feature.get("image_attachments"))
    if not attachments or not isinstance(attachments[0], dict):
        return None
    return ImageRef.from_dict(attachments[0].get("image"))


def _geometry(wrapper: object) -> dict[str, Any] | None:
    """Unwrap ``{"geometry": {...}}``; ``None`` when absent."""
    geometry = _dict(wrapper).get("geometry")
    return geometry if isinstance(geometry, dict) else None


def _point(geometry: dict[str, Any] | None) -> Coordinate | None:
    coordinates = _dict(geometry).get("coordinates")
    if not isinstance(coordinates, list) or len(coordinates) < 2:
        return None
    if isinstance(coordinates[0], list):
        return None
    try:
        return tuple(float(c) for c in coordinates)
    except (TypeError, ValueError):
        return None


def _first_ring(geometry: object) -> Ring | None:
    """Return the exterior ring of a polygon geometry, or ``None``."""
    coordinates = _dict(geometry).get("coordinates")
    if not isinstance(coordinates, list) or not coordinates:
        return None
    ring = coordinates[0]
    if not isinstance(ring, list):
        return None
    vertices: list[Coordinate] = []
    for vertex in ring:
        if not isinstance(vertex, list) or len(vertex) < 2:
            continue
        try:
            vertices.append(tuple(float(c) for c in vertex))
        except (TypeError, ValueError):
            continue
    return tuple(vertices)
