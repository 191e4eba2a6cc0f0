"""Shared pytest fixtures for the snapshot export test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from snapshot_export.core.config import ExportConfig
from snapshot_export.models.reference import ReferenceData, TenantReferenceData

# ---------------------------------------------------------------------------
# Graph payload builders
# ---------------------------------------------------------------------------

SQUARE_RING = [
    [-122.5, 37.7],
    [-122.4, 37.7],
    [-122.4, 37.8],
    [-122.5, 37.8],
    [-122.5, 37.7],
]


def _shared(
    *,
    feature_id: int,
    name: str,
    visibility: str,
    super_categories: list[int],
    stewardships: list[tuple[str, int]],
    tags: list[str],
) -> dict[str, Any]:
    return {
        "id": feature_id,
        "name": name,
        "visibility": visibility,
        "closed": None,
        "super_categories": [{"id": sc} for sc in super_categories],
        "stewardships": [{"role": role, "organization_id": org} for role, org in stewardships],
        "tags": [{"key": key} for key in tags],
    }


def _attachments(image: tuple[int, str] | None) -> list[dict[str, Any]]:
    if image is None:
        return []
    return [{"image": {"id": image[0], "uploaded_file": image[1]}}]


def area_node(
    feature_id: int = 10,
    *,
    organization_id: int = 7,
    name: str = "Ridge Park",
    visibility: str = "Published",
    ring: list[list[float]] | None = SQUARE_RING,
    centroid: list[float] | None = None,
    size_meters: float | None = 120_000.0,
    image: tuple[int, str] | None = (501, "ridge.jpg"),
    super_categories: list[int] | None = None,
    stewardships: list[tuple[str, int]] | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    feature = _shared(
        feature_id=feature_id,
        name=name,
        visibility=visibility,
        super_categories=super_categories if super_categories is not None else [3],
        stewardships=stewardships if stewardships is not None else [("owner", organization_id)],
        tags=tags if tags is not None else ["dogs_allowed"],
    )
    feature.update(
        {
            "image_attachments": _attachments(image),
            "centroid": {"geometry": {"type": "Point", "coordinates": centroid or [-122.45, 37.75]}},
            "extent": {"geometry": {"type": "Polygon", "coordinates": [ring]} if ring is not None else None},
            "size": {"meters": size_meters},
        }
    )
    return {"organization_id": organization_id, "feature": feature}


def trail_node(
    feature_id: int = 20,
    *,
    organization_id: int = 7,
    area_id: int | None = 10,
    name: str = "Summit Loop",
    visibility: str = "Published",
    ring: list[list[float]] | None = SQUARE_RING,
    start: list[float] | None = None,
    cached_length: float | None = 4200.0,
) -> dict[str, Any]:
    feature = _shared(
        feature_id=feature_id,
        name=name,
        visibility=visibility,
        super_categories=[],
        stewardships=[],
        tags=[],
    )
    feature.update(
        {
            "area_id": area_id,
            "image_attachments": [],
            "start": {"geometry": {"type": "Point", "coordinates": start or [-122.45, 37.71]}},
            "extent": {"type": "Polygon", "coordinates": [ring]} if ring is not None else None,
            "cached_length": cached_length,
        }
    )
    return {"organization_id": organization_id, "feature": feature}


def poi_node(
    feature_id: int = 30,
    *,
    organization_id: int = 7,
    area_id: int | None = 10,
    name: str = "Trailhead Kiosk",
    visibility: str = "Draft",
    location: dict[str, Any] | None = None,
    poi_type_id: int | None = 2,
) -> dict[str, Any]:
    feature = _shared(
        feature_id=feature_id,
        name=name,
        visibility=visibility,
        super_categories=[],
        stewardships=[],
        tags=["restroom"],
    )
    feature.update(
        {
            "area_id": area_id,
            "image_attachments": [],
            "location": {"geometry": location or {"type": "Point", "coordinates": [-122.41, 37.72]}},
            "point_of_interest_type_id": poi_type_id,
        }
    )
    return {"organization_id": organization_id, "feature": feature}


def outing_node(
    feature_id: int = 40,
    *,
    organization_id: int = 7,
    name: str = "Sunset Walk",
    visibility: str = "Published",
    ring: list[list[float]] | None = SQUARE_RING,
    start: list[float] | None = None,
    route_length: float | None = 1234.56,
    area_ids: list[int] | None = None,
) -> dict[str, Any]:
    feature = _shared(
        feature_id=feature_id,
        name=name,
        visibility=visibility,
        super_categories=[],
        stewardships=[],
        tags=[],
    )
    feature.update(
        {
            "featured_image": {"id": 900, "uploaded_file": "sunset.jpg"},
            "start": {"geometry": {"type": "Point", "coordinates": start or [-122.44, 37.74]}},
            "extent": {"geometry": {"type": "Polygon", "coordinates": [ring] if ring is not None else []}},
            "difficulty": "easy",
            "route_type": "loop",
            "display_length": "1.2 km",
            "route": {"length_meters": route_length},
            "outing_areas": [
                {"outing_id": feature_id, "area_id": area_id} for area_id in (area_ids or [10])
            ],
        }
    )
    return {"organization_id": organization_id, "feature": feature}


def graph_payload(
    *,
    areas: list[dict[str, Any]] | None = None,
    trails: list[dict[str, Any]] | None = None,
    points_of_interest: list[dict[str, Any]] | None = None,
    outings: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "areas": {"nodes": areas or []},
        "trails": {"nodes": trails or []},
        "points_of_interest": {"nodes": points_of_interest or []},
        "outings": {"nodes": outings or []},
    }


@pytest.fixture()
def make_area() -> Any:
    return area_node


@pytest.fixture()
def make_trail() -> Any:
    return trail_node


@pytest.fixture()
def make_poi() -> Any:
    return poi_node


@pytest.fixture()
def make_outing() -> Any:
    return outing_node


@pytest.fixture()
def make_graph_payload() -> Any:
    return graph_payload


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@pytest.fixture()
def reference() -> ReferenceData:
    return ReferenceData(
        poi_types=((1, "Parking"), (2, "Kiosk")),
        super_categories=((3, "Hiking"),),
        tag_descriptors=((11, 1, "dogs_allowed", "Dogs allowed", "Amenities", 3),),
    )


@pytest.fixture()
def tenant_reference() -> TenantReferenceData:
    return TenantReferenceData(
        organizations=((7, "logo.png", 88, "Parks Dept"),),
        articles=((100, "Welcome"),),
        challenges=(),
        events=((300, "Cleanup Day"),),
    )


# ---------------------------------------------------------------------------
# Configuration and clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def export_config(tmp_path: Any) -> ExportConfig:
    return ExportConfig(
        database_url="postgresql://reader@db/app",
        events_database_url="postgresql://reader@db/events",
        graphql_url="https://graph.example.test/v1/graphql",
        graphql_admin_secret="graph-secret",
        storage_connection_string="UseDevelopmentStorage=true",
        work_dir=str(tmp_path / "work"),
        max_concurrency=2,
    )


@pytest.fixture()
def blob_service_client() -> MagicMock:
    """A ``BlobServiceClient`` stand-in whose uploads succeed."""
    service = MagicMock()
    service.get_blob_client.return_value = MagicMock()
    return service
