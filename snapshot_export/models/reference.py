"""Reference data copied verbatim into every snapshot.

``ReferenceData`` is tenant-independent and loaded once per batch;
``TenantReferenceData`` is scoped to the organizations of one community.
Rows are kept as tuples in the target table's column order so the
builder can hand them straight to ``executemany``.

Both types round-trip through ``to_dict`` / ``from_dict`` so they can be
passed between Durable Functions activities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

Row = tuple[Any, ...]

POI_TYPE_COLUMNS: tuple[str, ...] = ("id", "name")
SUPER_CATEGORY_COLUMNS: tuple[str, ...] = ("id", "name")
TAG_DESCRIPTOR_COLUMNS: tuple[str, ...] = (
    "id",
    "feature_type",
    "key",
    "name",
    "category",
    "super_category_id",
)
ORGANIZATION_COLUMNS: tuple[str, ...] = ("id", "image_file", "image_id", "name")
NAMED_ROW_COLUMNS: tuple[str, ...] = ("id", "name")


def rows_from_records(
    records: Iterable[Mapping[str, Any]],
    columns: Sequence[str],
) -> tuple[Row, ...]:
    """Project query records onto *columns*; missing keys become ``None``."""
    return tuple(tuple(record.get(column) for column in columns) for record in records)


def _rows(data: Mapping[str, Any], key: str) -> tuple[Row, ...]:
    raw = data.get(key) or []
    if not isinstance(raw, list):
        msg = f"{key} must be a list, got {type(raw).__name__}"
        raise TypeError(msg)
    return tuple(tuple(row) for row in raw)


@dataclass(frozen=True, slots=True)
class ReferenceData:
    """Tenant-independent lookup rows.

    Attributes:
        poi_types: ``(id, name)`` rows.
        super_categories: ``(id, name)`` rows of grouped tag categories.
        tag_descriptors: ``(id, feature_type, key, name, category,
            super_category_id)`` rows.
    """

    poi_types: tuple[Row, ...] = ()
    super_categories: tuple[Row, ...] = ()
    tag_descriptors: tuple[Row, ...] = ()

    def to_dict(self) -> dict[str, object]:
        """Serialise to a dict for Durable Functions activity input."""
        return {
            "poi_types": [list(r) for r in self.poi_types],
            "super_categories": [list(r) for r in self.super_categories],
            "tag_descriptors": [list(r) for r in self.tag_descriptors],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReferenceData:
        """Deserialise from a Durable Functions dict payload.

        Raises:
            TypeError: If a row collection is not a list.
        """
        return cls(
            poi_types=_rows(data, "poi_types"),
            super_categories=_rows(data, "super_categories"),
            tag_descriptors=_rows(data, "tag_descriptors"),
        )


@dataclass(frozen=True, slots=True)
class TenantReferenceData:
    """Lookup rows scoped to one community's member organizations."""

    organizations: tuple[Row, ...] = ()
    articles: tuple[Row, ...] = ()
    challenges: tuple[Row, ...] = ()
    events: tuple[Row, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "organizations": [list(r) for r in self.organizations],
            "articles": [list(r) for r in self.articles],
            "challenges": [list(r) for r in self.challenges],
            "events": [list(r) for r in self.events],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TenantReferenceData:
        return cls(
            organizations=_rows(data, "organizations"),
            articles=_rows(data, "articles"),
            challenges=_rows(data, "challenges"),
            events=_rows(data, "events"),
        )
