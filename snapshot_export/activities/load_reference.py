"""Reference-data loader activity.

``load_reference_data`` reads the tenant-independent lookup tables once
per batch; ``load_tenant_reference`` reads the rows scoped to one
community's member organizations.  Failures propagate as
``UpstreamFetchError`` from the relational source.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from snapshot_export.models.reference import (
    NAMED_ROW_COLUMNS,
    ORGANIZATION_COLUMNS,
    POI_TYPE_COLUMNS,
    SUPER_CATEGORY_COLUMNS,
    TAG_DESCRIPTOR_COLUMNS,
    ReferenceData,
    TenantReferenceData,
    rows_from_records,
)

if TYPE_CHECKING:
    from snapshot_export.clients.relational import ReferenceSource

logger = logging.getLogger("snapshot_export.activities.load_reference")


def load_reference_data(source: ReferenceSource) -> ReferenceData:
    """Load POI types, grouped super-categories and tag descriptors."""
    reference = ReferenceData(
        poi_types=rows_from_records(source.poi_types(), POI_TYPE_COLUMNS),
        super_categories=rows_from_records(source.super_categories(), SUPER_CATEGORY_COLUMNS),
        tag_descriptors=rows_from_records(source.tag_descriptors(), TAG_DESCRIPTOR_COLUMNS),
    )
    logger.info(
        "Reference data loaded | poi_types=%d | super_categories=%d | tag_descriptors=%d",
        len(reference.poi_types),
        len(reference.super_categories),
        len(reference.tag_descriptors),
    )
    return reference


def load_tenant_reference(source: ReferenceSource, tenant_id: int) -> TenantReferenceData:
    """Load organizations, published articles, challenges and future events of a community."""
    tenant_reference = TenantReferenceData(
        organizations=rows_from_records(source.organizations(tenant_id), ORGANIZATION_COLUMNS),
        articles=rows_from_records(source.articles(tenant_id), NAMED_ROW_COLUMNS),
        challenges=rows_from_records(source.challenges(tenant_id), NAMED_ROW_COLUMNS),
        events=rows_from_records(source.events(tenant_id), NAMED_ROW_COLUMNS),
    )
    logger.info(
        "Tenant reference loaded | tenant=%s | organizations=%d | articles=%d | challenges=%d | events=%d",
        tenant_id,
        len(tenant_reference.organizations),
        len(tenant_reference.articles),
        len(tenant_reference.challenges),
        len(tenant_reference.events),
    )
    return tenant_reference
