"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- FeatureGraph / *Node: feature records of one community from the graph service
- NormalizedFeature / NormalizedGraph: flat rows ready for the snapshot
- ReferenceData / TenantReferenceData: lookup rows from the relational source
- schema: snapshot table DDL, indexes and column lists
"""

from snapshot_export.models.features import (
    AreaNode,
    FeatureGraph,
    ImageRef,
    NormalizedFeature,
    NormalizedGraph,
    OutingAreaLink,
    OutingNode,
    PointOfInterestNode,
    Stewardship,
    TrailNode,
)
from snapshot_export.models.reference import ReferenceData, TenantReferenceData

__all__ = [
    "AreaNode",
    "FeatureGraph",
    "ImageRef",
    "NormalizedFeature",
    "NormalizedGraph",
    "OutingAreaLink",
    "OutingNode",
    "PointOfInterestNode",
    "ReferenceData",
    "Stewardship",
    "TenantReferenceData",
    "TrailNode",
]
