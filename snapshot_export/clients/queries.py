"""GraphQL documents sent to the federated graph service.

``FEATURE_INDEX_QUERY`` fetches all four feature collections of one
community in a single round trip.  Field aliases give the response the
shape consumed by ``snapshot_export.models.features``.
"""

from __future__ import annotations

COMMUNITIES_QUERY = """
query communities {
  communities {
    id
  }
}
"""

_IMAGE_ATTACHMENT = """
      image_attachments(order_by: { position: asc }, limit: 1, where: { position: { _is_null: false } }) {
        image {
          id
          uploaded_file
        }
      }"""

_SHARED_ASSOCIATIONS = """
      super_categories {
        id
      }
      stewardships {
        role
        organization_id
      }
      tags(where: { value: { _eq: "yes" } }) {
        key
      }"""

FEATURE_INDEX_QUERY = f"""
query CommunityFeaturesIndex($communityId: Int!, $since: timestamp = "2000-01-01") {{
  areas: community_organization_areas_aggregate(
    where: {{ community_id: {{ _eq: $communityId }}, area: {{ updated_at: {{ _gt: $since }} }} }}
  ) {{
    nodes {{
      organization_id
      feature: area {{
        id
        name
        visibility
        closed {{
          status
        }}{_IMAGE_ATTACHMENT}
        centroid {{
          geometry
        }}
        extent {{
          geometry
        }}
        size {{
          meters
        }}{_SHARED_ASSOCIATIONS}
      }}
    }}
  }}
  outings: community_organization_outings_aggregate(
    where: {{
      community_id: {{ _eq: $communityId }}
      outing: {{
        updated_at: {{ _gt: $since }}
        extent: {{ geometry: {{ _is_null: false }} }}
        route: {{ geometry: {{ _is_null: false }} }}
      }}
    }}
  ) {{
    nodes {{
      organization_id
      feature: outing {{
        id
        name
        visibility
        closed {{
          status
        }}
        featured_image {{
          id
          uploaded_file
        }}
        start {{
          geometry
        }}
        extent {{
          geometry
        }}
        difficulty
        route_type
        display_length
        route {{
          length_meters
        }}
        outing_areas {{
          outing_id: attached_id
          area_id: feature_id
        }}{_SHARED_ASSOCIATIONS}
      }}
    }}
  }}
  points_of_interest: community_organization_points_of_interest_aggregate(
    where: {{
      community_id: {{ _eq: $communityId }}
      point_of_interest: {{ updated_at: {{ _gt: $since }} }}
    }}
  ) {{
    nodes {{
      organization_id
      feature: point_of_interest {{
        id
        area_id
        name
        visibility
        closed {{
          status
        }}{_IMAGE_ATTACHMENT}
        location {{
          geometry
        }}
        point_of_interest_type_id{_SHARED_ASSOCIATIONS}
      }}
    }}
  }}
  trails: community_organization_trails_aggregate(
    where: {{ community_id: {{ _eq: $communityId }}, trail: {{ updated_at: {{ _gt: $since }} }} }}
  ) {{
    nodes {{
      organization_id
      feature: trail {{
        id
        area_id
        name
        visibility
        closed {{
          status
        }}{_IMAGE_ATTACHMENT}
        start {{
          geometry
        }}
        extent
        cached_length{_SHARED_ASSOCIATIONS}
      }}
    }}
  }}
}}
"""
