import cython
from shapely import MultiPolygon, Polygon
from shapely.geometry import mapping

from app.lib.date_utils import format_iso_date
from app.models.boundary import BoundarySelection, ResolvedBoundary


class BoundaryGeoJSONMixin:
    @staticmethod
    def encode_boundaries(boundaries: list[ResolvedBoundary]) -> list[dict]:
        return [_encode_boundary(boundary) for boundary in boundaries]

    @staticmethod
    def encode_selection(selection: BoundarySelection | None) -> dict | None:
        if selection is None:
            return None
        return {
            'city_id': selection.city_id,
            'composite_id': selection.composite_id,
            'selected_at': format_iso_date(selection.selected_at),
            'selected_by': selection.selected_by,
            'is_selected': selection.is_active,
            'boundary': _encode_boundary(selection.boundary),
        }

    @staticmethod
    def encode_feature_collection(boundary: ResolvedBoundary) -> dict:
        """
        Encode the boundary as a GeoJSON FeatureCollection with a single Feature.

        Tags are flattened into the feature properties, next to the boundary summary.
        """
        return {
            'type': 'FeatureCollection',
            'features': [
                {
                    'type': 'Feature',
                    'id': boundary.composite_id,
                    'properties': {
                        **boundary.tags,
                        'composite_id': boundary.composite_id,
                        'name': boundary.display_name,
                        'admin_level': boundary.admin_level,
                        'area_sq_km': round(boundary.area_sq_km, 2),
                    },
                    'geometry': _encode_geometry(boundary.geometry),
                }
            ],
        }


@cython.cfunc
def _encode_boundary(boundary: ResolvedBoundary) -> dict:
    return {
        'composite_id': boundary.composite_id,
        'type': boundary.type,
        'name': boundary.display_name,
        'admin_level': boundary.admin_level,
        'boundary_type': boundary.boundary_type,
        'area_sq_km': round(boundary.area_sq_km, 2),
        'score': boundary.score,
        'tags': boundary.tags,
        'geometry': _encode_geometry(boundary.geometry),
    }


@cython.cfunc
def _encode_geometry(geometry: Polygon | MultiPolygon) -> dict:
    return mapping(geometry)  # pyright: ignore[reportReturnType]
