from app.format.boundary_geojson import BoundaryGeoJSONMixin


class Format(
    BoundaryGeoJSONMixin,
): ...
