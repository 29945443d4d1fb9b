import cython
from shapely import MultiPolygon, Polygon, get_coordinates

from app.models.overpass import OverpassBounds

if cython.compiled:
    from cython.cimports.libc.math import cos, fabs
else:
    from math import cos, fabs

KM_PER_DEGREE = 111.32
"""Length of one degree of latitude in kilometers (and of longitude at the equator)."""


@cython.cfunc
def _radians(degrees: cython.double) -> cython.double:
    return degrees * 0.017453292519943295  # pi / 180


@cython.cfunc
def _sq_degrees_to_sq_km(area: cython.double, latitude: cython.double) -> cython.double:
    """Convert a planar area in square degrees into square kilometers at the given latitude."""
    return fabs(area) * KM_PER_DEGREE * KM_PER_DEGREE * cos(_radians(latitude))


def bounds_area_sq_km(bounds: OverpassBounds) -> float:
    """
    Estimate the area of a bounding box in square kilometers.

    >>> round(bounds_area_sq_km({'minlat': 0, 'minlon': 0, 'maxlat': 1, 'maxlon': 1}), 2)
    12391.67
    """
    minlat: cython.double = bounds['minlat']
    minlon: cython.double = bounds['minlon']
    maxlat: cython.double = bounds['maxlat']
    maxlon: cython.double = bounds['maxlon']
    area = (maxlat - minlat) * (maxlon - minlon)
    return _sq_degrees_to_sq_km(area, (minlat + maxlat) / 2)


def estimate_area_sq_km(geometry: Polygon | MultiPolygon) -> float:
    """
    Estimate the area of a boundary geometry in square kilometers.

    Each ring is measured with the planar shoelace formula in square degrees
    and converted with KM_PER_DEGREE, scaling longitude by the cosine of the
    ring's mean latitude. A MultiPolygon sums its parts.
    This is a ranking and display signal, not a geodesic measurement.
    """
    polygons = geometry.geoms if isinstance(geometry, MultiPolygon) else (geometry,)
    total: cython.double = 0
    for polygon in polygons:
        if polygon.is_empty:
            continue
        # the closing coordinate would bias the mean
        latitudes = get_coordinates(polygon.exterior)[:-1, 1]
        total += _sq_degrees_to_sq_km(polygon.area, float(latitudes.mean()))
    return total
