import logging
from datetime import timedelta

import orjson
from httpx import Timeout
from shapely import MultiPolygon, Polygon

from app.config import OVERPASS_GEOMETRY_TIMEOUT, OVERPASS_INTERPRETER_URL, OVERPASS_SEARCH_TIMEOUT
from app.lib.boundary_geometry import GeometryResolutionError, resolve_geometry
from app.lib.overpass_ql import build_geometry_query
from app.models.boundary import RawFeature
from app.models.element import BOUNDARY_ELEMENT_TYPES, BoundaryElementType, ElementId
from app.models.overpass import OverpassElement, OverpassResponse
from app.utils import HTTP


class OverpassRemarkError(Exception):
    """Overpass accepted the query but reported a runtime error or returned no elements."""


class OverpassQuery:
    @staticmethod
    async def boundary_candidates(query: str) -> list[RawFeature]:
        """
        Execute a candidate search query, see build_candidate_query.

        Results keep the response order and carry tags and bounding boxes only.

        Raises httpx.HTTPError on transport errors and non-success statuses,
        OverpassRemarkError on runtime errors reported by Overpass.
        """
        logging.debug('Querying Overpass for boundary candidates')
        elements = await _execute(query, OVERPASS_SEARCH_TIMEOUT)

        return [
            RawFeature(
                element_id=element['id'],
                type=element['type'],  # type: ignore[arg-type]
                tags=element.get('tags', {}),
                bounds=element.get('bounds'),
            )
            for element in elements
            if element['type'] in BOUNDARY_ELEMENT_TYPES
        ]

    @staticmethod
    async def boundary_elements(element_id: ElementId, type: BoundaryElementType) -> list[OverpassElement]:
        """Query Overpass for the full geometry of a single element."""
        query = build_geometry_query(element_id, type)
        logging.debug('Querying Overpass for geometry of %s/%d', type, element_id)
        return await _execute(query, OVERPASS_GEOMETRY_TIMEOUT)

    @staticmethod
    async def boundary_geometry(element_id: ElementId, type: BoundaryElementType) -> Polygon | MultiPolygon:
        """
        Fetch and assemble the polygon geometry of a single element.

        Raises GeometryResolutionError on any failure, including network errors.
        """
        try:
            elements = await OverpassQuery.boundary_elements(element_id, type)
        except Exception as e:
            raise GeometryResolutionError(f'Geometry query for {type}/{element_id} failed: {e!r}') from e
        return resolve_geometry(element_id, type, elements)


async def _execute(query: str, timeout: timedelta) -> list[OverpassElement]:
    r = await HTTP.post(
        OVERPASS_INTERPRETER_URL,
        data={'data': query},
        timeout=Timeout(timeout.total_seconds() * 2),
    )
    r.raise_for_status()

    response: OverpassResponse = orjson.loads(r.content)
    remark = response.get('remark')
    if remark is not None and 'error' in remark:
        raise OverpassRemarkError(remark)

    elements = response.get('elements')
    if elements is None:
        raise OverpassRemarkError(remark or 'Response has no elements')
    return elements
