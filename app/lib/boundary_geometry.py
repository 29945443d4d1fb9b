import logging
from collections.abc import Iterable

import cython
from shapely import MultiPolygon, Polygon

from app.models.element import BoundaryElementType, ElementId
from app.models.overpass import (
    OverpassElement,
    OverpassPoint,
    OverpassRelation,
    OverpassWay,
)

type Coordinate = tuple[float, float]
"""A (longitude, latitude) pair."""

_OUTER_ROLES = frozenset(('outer', ''))
_INNER_ROLES = frozenset(('inner',))


class GeometryResolutionError(Exception):
    """Geometry of a single candidate could not be resolved."""


class MalformedGeometryError(GeometryResolutionError):
    """Assembled ring is not closed or has fewer than 3 distinct points."""


def resolve_geometry(
    element_id: ElementId,
    type: BoundaryElementType,
    elements: Iterable[OverpassElement],
) -> Polygon | MultiPolygon:
    """
    Assemble the polygon geometry of an element from a geometry query response.

    A way becomes a single ring, closed if needed. A relation joins its outer
    member ways at shared endpoints into rings; multiple rings form a MultiPolygon.
    Closed inner rings become holes of the outer ring containing them.

    Raises GeometryResolutionError when the geometry cannot be assembled.
    """
    nodes: dict[int, Coordinate] = {}
    ways: dict[int, OverpassWay] = {}
    target: OverpassElement | None = None
    for element in elements:
        if element['type'] == 'node':
            nodes[element['id']] = (element['lon'], element['lat'])
        elif element['type'] == 'way':
            ways[element['id']] = element
        if element['type'] == type and element['id'] == element_id:
            target = element

    if target is None:
        raise GeometryResolutionError(f'{type}/{element_id} is missing from the response')

    if target['type'] == 'way':
        ring = _way_coordinates(target, nodes)
        if ring and ring[0] != ring[-1]:
            ring.append(ring[0])
        _validate_ring(ring)
        return Polygon(ring)

    if target['type'] != 'relation':
        raise GeometryResolutionError(f'Unsupported element type {target["type"]!r}')

    segments = _member_segments(target, ways, nodes, _OUTER_ROLES)
    if not segments:
        raise GeometryResolutionError(f'relation/{element_id} has no outer members')
    rings = [ring for ring in _join_segments(segments, strict=True) if _is_valid_ring(ring)]
    if not rings:
        raise MalformedGeometryError(f'relation/{element_id} has no outer ring with 3 or more points')

    shells = [Polygon(ring) for ring in rings]
    holes: list[list[list[Coordinate]]] = [[] for _ in shells]
    inner_segments = _member_segments(target, ways, nodes, _INNER_ROLES)
    for ring in _join_segments(inner_segments, strict=False):
        if not _is_valid_ring(ring):
            continue
        inner = Polygon(ring)
        for i, shell in enumerate(shells):
            if shell.contains(inner):
                holes[i].append(ring)
                break
        else:
            logging.debug('Skipping inner ring of relation/%d outside of its outer rings', element_id)

    polygons = [Polygon(ring, ring_holes) for ring, ring_holes in zip(rings, holes, strict=True)]
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


def _member_segments(
    relation: OverpassRelation,
    ways: dict[int, OverpassWay],
    nodes: dict[int, Coordinate],
    roles: frozenset[str],
) -> list[list[Coordinate]]:
    """Collect coordinate sequences of the relation's way members with the given roles."""
    segments: list[list[Coordinate]] = []
    for member in relation.get('members', ()):
        if member['type'] != 'way' or member['role'] not in roles:
            continue

        geometry = member.get('geometry')
        if geometry is not None:
            coords = _points_coordinates(geometry)
        else:
            way = ways.get(member['ref'])
            if way is None:
                raise GeometryResolutionError(f'way/{member["ref"]} is missing from the response')
            coords = _way_coordinates(way, nodes)

        if len(coords) < 2:
            logging.debug('Skipping degenerate way/%d', member['ref'])
            continue
        segments.append(coords)

    return segments


def _join_segments(segments: list[list[Coordinate]], *, strict: cython.bint) -> list[list[Coordinate]]:
    """
    Join coordinate sequences sharing endpoints into closed rings.

    A chain of segments that does not close raises MalformedGeometryError
    when strict, otherwise it is skipped.
    """
    remaining = segments.copy()
    rings: list[list[Coordinate]] = []

    while remaining:
        ring = remaining.pop(0).copy()
        while ring[0] != ring[-1]:
            segment = _pop_connecting(remaining, ring[-1])
            if segment is None:
                break
            ring.extend(segment[1:])

        if ring[0] == ring[-1]:
            rings.append(ring)
        elif strict:
            raise MalformedGeometryError(f'Ring starting at {ring[0]} ends at {ring[-1]} and does not close')
        else:
            logging.debug('Skipping unclosed ring starting at %s', ring[0])

    return rings


@cython.cfunc
def _pop_connecting(remaining: list[list[Coordinate]], end: Coordinate):
    """Remove and return the segment continuing from the end point, oriented to start there."""
    i: cython.Py_ssize_t
    for i, segment in enumerate(remaining):
        if segment[0] == end:
            return remaining.pop(i)
        if segment[-1] == end:
            return remaining.pop(i)[::-1]
    return None


@cython.cfunc
def _way_coordinates(way: OverpassWay, nodes: dict[int, Coordinate]) -> list[Coordinate]:
    geometry = way.get('geometry')
    if geometry is not None:
        return _points_coordinates(geometry)

    coords: list[Coordinate] = []
    for node_id in way.get('nodes', ()):
        coord = nodes.get(node_id)
        if coord is None:
            raise GeometryResolutionError(f'node/{node_id} of way/{way["id"]} is missing from the response')
        coords.append(coord)
    return coords


@cython.cfunc
def _points_coordinates(points: list[OverpassPoint | None]) -> list[Coordinate]:
    coords: list[Coordinate] = []
    for point in points:
        # nodes outside of the query bbox are returned as null
        if point is None:
            raise GeometryResolutionError('Geometry is incomplete')
        coords.append((point['lon'], point['lat']))
    return coords


@cython.cfunc
def _is_valid_ring(ring: list[Coordinate]) -> cython.bint:
    return len(ring) >= 4 and ring[0] == ring[-1] and len(set(ring[:-1])) >= 3


@cython.cfunc
def _validate_ring(ring: list[Coordinate]) -> None:
    if not _is_valid_ring(ring):
        raise MalformedGeometryError(f'Ring of {len(ring)} points is not a valid closed ring')


__all__ = (
    'GeometryResolutionError',
    'MalformedGeometryError',
    'resolve_geometry',
)
