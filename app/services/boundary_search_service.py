import logging
import re
from asyncio import TaskGroup
from typing import Literal

import orjson
from httpx import HTTPError
from shapely import MultiPolygon, Polygon

from app.config import BOUNDARY_CITY_NAME_MAX_LENGTH, BOUNDARY_COUNTRY_MAX_LENGTH, BOUNDARY_SEARCH_MAX_LIMIT
from app.lib.boundary_geometry import GeometryResolutionError, resolve_geometry
from app.lib.boundary_scorer import rank_candidates, score_candidate, score_candidates
from app.lib.country_code import normalize_country_code, resolve_country_code
from app.lib.exceptions_context import raise_for
from app.lib.geo_utils import bounds_area_sq_km, estimate_area_sq_km
from app.lib.overpass_ql import build_candidate_query
from app.models.boundary import ResolvedBoundary, ScoredCandidate, SearchRequest
from app.models.element import BoundaryElementType, ElementId, composite_id
from app.models.types import CountryCode
from app.queries.overpass_query import OverpassQuery, OverpassRemarkError

type BoundarySearchState = Literal[
    'idle',
    'query_built',
    'candidates_fetched',
    'candidates_scored',
    'top_k_selected',
    'geometry_resolving',
    'resolved',
    'failed',
]

_TRANSITIONS: dict[BoundarySearchState, frozenset[BoundarySearchState]] = {
    'idle': frozenset(('query_built', 'failed')),
    'query_built': frozenset(('candidates_fetched', 'failed')),
    'candidates_fetched': frozenset(('candidates_scored', 'resolved')),
    'candidates_scored': frozenset(('top_k_selected',)),
    'top_k_selected': frozenset(('geometry_resolving', 'resolved')),
    'geometry_resolving': frozenset(('resolved',)),
    'resolved': frozenset(),
    'failed': frozenset(),
}

_UPSTREAM_ERRORS = (HTTPError, OverpassRemarkError, orjson.JSONDecodeError)

_CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f]')


class BoundarySearchRun:
    """Lifecycle of a single boundary search. Illegal transitions raise RuntimeError."""

    __slots__ = ('history', 'state')

    def __init__(self):
        self.state: BoundarySearchState = 'idle'
        self.history: list[BoundarySearchState] = ['idle']

    def transition(self, state: BoundarySearchState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f'Illegal boundary search transition {self.state!r} -> {state!r}')
        logging.debug('Boundary search %s -> %s', self.state, state)
        self.state = state
        self.history.append(state)

    @property
    def finished(self) -> bool:
        return self.state in {'resolved', 'failed'}


class BoundarySearchService:
    @staticmethod
    async def search(request: SearchRequest, *, run: BoundarySearchRun | None = None) -> list[ResolvedBoundary]:
        """
        Search for the administrative boundaries of a city.

        Returns at most request.result_limit boundaries ordered by score, best first.
        Candidates whose geometry cannot be resolved are omitted.
        An empty list is a valid result.
        """
        if run is None:
            run = BoundarySearchRun()

        try:
            city_name, territory_code = _validate_request(request)
        except Exception:
            run.transition('failed')
            raise

        query = build_candidate_query(city_name, territory_code)
        run.transition('query_built')

        try:
            features = await OverpassQuery.boundary_candidates(query)
        except _UPSTREAM_ERRORS as e:
            run.transition('failed')
            logging.warning('Boundary candidate query for %r in %s failed: %r', city_name, territory_code, e)
            raise_for.upstream_unavailable(e.__class__.__name__)

        run.transition('candidates_fetched')
        logging.debug('Found %d boundary candidates for %r in %s', len(features), city_name, territory_code)
        if not features:
            run.transition('resolved')
            return []

        candidates = score_candidates(features, city_name, territory_code)
        run.transition('candidates_scored')

        top = rank_candidates(candidates, request.result_limit)
        run.transition('top_k_selected')
        if not top:
            run.transition('resolved')
            return []

        run.transition('geometry_resolving')
        slots: list[ResolvedBoundary | None] = [None] * len(top)

        async def resolve_slot(i: int, candidate: ScoredCandidate) -> None:
            try:
                geometry = await OverpassQuery.boundary_geometry(candidate.element_id, candidate.type)
            except GeometryResolutionError as e:
                logging.warning('Skipping boundary %s: %s', candidate.composite_id, e)
                return
            slots[i] = _make_boundary(candidate.element_id, candidate.type, candidate.tags, geometry, candidate.score)

        async with TaskGroup() as tg:
            for i, candidate in enumerate(top):
                tg.create_task(resolve_slot(i, candidate))

        run.transition('resolved')
        result = [boundary for boundary in slots if boundary is not None]
        logging.debug('Resolved %d of %d boundaries for %r', len(result), len(top), city_name)
        return result

    @staticmethod
    async def resolve_boundary(type: BoundaryElementType, element_id: ElementId) -> ResolvedBoundary:
        """
        Resolve a single boundary by its element type and id.

        The score is computed against the boundary's own name, without territory scoping.
        """
        try:
            elements = await OverpassQuery.boundary_elements(element_id, type)
        except _UPSTREAM_ERRORS as e:
            logging.warning('Boundary geometry query for %s/%d failed: %r', type, element_id, e)
            raise_for.upstream_unavailable(e.__class__.__name__)

        target = next((e for e in elements if e['type'] == type and e['id'] == element_id), None)
        if target is None:
            raise_for.boundary_not_found(composite_id(type, element_id))

        try:
            geometry = resolve_geometry(element_id, type, elements)
        except GeometryResolutionError as e:
            logging.warning('Boundary %s has no usable geometry: %s', composite_id(type, element_id), e)
            raise_for.boundary_not_found(composite_id(type, element_id))

        tags = target.get('tags', {})
        bounds = target.get('bounds')
        score = score_candidate(
            tags,
            bounds_area_sq_km(bounds) if bounds is not None else 0,
            tags.get('name', ''),
            type=type,
        )
        return _make_boundary(element_id, type, tags, geometry, score)


def _validate_request(request: SearchRequest) -> tuple[str, CountryCode]:
    city_name = request.city_name.strip()
    country = request.country.strip()

    if not city_name:
        raise_for.boundary_invalid_request('City name is required')
    if not country:
        raise_for.boundary_invalid_request('Country is required')
    if len(city_name) > BOUNDARY_CITY_NAME_MAX_LENGTH:
        raise_for.boundary_invalid_request(f'City name must be at most {BOUNDARY_CITY_NAME_MAX_LENGTH} characters')
    if _CONTROL_CHARS_RE.search(city_name) is not None:
        raise_for.boundary_invalid_request('City name must not contain control characters')
    if len(country) > BOUNDARY_COUNTRY_MAX_LENGTH:
        raise_for.boundary_invalid_request(f'Country must be at most {BOUNDARY_COUNTRY_MAX_LENGTH} characters')
    if not 1 <= request.result_limit <= BOUNDARY_SEARCH_MAX_LIMIT:
        raise_for.boundary_invalid_request(f'Result limit must be between 1 and {BOUNDARY_SEARCH_MAX_LIMIT}')

    territory_code = (
        normalize_country_code(request.country_code)
        if request.country_code  #
        else resolve_country_code(country)
    )
    return city_name, territory_code


def _make_boundary(
    element_id: ElementId,
    type: BoundaryElementType,
    tags: dict[str, str],
    geometry: Polygon | MultiPolygon,
    score: float,
) -> ResolvedBoundary:
    cid = composite_id(type, element_id)
    return ResolvedBoundary(
        composite_id=cid,
        type=type,
        display_name=tags.get('name') or cid,
        admin_level=tags.get('admin_level'),
        boundary_type=tags.get('boundary', 'administrative'),
        area_sq_km=estimate_area_sq_km(geometry),
        geometry=geometry,
        tags=tags,
        score=score,
    )
