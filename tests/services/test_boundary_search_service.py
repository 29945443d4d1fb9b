import asyncio

import pytest
from httpx import AsyncClient, ConnectError, MockTransport, Request, Response
from shapely import MultiPolygon, Polygon

import app.queries.overpass_query
from app.exceptions.api_error import APIError, InvalidRequestError, UnknownCountryError, UpstreamUnavailableError
from app.models.boundary import SearchRequest
from app.models.element import ElementId
from app.services.boundary_search_service import BoundarySearchRun, BoundarySearchService
from tests.utils.overpass_data import (
    bounds,
    candidate,
    candidates_response,
    relation_geometry_response,
    square,
    way_geometry_response,
)
from tests.utils.overpass_stub import OverpassStub

_CITY_TAGS = {'boundary': 'administrative', 'admin_level': '8', 'name': 'Springfield'}
_STATE_TAGS = {'boundary': 'administrative', 'admin_level': '4', 'name': 'Springfield'}


def _request(**kwargs) -> SearchRequest:
    return SearchRequest(**{'city_name': 'Springfield', 'country': 'United States', **kwargs})


async def test_search_empty_result(overpass: OverpassStub):
    overpass.json(candidates_response(), contains='out tags bb;')
    run = BoundarySearchRun()
    assert await BoundarySearchService.search(_request(), run=run) == []
    assert run.history == ['idle', 'query_built', 'candidates_fetched', 'resolved']
    assert len(overpass.queries) == 1


async def test_search_ranks_and_resolves(overpass: OverpassStub):
    overpass.json(
        candidates_response(
            candidate('relation', 4, _STATE_TAGS, bounds(-90, 37, 5)),
            candidate('relation', 8, _CITY_TAGS, bounds(-89.7, 39.7, 0.1)),
        ),
        contains='out tags bb;',
    )
    overpass.json(relation_geometry_response(8, [square(-89.7, 39.7)], _CITY_TAGS), contains='relation(8)')
    overpass.json(relation_geometry_response(4, [square(-90, 37, 5)], _STATE_TAGS), contains='relation(4)')

    run = BoundarySearchRun()
    boundaries = await BoundarySearchService.search(_request(), run=run)

    assert [b.composite_id for b in boundaries] == ['relation/8', 'relation/4']
    assert boundaries[0].score > boundaries[1].score
    assert boundaries[0].display_name == 'Springfield'
    assert boundaries[0].admin_level == '8'
    assert boundaries[0].boundary_type == 'administrative'
    assert isinstance(boundaries[0].geometry, Polygon)
    assert boundaries[0].area_sq_km == pytest.approx(95.1, rel=1e-2)
    assert run.history[-2:] == ['geometry_resolving', 'resolved']

    assert 'area["ISO3166-1:alpha2"="US"]' in overpass.queries[0]


async def test_search_top_candidate_failing(overpass: OverpassStub):
    overpass.json(
        candidates_response(
            candidate('relation', 8, _CITY_TAGS),
            candidate('relation', 4, _STATE_TAGS),
        ),
        contains='out tags bb;',
    )
    overpass.status(504, contains='relation(8)')
    overpass.json(relation_geometry_response(4, [square(-90, 37)], _STATE_TAGS), contains='relation(4)')

    boundaries = await BoundarySearchService.search(_request())
    assert [b.composite_id for b in boundaries] == ['relation/4']


async def test_search_drops_unclosed_relation(overpass: OverpassStub):
    open_ring = square(0, 0)[:-2]
    overpass.json(
        candidates_response(
            candidate('relation', 8, _CITY_TAGS),
            candidate('way', 9, {**_CITY_TAGS, 'admin_level': '9'}),
        ),
        contains='out tags bb;',
    )
    overpass.json(relation_geometry_response(8, [open_ring], _CITY_TAGS), contains='relation(8)')
    overpass.json(way_geometry_response(9, square(1, 1), _CITY_TAGS), contains='way(9)')

    boundaries = await BoundarySearchService.search(_request())
    assert [b.composite_id for b in boundaries] == ['way/9']
    assert all(b.geometry is not None for b in boundaries)


async def test_search_keeps_score_order_under_concurrency(overpass: OverpassStub):
    tags = [{**_CITY_TAGS, 'admin_level': str(level)} for level in (10, 9, 8, 7, 6)]
    overpass.json(
        candidates_response(*(candidate('way', i + 1, t) for i, t in enumerate(tags))),
        contains='out tags bb;',
    )
    for i, t in enumerate(tags):
        overpass.json(way_geometry_response(i + 1, square(i, 0), t), contains=f'way({i + 1})')

    boundaries = await BoundarySearchService.search(_request(result_limit=3))
    assert [b.composite_id for b in boundaries] == ['way/1', 'way/2', 'way/3']
    assert len(overpass.queries) == 1 + 3


async def test_search_multipolygon(overpass: OverpassStub):
    overpass.json(candidates_response(candidate('relation', 8, _CITY_TAGS)), contains='out tags bb;')
    overpass.json(
        relation_geometry_response(8, [square(0, 0), square(1, 1)], _CITY_TAGS),
        contains='relation(8)',
    )

    (boundary,) = await BoundarySearchService.search(_request())
    assert isinstance(boundary.geometry, MultiPolygon)
    assert boundary.area_sq_km == pytest.approx(2 * 123.9, rel=1e-2)


@pytest.mark.parametrize('status_code', [429, 500, 504])
async def test_search_upstream_unavailable(overpass: OverpassStub, status_code):
    overpass.status(status_code)
    run = BoundarySearchRun()
    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await BoundarySearchService.search(_request(), run=run)
    assert exc_info.value.status_code == 502
    assert run.state == 'failed'


async def test_search_upstream_runtime_error(overpass: OverpassStub):
    overpass.json({'elements': [], 'remark': 'runtime error: Query timed out'})
    with pytest.raises(UpstreamUnavailableError):
        await BoundarySearchService.search(_request())


async def test_search_upstream_connection_error(overpass: OverpassStub):
    def handler(query: str) -> Response:
        raise ConnectError('Connection refused')

    overpass.add(handler)
    run = BoundarySearchRun()
    with pytest.raises(UpstreamUnavailableError):
        await BoundarySearchService.search(_request(), run=run)
    assert run.state == 'failed'
    assert len(overpass.queries) == 1


@pytest.mark.parametrize('content', ['<html>Service Unavailable</html>', '{"version": 0.6}'])
async def test_search_upstream_malformed_response(overpass: OverpassStub, content):
    overpass.add(lambda query: Response(200, text=content))
    run = BoundarySearchRun()
    with pytest.raises(UpstreamUnavailableError):
        await BoundarySearchService.search(_request(), run=run)
    assert run.state == 'failed'
    assert len(overpass.queries) == 1


@pytest.mark.parametrize(
    'request_kwargs',
    [
        {'city_name': ''},
        {'city_name': '   '},
        {'country': ''},
        {'city_name': 'x' * 256},
        {'city_name': 'Spring\nfield'},
        {'city_name': 'Spring\x00field'},
        {'result_limit': 0},
        {'result_limit': 21},
        {'country_code': 'USA'},
    ],
)
async def test_search_invalid_request(overpass: OverpassStub, request_kwargs):
    run = BoundarySearchRun()
    with pytest.raises(InvalidRequestError):
        await BoundarySearchService.search(_request(**request_kwargs), run=run)
    assert run.history == ['idle', 'failed']
    assert not overpass.queries


async def test_search_unknown_country(overpass: OverpassStub):
    with pytest.raises(UnknownCountryError):
        await BoundarySearchService.search(_request(country='Atlantis'))
    assert not overpass.queries


async def test_search_explicit_country_code(overpass: OverpassStub):
    overpass.json(candidates_response(), contains='"ISO3166-1:alpha2"="CA"')
    assert await BoundarySearchService.search(_request(country='Atlantis', country_code='ca')) == []


async def test_search_cancellation(monkeypatch: pytest.MonkeyPatch):
    started = asyncio.Event()

    async def handler(request: Request) -> Response:
        started.set()
        await asyncio.sleep(60)
        return Response(504)

    monkeypatch.setattr(app.queries.overpass_query, 'HTTP', AsyncClient(transport=MockTransport(handler)))

    task = asyncio.create_task(BoundarySearchService.search(_request()))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_run_rejects_illegal_transition():
    run = BoundarySearchRun()
    with pytest.raises(RuntimeError):
        run.transition('resolved')
    run.transition('query_built')
    run.transition('failed')
    assert run.finished
    with pytest.raises(RuntimeError):
        run.transition('candidates_fetched')


async def test_resolve_boundary(overpass: OverpassStub):
    overpass.json(way_geometry_response(9, square(0, 0), _CITY_TAGS), contains='way(9)')
    boundary = await BoundarySearchService.resolve_boundary('way', ElementId(9))
    assert boundary.composite_id == 'way/9'
    assert boundary.area_sq_km == pytest.approx(123.9, rel=1e-2)
    assert boundary.score > 0


async def test_resolve_boundary_not_found(overpass: OverpassStub):
    overpass.json({'elements': []}, contains='relation(404)')
    with pytest.raises(APIError) as exc_info:
        await BoundarySearchService.resolve_boundary('relation', ElementId(404))
    assert exc_info.value.status_code == 404
