import pytest
from httpx import AsyncClient

from app.controllers.boundary_selection import selection_service
from app.main import main
from app.services.boundary_selection_service import BoundarySelectionService
from tests.utils.overpass_data import relation_geometry_response, square
from tests.utils.overpass_stub import OverpassStub

_TAGS = {'boundary': 'administrative', 'admin_level': '8', 'name': 'Springfield', 'wikidata': 'Q28515'}


@pytest.fixture
def service():
    service = BoundarySelectionService()
    main.dependency_overrides[selection_service] = lambda: service
    yield service
    main.dependency_overrides.pop(selection_service, None)


async def test_selection_requires_authentication(client: AsyncClient, service):
    r = await client.get('/api/boundaries/city-1/selection')
    assert r.status_code == 401, r.text


async def test_select_and_download(caller_client: AsyncClient, overpass: OverpassStub, service):
    overpass.json(relation_geometry_response(8, [square(-89.7, 39.7)], _TAGS), contains='relation(8)')

    r = await caller_client.get('/api/boundaries/city-1/selection')
    assert r.is_success, r.text
    assert r.json() == {'selection': None}

    r = await caller_client.post('/api/boundaries/select', data={'cityId': 'city-1', 'compositeId': 'relation/8'})
    assert r.is_success, r.text
    selection = r.json()['selection']
    assert selection['composite_id'] == 'relation/8'
    assert selection['selected_by'] == 'user1'
    assert selection['is_selected'] is True
    assert selection['selected_at'].endswith('Z')

    r = await caller_client.get('/api/boundaries/city-1/selection')
    assert r.json()['selection']['composite_id'] == 'relation/8'

    r = await caller_client.get('/api/boundaries/city-1/download')
    assert r.is_success, r.text
    assert r.headers['Content-Type'].startswith('application/geo+json')
    collection = r.json()
    assert collection['type'] == 'FeatureCollection'
    (feature,) = collection['features']
    assert feature['geometry']['type'] == 'Polygon'
    assert feature['properties']['composite_id'] == 'relation/8'
    assert feature['properties']['name'] == 'Springfield'
    assert feature['properties']['admin_level'] == '8'
    assert feature['properties']['wikidata'] == 'Q28515'
    assert feature['properties']['area_sq_km'] > 0


async def test_select_replaces_and_restores(caller_client: AsyncClient, overpass: OverpassStub, service):
    overpass.json(relation_geometry_response(8, [square(0, 0)], _TAGS), contains='relation(8)')
    overpass.json(relation_geometry_response(9, [square(1, 1)], _TAGS), contains='relation(9)')

    for composite_id in ('relation/8', 'relation/9', 'relation/9'):
        r = await caller_client.post(
            '/api/boundaries/select',
            data={'cityId': 'city-1', 'compositeId': composite_id, 'kind': 'relation'},
        )
        assert r.is_success, r.text

    history = await service.store.history('city-1')
    assert [s.composite_id for s in history] == ['relation/8', 'relation/9']

    r = await caller_client.delete('/api/boundaries/city-1/selection')
    assert r.is_success, r.text
    r = await caller_client.get('/api/boundaries/city-1/selection')
    assert r.json() == {'selection': None}

    r = await caller_client.get('/api/boundaries/city-1/download')
    assert r.status_code == 404, r.text


@pytest.mark.parametrize(
    'data',
    [
        {'cityId': 'city-1', 'compositeId': 'node/1'},
        {'cityId': 'city-1', 'compositeId': 'relation/abc'},
        {'cityId': 'city-1', 'compositeId': 'relation/8', 'kind': 'way'},
    ],
)
async def test_select_invalid_composite_id(caller_client: AsyncClient, overpass: OverpassStub, service, data):
    r = await caller_client.post('/api/boundaries/select', data=data)
    assert r.status_code in {400, 422}, r.text
    assert not overpass.queries


async def test_select_unknown_boundary(caller_client: AsyncClient, overpass: OverpassStub, service):
    overpass.json({'elements': []}, contains='way(404)')
    r = await caller_client.post('/api/boundaries/select', data={'cityId': 'city-1', 'compositeId': 'way/404'})
    assert r.status_code == 404, r.text
    assert await service.get_selection('city-1') is None


async def test_download_non_ascii_city_id(caller_client: AsyncClient, overpass: OverpassStub, service):
    overpass.json(relation_geometry_response(8, [square(116.3, 39.9)], _TAGS), contains='relation(8)')
    r = await caller_client.post('/api/boundaries/select', data={'cityId': '北京', 'compositeId': 'relation/8'})
    assert r.is_success, r.text

    r = await caller_client.get('/api/boundaries/北京/download')
    assert r.is_success, r.text
    disposition = r.headers['Content-Disposition']
    assert 'filename="boundary.geojson"' in disposition
    assert "filename*=UTF-8''%E5%8C%97%E4%BA%AC-boundary.geojson" in disposition


async def test_download_quoted_city_id(caller_client: AsyncClient, overpass: OverpassStub, service):
    overpass.json(relation_geometry_response(8, [square(0, 0)], _TAGS), contains='relation(8)')
    r = await caller_client.post('/api/boundaries/select', data={'cityId': 'a"b', 'compositeId': 'relation/8'})
    assert r.is_success, r.text

    r = await caller_client.get('/api/boundaries/a%22b/download')
    assert r.is_success, r.text
    assert "filename*=UTF-8''a%22b-boundary.geojson" in r.headers['Content-Disposition']
