from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Path

from app.format import Format
from app.lib.auth_context import api_caller
from app.lib.exceptions_context import raise_for
from app.models.element import BoundaryElementType, CompositeId, split_composite_id
from app.models.types import CallerId, CityId
from app.responses.json_response import GeoJSONResponse, JSONResponse
from app.services.boundary_search_service import BoundarySearchService
from app.services.boundary_selection_service import BoundarySelectionService

router = APIRouter(prefix='/api/boundaries', default_response_class=JSONResponse)

_SELECTION_SERVICE = BoundarySelectionService()


def selection_service() -> BoundarySelectionService:
    """Dependency for the boundary selection service."""
    return _SELECTION_SERVICE


_CityIdPath = Annotated[CityId, Path(min_length=1, max_length=255)]
_Service = Annotated[BoundarySelectionService, Depends(selection_service)]


@router.post('/select')
async def select(
    city_id: Annotated[CityId, Form(alias='cityId', min_length=1, max_length=255)],
    composite_id: Annotated[CompositeId, Form(alias='compositeId', min_length=1)],
    service: _Service,
    kind: Annotated[BoundaryElementType | None, Form()] = None,
    caller: CallerId = api_caller(),
) -> dict:
    try:
        type, element_id = split_composite_id(composite_id)
    except ValueError as e:
        raise_for.boundary_invalid_request(str(e))
    if kind is not None and kind != type:
        raise_for.boundary_invalid_request(f'Kind {kind!r} does not match boundary {composite_id}')

    boundary = await BoundarySearchService.resolve_boundary(type, element_id)
    selection = await service.select(city_id, boundary, selected_by=caller)
    return {'selection': Format.encode_selection(selection)}


@router.get('/{city_id}/selection')
async def get_selection(
    city_id: _CityIdPath,
    service: _Service,
    _: CallerId = api_caller(),
) -> dict:
    selection = await service.get_selection(city_id)
    return {'selection': Format.encode_selection(selection)}


@router.delete('/{city_id}/selection')
async def restore_default(
    city_id: _CityIdPath,
    service: _Service,
    _: CallerId = api_caller(),
) -> dict:
    await service.restore_default(city_id)
    return {'selection': None}


@router.get('/{city_id}/download', response_class=GeoJSONResponse)
async def download(
    city_id: _CityIdPath,
    service: _Service,
    _: CallerId = api_caller(),
) -> GeoJSONResponse:
    selection = await service.get_selection(city_id)
    if selection is None:
        raise_for.selection_not_found(city_id)
    # city ids are free-form, only the extended parameter may carry them
    filename = quote(f'{city_id}-boundary.geojson', safe='')
    return GeoJSONResponse(
        Format.encode_feature_collection(selection.boundary),
        headers={'Content-Disposition': f"attachment; filename=\"boundary.geojson\"; filename*=UTF-8''{filename}"},
    )
