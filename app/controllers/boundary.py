from typing import Annotated

from fastapi import APIRouter, Form

from app.config import BOUNDARY_SEARCH_DEFAULT_LIMIT
from app.format import Format
from app.lib.auth_context import api_caller
from app.models.boundary import SearchRequest
from app.models.types import CallerId, CountryCode
from app.responses.json_response import JSONResponse
from app.services.boundary_search_service import BoundarySearchService

router = APIRouter(prefix='/api/boundaries', default_response_class=JSONResponse)


@router.post('/search')
async def search(
    # validated by the service, missing values are reported as invalid requests
    city_name: Annotated[str, Form(alias='cityName')] = '',
    country: Annotated[str, Form()] = '',
    country_code: Annotated[CountryCode | None, Form(alias='countryCode')] = None,
    limit: Annotated[int, Form()] = BOUNDARY_SEARCH_DEFAULT_LIMIT,
    _: CallerId = api_caller(),
) -> dict:
    boundaries = await BoundarySearchService.search(
        SearchRequest(
            city_name=city_name,
            country=country,
            country_code=country_code or None,
            result_limit=limit,
        )
    )
    return {'boundaries': Format.encode_boundaries(boundaries)}
