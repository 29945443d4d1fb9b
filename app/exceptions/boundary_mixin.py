from typing import NoReturn

from starlette import status

from app.exceptions.api_error import (
    APIError,
    InvalidRequestError,
    UnknownCountryError,
    UpstreamUnavailableError,
)


class BoundaryExceptionsMixin:
    def boundary_invalid_request(self, message: str) -> NoReturn:
        raise InvalidRequestError(status.HTTP_400_BAD_REQUEST, detail=message)

    def unknown_country(self, country: str) -> NoReturn:
        raise UnknownCountryError(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f'Unknown country {country!r}, provide an explicit country code',
        )

    def upstream_unavailable(self, reason: str) -> NoReturn:
        raise UpstreamUnavailableError(
            status.HTTP_502_BAD_GATEWAY,
            detail=f'Overpass service unavailable: {reason}',
        )

    def boundary_not_found(self, composite_id: str) -> NoReturn:
        raise APIError(status.HTTP_404_NOT_FOUND, detail=f'Boundary {composite_id} not found')
