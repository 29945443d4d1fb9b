from typing import NoReturn

from starlette import status

from app.exceptions.api_error import APIError


class SelectionExceptionsMixin:
    def selection_not_found(self, city_id: str) -> NoReturn:
        raise APIError(
            status.HTTP_404_NOT_FOUND,
            detail=f'No boundary selected for city {city_id}',
        )
