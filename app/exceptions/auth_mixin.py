from typing import NoReturn

from starlette import status

from app.exceptions.api_error import APIError


class AuthExceptionsMixin:
    def unauthorized(self) -> NoReturn:
        raise APIError(status.HTTP_401_UNAUTHORIZED, detail='Unauthorized')
