from app.exceptions.auth_mixin import AuthExceptionsMixin
from app.exceptions.boundary_mixin import BoundaryExceptionsMixin
from app.exceptions.selection_mixin import SelectionExceptionsMixin


class Exceptions(
    AuthExceptionsMixin,
    BoundaryExceptionsMixin,
    SelectionExceptionsMixin,
): ...
