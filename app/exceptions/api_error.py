from fastapi import HTTPException


class APIError(HTTPException):
    pass


class InvalidRequestError(APIError):
    """The request is missing required input or carries malformed input."""


class UnknownCountryError(APIError):
    """The country name could not be mapped to a territory code."""


class UpstreamUnavailableError(APIError):
    """The Overpass service is unreachable or answered with a failure status."""
