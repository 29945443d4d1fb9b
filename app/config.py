from datetime import timedelta
from logging.config import dictConfig
from os import chdir
from pathlib import Path
from typing import Annotated, Literal

from githead import githead
from pydantic import BeforeValidator, Field

from app.lib.pydantic_settings_integration import pydantic_settings_integration


def _strip_validator(chars: str, /) -> BeforeValidator:
    """Create a validator that strips the given characters from the input text."""

    def validate(v):
        return str(v).strip(chars)

    return BeforeValidator(validate)


def _upper_validator(v):
    return str(v).strip().upper()


type _StripSlash = Annotated[str, _strip_validator('/')]
type _CountryCode = Annotated[str, BeforeValidator(_upper_validator)]


# Change working directory to the project root
chdir(Path(__file__).parent.parent)

# -------------------- System Configuration --------------------

# Core settings
ENV: Literal['dev', 'test', 'prod'] = 'prod'
LOG_LEVEL: Literal['DEBUG', 'INFO', 'WARNING'] | None = None

# -------------------- API and Services Integration --------------------

# External services
OVERPASS_INTERPRETER_URL: _StripSlash = 'https://overpass-api.de/api/interpreter'

# API and HTTP settings
HTTP_TIMEOUT = timedelta(seconds=20)
# Comma-separated origins allowed to call the API from browsers
CORS_ORIGINS = 'http://localhost:5173'
CORS_MAX_AGE = timedelta(days=1)

# Server-side [timeout:] of the Overpass queries, client waits twice as long
OVERPASS_SEARCH_TIMEOUT = timedelta(seconds=30)
OVERPASS_GEOMETRY_TIMEOUT = timedelta(seconds=25)

# -------------------- Authentication --------------------

# Identity header set by the authenticating gateway in front of this service
AUTH_IDENTITY_HEADER = 'X-Authenticated-User'

# -------------------- Boundary Search --------------------

BOUNDARY_SEARCH_DEFAULT_LIMIT: int = Field(5, ge=1)
BOUNDARY_SEARCH_MAX_LIMIT: int = Field(20, ge=1)
BOUNDARY_CITY_NAME_MAX_LENGTH = 255
BOUNDARY_COUNTRY_MAX_LENGTH = 100

# Territory code used for unknown country names, empty = reject unknown countries
COUNTRY_CODE_FALLBACK: _CountryCode = ''

pydantic_settings_integration(__name__, globals())

# -------------------- Constant or derived configuration --------------------

try:
    VERSION = 'git#' + githead()[:7]
except FileNotFoundError:
    VERSION = 'dev'  # pyright: ignore [reportConstantRedefinition]

NAME = 'city-boundary-resolver'
WEBSITE = 'https://github.com/citycatalyst/city-boundary-resolver'
USER_AGENT = f'{NAME}/{VERSION} (+{WEBSITE})'

if LOG_LEVEL is None:
    LOG_LEVEL = 'INFO' if ENV == 'prod' else 'DEBUG'  # pyright: ignore[reportConstantRedefinition]

# -------------------- Logging configuration --------------------

dictConfig({
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            '()': 'uvicorn.logging.DefaultFormatter',
            'fmt': '%(levelprefix)s | %(asctime)s | %(name)s %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },
    'handlers': {
        'default': {
            'formatter': 'default',
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',
        },
    },
    'loggers': {
        'root': {'handlers': ['default'], 'level': LOG_LEVEL},
        **{
            # reduce logging verbosity of some modules
            module: {'handlers': [], 'level': 'INFO'}
            for module in (
                'hpack',
                'httpx',
                'httpcore',
                'multipart',
            )
        },
    },
})
