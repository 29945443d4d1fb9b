import re
from datetime import timedelta

from app.config import OVERPASS_GEOMETRY_TIMEOUT, OVERPASS_SEARCH_TIMEOUT
from app.models.element import BoundaryElementType, ElementId
from app.models.types import CountryCode
from app.utils import splitlines_trim

# POSIX extended regular expression metacharacters, as used by Overpass
_REGEX_SPECIAL_RE = re.compile(r'[.*+?^${}()|\[\]\\]')


def escape_regex(s: str) -> str:
    r"""
    Escape regular expression metacharacters.

    >>> escape_regex('St. Louis (MO)')
    'St\\. Louis \\(MO\\)'
    """
    return _REGEX_SPECIAL_RE.sub(r'\\\g<0>', s)


def quote_ql(s: str) -> str:
    r"""
    Quote a value as an Overpass QL string literal.

    >>> quote_ql('a"b\\c')
    '"a\\"b\\\\c"'
    """
    escaped = s.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def build_candidate_query(
    city_name: str,
    territory_code: CountryCode,
    *,
    timeout: timedelta = OVERPASS_SEARCH_TIMEOUT,
) -> str:
    """
    Build the candidate search query.

    Matches administrative and political boundaries (relations and ways) and
    city-like places (relations) within the territory, whose name contains
    the city name, case-insensitively. Only tags and bounding boxes are returned.
    """
    area = quote_ql(territory_code)
    name = quote_ql(escape_regex(city_name.strip()))
    boundary = '["boundary"~"^(administrative|political)$"]'
    place = '["place"~"^(city|town|municipality)$"]'
    return ''.join(
        splitlines_trim(f"""
            [out:json][timeout:{int(timeout.total_seconds())}];
            area["ISO3166-1:alpha2"={area}]->.country;
            (
            rel(area.country){boundary}["name"~{name},i];
            way(area.country){boundary}["name"~{name},i];
            rel(area.country){place}["name"~{name},i];
            );
            out tags bb;
        """)
    )


def build_geometry_query(
    element_id: ElementId,
    type: BoundaryElementType,
    *,
    timeout: timedelta = OVERPASS_GEOMETRY_TIMEOUT,
) -> str:
    """
    Build the full geometry query for a single element.

    Returns the element together with its member ways and their nodes.
    """
    members = 'way(r);node(w);' if type == 'relation' else 'node(w);'
    return (
        f'[out:json][timeout:{int(timeout.total_seconds())}];'
        f'({type}({element_id});{members});'
        'out geom;'
    )
