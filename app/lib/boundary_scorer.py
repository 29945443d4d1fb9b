import logging
from collections.abc import Iterable

import cython

from app.lib.geo_utils import bounds_area_sq_km
from app.models.boundary import RawFeature, ScoredCandidate
from app.models.element import BoundaryElementType
from app.models.types import CountryCode
from app.utils import split_values

# Scores are ordinal only, the constants are tuned relative to each other.
_BOUNDARY_TYPE_SCORES = {'administrative': 10.0, 'political': 8.0}
_PLACE_SCORES = {'city': 8.0, 'municipality': 7.0, 'town': 6.0}

_ADMIN_LEVEL_LOCAL_MIN = 6
_ADMIN_LEVEL_LOCAL_MAX = 10
_ADMIN_LEVEL_NATIONAL_MAX = 4
_ADMIN_LEVEL_NATIONAL_PENALTY = -5.0

_NAME_EXACT_SCORE = 30.0
_NAME_CONTAINS_SCORE = 10.0
_ALT_NAME_EXACT_SCORE = 15.0
_ALT_NAME_CONTAINS_SCORE = 5.0
_ALT_NAME_KEYS = ('name:en', 'official_name', 'short_name', 'alt_name')

_AREA_CITY_SCORE = 5.0  # 50 - 5000 km2
_AREA_DISTRICT_SCORE = 3.0  # 5 - 50 km2

_POPULATION_SCORE = 3.0
_RELATION_SCORE = 3.0

_COUNTRY_MATCH_SCORE = 5.0
_COUNTRY_MISMATCH_PENALTY = -50.0  # must outweigh any single bonus
_COUNTRY_KEYS = ('ISO3166-1:alpha2', 'ISO3166-1', 'addr:country', 'is_in:country_code')


def score_candidate(
    tags: dict[str, str],
    bounding_box_area: float,
    search_term: str,
    *,
    type: BoundaryElementType,
    territory_code: CountryCode | None = None,
) -> float:
    """
    Score a boundary candidate for relevance to the search term.

    The score is a sum of independent terms derived from the tags,
    the bounding box area (in square kilometers), the element type
    and the agreement with the requested territory.
    """
    score: cython.double = _BOUNDARY_TYPE_SCORES.get(tags.get('boundary', ''), 0)
    score += _admin_level_score(tags.get('admin_level'))
    score += _PLACE_SCORES.get(tags.get('place', ''), 0)

    term = search_term.strip().casefold()
    score += _name_score(tags.get('name'), term, _NAME_EXACT_SCORE, _NAME_CONTAINS_SCORE)
    score += max(
        (
            _name_score(alt_name, term, _ALT_NAME_EXACT_SCORE, _ALT_NAME_CONTAINS_SCORE)
            for key in _ALT_NAME_KEYS
            if (value := tags.get(key))
            for alt_name in split_values(value)
        ),
        default=0,
    )

    area: cython.double = bounding_box_area
    if 50 < area < 5000:
        score += _AREA_CITY_SCORE
    elif 5 < area <= 50:
        score += _AREA_DISTRICT_SCORE

    if 'population' in tags:
        score += _POPULATION_SCORE
    if type == 'relation':
        score += _RELATION_SCORE

    if territory_code is not None:
        score += _country_score(tags, territory_code)

    return score


def score_candidates(
    features: Iterable[RawFeature],
    search_term: str,
    territory_code: CountryCode | None,
) -> list[ScoredCandidate]:
    """
    Score features in response order.

    Features without a name are skipped.
    """
    candidates: list[ScoredCandidate] = []
    for feature in features:
        if not feature.tags.get('name'):
            logging.debug('Skipping unnamed %s/%d', feature.type, feature.element_id)
            continue

        bbox_area = bounds_area_sq_km(feature.bounds) if feature.bounds is not None else 0
        candidates.append(
            ScoredCandidate(
                element_id=feature.element_id,
                type=feature.type,
                tags=feature.tags,
                bounding_box_area=bbox_area,
                score=score_candidate(
                    feature.tags,
                    bbox_area,
                    search_term,
                    type=feature.type,
                    territory_code=territory_code,
                ),
            )
        )

    return candidates


def rank_candidates(candidates: Iterable[ScoredCandidate], limit: int) -> list[ScoredCandidate]:
    """
    Order candidates by score, best first, and keep at most limit of them.

    Candidates with equal scores keep their original order.
    """
    # sorted is stable, also with reverse=True
    return sorted(candidates, key=lambda c: c.score, reverse=True)[:limit]


@cython.cfunc
def _admin_level_score(admin_level: str | None) -> cython.double:
    if admin_level is None:
        return 0
    try:
        level = int(admin_level.strip())
    except ValueError:
        return 0

    # more local levels are more specific
    if _ADMIN_LEVEL_LOCAL_MIN <= level <= _ADMIN_LEVEL_LOCAL_MAX:
        return level - (_ADMIN_LEVEL_LOCAL_MIN - 1)
    if 0 < level <= _ADMIN_LEVEL_NATIONAL_MAX:
        return _ADMIN_LEVEL_NATIONAL_PENALTY
    return 0


@cython.cfunc
def _name_score(
    name: str | None,
    term: str,
    exact_score: cython.double,
    contains_score: cython.double,
) -> cython.double:
    if not name or not term:
        return 0
    name = name.strip().casefold()
    if name == term:
        return exact_score
    if term in name:
        return contains_score
    return 0


@cython.cfunc
def _country_score(tags: dict[str, str], territory_code: str) -> cython.double:
    codes = {code.strip().upper() for key in _COUNTRY_KEYS if (code := tags.get(key))}
    if not codes:
        return 0
    if territory_code.upper() in codes:
        return _COUNTRY_MATCH_SCORE
    return _COUNTRY_MISMATCH_PENALTY
