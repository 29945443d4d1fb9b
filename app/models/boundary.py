from dataclasses import dataclass, field
from datetime import datetime

from shapely import MultiPolygon, Polygon

from app.config import BOUNDARY_SEARCH_DEFAULT_LIMIT
from app.models.element import BoundaryElementType, CompositeId, ElementId, composite_id
from app.models.overpass import OverpassBounds
from app.models.types import CallerId, CityId, CountryCode


@dataclass(frozen=True, kw_only=True, slots=True)
class SearchRequest:
    city_name: str
    country: str
    country_code: CountryCode | None = None
    result_limit: int = BOUNDARY_SEARCH_DEFAULT_LIMIT


@dataclass(frozen=True, kw_only=True, slots=True)
class RawFeature:
    """Tagged element returned by the candidate query, without geometry."""

    element_id: ElementId
    type: BoundaryElementType
    tags: dict[str, str]
    bounds: OverpassBounds | None = None


@dataclass(frozen=True, kw_only=True, slots=True)
class ScoredCandidate:
    element_id: ElementId
    type: BoundaryElementType
    tags: dict[str, str]
    bounding_box_area: float  # in square kilometers
    score: float

    @property
    def composite_id(self) -> CompositeId:
        return composite_id(self.type, self.element_id)


@dataclass(frozen=True, kw_only=True, slots=True)
class ResolvedBoundary:
    composite_id: CompositeId
    type: BoundaryElementType
    display_name: str
    admin_level: str | None
    boundary_type: str
    area_sq_km: float
    geometry: Polygon | MultiPolygon
    tags: dict[str, str] = field(default_factory=dict)
    score: float


@dataclass(frozen=True, kw_only=True, slots=True)
class BoundarySelection:
    city_id: CityId
    composite_id: CompositeId
    selected_at: datetime
    selected_by: CallerId
    boundary: ResolvedBoundary
    deactivated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.deactivated_at is None
