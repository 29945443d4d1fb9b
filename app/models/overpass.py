from typing import Literal, NotRequired, TypedDict

from app.models.element import ElementId

# Overpass API Documentation:
# https://wiki.openstreetmap.org/wiki/Overpass_API/Overpass_QL
# https://dev.overpass-api.de/output_formats.html#json


class OverpassPoint(TypedDict):
    lat: float
    lon: float


class OverpassBounds(TypedDict):
    minlat: float
    minlon: float
    maxlat: float
    maxlon: float


class _OverpassElement(TypedDict):
    id: ElementId
    tags: NotRequired[dict[str, str]]


class OverpassNode(_OverpassElement):
    type: Literal['node']
    lat: float
    lon: float


class OverpassWay(_OverpassElement):
    type: Literal['way']
    bounds: NotRequired[OverpassBounds]
    nodes: NotRequired[list[ElementId]]
    # present with "out geom"
    geometry: NotRequired[list[OverpassPoint | None]]


class _OverpassElementMember(TypedDict):
    ref: ElementId
    role: str


class OverpassNodeMember(_OverpassElementMember):
    type: Literal['node']
    lat: NotRequired[float]
    lon: NotRequired[float]


class OverpassWayMember(_OverpassElementMember):
    type: Literal['way']
    geometry: NotRequired[list[OverpassPoint | None]]


class OverpassRelationMember(_OverpassElementMember):
    type: Literal['relation']


class OverpassRelation(_OverpassElement):
    type: Literal['relation']
    bounds: NotRequired[OverpassBounds]
    members: NotRequired[list['OverpassElementMember']]


class OverpassResponse(TypedDict):
    elements: list['OverpassElement']
    # runtime errors are reported with status 200 and a remark
    remark: NotRequired[str]


OverpassElement = OverpassNode | OverpassWay | OverpassRelation
OverpassElementMember = OverpassNodeMember | OverpassWayMember | OverpassRelationMember

__all__ = (
    'OverpassBounds',
    'OverpassElement',
    'OverpassElementMember',
    'OverpassNode',
    'OverpassPoint',
    'OverpassRelation',
    'OverpassResponse',
    'OverpassWay',
)
