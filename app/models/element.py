from typing import Literal, NewType, get_args

ElementType = Literal['node', 'way', 'relation']
BoundaryElementType = Literal['way', 'relation']
ElementId = NewType('ElementId', int)
CompositeId = NewType('CompositeId', str)
"""CompositeId pairs the element type with its id, e.g. 'relation/123'."""

BOUNDARY_ELEMENT_TYPES: frozenset[str] = frozenset(get_args(BoundaryElementType))


def composite_id(type: BoundaryElementType, id: ElementId) -> CompositeId:
    """
    Build a composite id from element type and id.

    >>> composite_id('relation', ElementId(123))
    'relation/123'
    """
    return CompositeId(f'{type}/{id}')


def split_composite_id(s: str) -> tuple[BoundaryElementType, ElementId]:
    """
    Split a composite id into element type and id.

    Raises ValueError if the string is not a valid boundary composite id.

    >>> split_composite_id('way/42')
    ('way', 42)
    """
    type, sep, id_str = s.strip().partition('/')
    if not sep or type not in BOUNDARY_ELEMENT_TYPES:
        raise ValueError(f'Invalid boundary composite id {s!r}')
    if not id_str.isdigit() or (id := int(id_str)) <= 0:
        raise ValueError(f'Invalid element id in {s!r}')
    return type, ElementId(id)  # type: ignore[return-value]
