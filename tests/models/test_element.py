import pytest

from app.models.element import ElementId, composite_id, split_composite_id


@pytest.mark.parametrize(
    ('type', 'id', 'expected'),
    [
        ('relation', 123, 'relation/123'),
        ('way', 1, 'way/1'),
    ],
)
def test_composite_id(type, id, expected):
    assert composite_id(type, ElementId(id)) == expected
    assert split_composite_id(expected) == (type, id)


@pytest.mark.parametrize(
    'input',
    [
        '',
        'relation',
        'relation/',
        'node/1',
        'relation/abc',
        'relation/0',
        'relation/-5',
        '/123',
    ],
)
def test_split_composite_id_invalid(input):
    with pytest.raises(ValueError):
        split_composite_id(input)
