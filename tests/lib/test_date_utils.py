from datetime import UTC, datetime, timedelta, timezone

import pytest

from app.lib.date_utils import format_iso_date, utcnow


def test_utcnow():
    assert utcnow().tzinfo is UTC


@pytest.mark.parametrize(
    ('input', 'expected'),
    [
        (None, None),
        (datetime(2024, 5, 1, 8, 0, 0, 999999, UTC), '2024-05-01T08:00:00Z'),
        (datetime(2024, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=2))), '2024-05-01T08:00:00Z'),
    ],
)
def test_format_iso_date(input, expected):
    assert format_iso_date(input) == expected
