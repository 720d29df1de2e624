from datetime import datetime

import pytest

from rentalhub.models.reservation import Reservation


def _res(start_day, end_day):
    return Reservation(
        start_date=datetime(2024, 6, start_day),
        end_date=datetime(2024, 6, end_day),
        status="active",
    )


@pytest.mark.parametrize(
    "window, expected",
    [
        ((3, 7), True),    # existing starts inside
        ((8, 12), True),   # existing ends inside
        ((6, 8), True),    # window inside existing
        ((2, 10), True),   # window encloses existing
        ((10, 12), False), # starts where existing ends
        ((1, 5), False),   # ends where existing starts
    ],
)
def test_overlaps_with_half_open(window, expected):
    existing = _res(5, 10)
    start, end = window
    assert existing.overlaps_with(datetime(2024, 6, start), datetime(2024, 6, end)) is expected


def test_is_active():
    r = _res(1, 2)
    assert r.is_active
    r.status = "expired"
    assert not r.is_active
