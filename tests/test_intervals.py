from datetime import date, time
from types import SimpleNamespace

import pytest

from roombooker.domain.enums import ReservationStatus
from roombooker.domain.errors import ValidationError
from roombooker.domain.intervals import RoomTimeInterval, normalize_time, overlaps


DAY = date(2024, 6, 10)


def interval(start, end, room_id=5, day=DAY):
    return RoomTimeInterval.build(room_id, day, start, end)


def test_normalize_time_appends_seconds():
    assert normalize_time("10:00") == time(10, 0, 0)
    assert normalize_time("10:30:15") == time(10, 30, 15)
    assert normalize_time(time(9, 15, 0, 500)) == time(9, 15, 0)


@pytest.mark.parametrize("value", ["", "10", "25:00", "10:60", "1:00", "ab:cd", "10:00:00:00"])
def test_normalize_time_rejects_malformed_values(value):
    with pytest.raises(ValidationError):
        normalize_time(value)


def test_interval_requires_start_before_end():
    with pytest.raises(ValidationError):
        interval("11:00", "10:00")
    with pytest.raises(ValidationError):
        interval("10:00", "10:00")


def test_overlap_is_symmetric():
    first = interval("10:00", "11:00")
    second = interval("10:30", "11:30")
    assert overlaps(first, second)
    assert overlaps(second, first)


def test_adjacent_intervals_do_not_overlap():
    assert not interval("10:00", "11:00").overlaps(interval("11:00", "12:00"))
    assert not interval("11:00", "12:00").overlaps(interval("10:00", "11:00"))


def test_containment_overlaps():
    assert interval("09:00", "12:00").overlaps(interval("10:00", "11:00"))


def test_other_room_or_day_never_overlaps():
    base = interval("10:00", "11:00")
    assert not base.overlaps(interval("10:00", "11:00", room_id=6))
    assert not base.overlaps(interval("10:00", "11:00", day=date(2024, 6, 11)))


def test_overlap_accepts_stored_reservations():
    stored = SimpleNamespace(
        room_id=5,
        date=DAY,
        start_time=time(10, 0),
        end_time=time(11, 0),
        status=ReservationStatus.VALIDATED,
    )
    assert overlaps(interval("10:30", "11:30"), stored)


def test_label_names_room_day_and_range():
    assert interval("10:00", "11:00").label() == "room 5 on 2024-06-10 10:00:00-11:00:00"
