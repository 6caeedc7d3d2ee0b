from datetime import datetime, time

import pytest

from trainer_timetable.errors import InvalidRangeError, ValidationError
from trainer_timetable.time_utils import TimeRange, format_hm, parse_hm, parse_ymd


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 15, hour, minute)


def test_disjoint_ranges_do_not_overlap():
    a = TimeRange(at(9), at(10))
    b = TimeRange(at(11), at(12))
    assert not a.overlaps(b)
    assert not b.overlaps(a)


def test_touching_ranges_do_not_overlap():
    a = TimeRange(at(10), at(11))
    b = TimeRange(at(11), at(12))
    assert not a.overlaps(b)
    assert not b.overlaps(a)


@pytest.mark.parametrize(
    "other",
    [
        TimeRange(at(10, 30), at(11, 30)),  # partial, later
        TimeRange(at(9, 30), at(10, 30)),  # partial, earlier
        TimeRange(at(10, 15), at(10, 45)),  # contained
        TimeRange(at(9), at(12)),  # containing
        TimeRange(at(10), at(11)),  # identical
    ],
)
def test_intersecting_ranges_overlap(other):
    base = TimeRange(at(10), at(11))
    assert base.overlaps(other)
    assert other.overlaps(base)


def test_end_must_be_after_start():
    with pytest.raises(InvalidRangeError):
        TimeRange(at(11), at(10))
    with pytest.raises(InvalidRangeError):
        TimeRange(at(10), at(10))


def test_invalid_range_is_a_validation_error():
    assert issubclass(InvalidRangeError, ValidationError)


def test_from_optional_requires_both_ends():
    with pytest.raises(ValidationError, match="required"):
        TimeRange.from_optional(at(10), None)
    with pytest.raises(ValidationError):
        TimeRange.from_optional(None, at(10))


def test_for_session_builds_occupied_range():
    occupied = TimeRange.for_session("2024-01-15", "09:00", 90)
    assert occupied.start == at(9)
    assert occupied.end == at(10, 30)


def test_for_session_crosses_midnight():
    occupied = TimeRange.for_session("2024-01-15", "23:30", 60)
    assert occupied.end == datetime(2024, 1, 16, 0, 30)


@pytest.mark.parametrize("date,value", [("2024-13-01", "09:00"), ("2024-01-15", "9am"), ("", "09:00")])
def test_for_session_rejects_malformed_input(date, value):
    with pytest.raises(ValidationError):
        TimeRange.for_session(date, value, 60)


def test_for_session_rejects_non_positive_duration():
    with pytest.raises(InvalidRangeError):
        TimeRange.for_session("2024-01-15", "09:00", 0)


def test_parse_helpers():
    assert parse_ymd("2024-01-15").isoformat() == "2024-01-15"
    assert parse_hm("09:05") == time(9, 5)
    assert parse_hm("09:05:30") == time(9, 5, 30)
    assert format_hm(time(9, 5, 30)) == "09:05"


@pytest.mark.parametrize(
    "date,value,duration",
    [("9999-12-31", "23:30", 60), ("2024-01-15", "09:00", 10**12)],
)
def test_for_session_past_calendar_end(date, value, duration):
    with pytest.raises(ValidationError, match="supported date range"):
        TimeRange.for_session(date, value, duration)
