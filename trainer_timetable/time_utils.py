from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime, time as time_type, timedelta
from typing import Optional

from trainer_timetable.errors import InvalidRangeError, ValidationError


def parse_ymd(value: str) -> date_type:
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hm(value: str) -> time_type:
    """Accepts ``HH:MM`` or ``HH:MM:SS``."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time: {value!r}")


def minute_to_hm(value: int) -> str:
    hour = value // 60
    minute = value % 60
    return f"{hour:02d}:{minute:02d}"


def format_ymd(value: date_type) -> str:
    return value.strftime("%Y-%m-%d")


def format_hm(value: time_type) -> str:
    return minute_to_hm(value.hour * 60 + value.minute)


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidRangeError("End time must be after start time")

    def overlaps(self, other: TimeRange) -> bool:
        return self.start < other.end and other.start < self.end

    @classmethod
    def from_optional(cls, start: Optional[datetime], end: Optional[datetime]) -> TimeRange:
        if start is None or end is None:
            raise ValidationError("Start and end time are required")
        return cls(start=start, end=end)

    @classmethod
    def for_session(cls, date: str, time: str, duration: int) -> TimeRange:
        try:
            start = datetime.combine(parse_ymd(date), parse_hm(time))
        except ValueError:
            raise ValidationError("Invalid date or time format")
        if duration <= 0:
            raise InvalidRangeError("Duration must be a positive number of minutes")
        try:
            end = start + timedelta(minutes=duration)
        except OverflowError:
            raise ValidationError("Session runs past the supported date range")
        return cls(start=start, end=end)
