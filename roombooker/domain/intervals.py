"""Room/day/interval value type and the half-open overlap rule."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Union

from roombooker.domain.errors import ValidationError


TimeLike = Union[str, time]


def normalize_time(value: TimeLike) -> time:
    """Return a whole-second ``time``; ``HH:MM`` is read as ``HH:MM:00``."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValidationError(f"Invalid time value: {value!r}")

    parts = value.strip().split(":")
    if len(parts) == 2:
        parts.append("00")
    if len(parts) != 3 or not all(len(part) == 2 and part.isdigit() for part in parts):
        raise ValidationError(f"Invalid time value: {value!r}, expected HH:MM or HH:MM:SS")
    hour, minute, second = (int(part) for part in parts)
    try:
        return time(hour, minute, second)
    except ValueError as exc:
        raise ValidationError(f"Invalid time value: {value!r}") from exc


def format_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


@dataclass(frozen=True)
class RoomTimeInterval:
    room_id: int
    date: date
    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"Start time {format_time(self.start_time)} must be before "
                f"end time {format_time(self.end_time)}"
            )

    @classmethod
    def build(cls, room_id: int, day: date, start: TimeLike, end: TimeLike) -> "RoomTimeInterval":
        return cls(room_id, day, normalize_time(start), normalize_time(end))

    def overlaps(self, other) -> bool:
        return overlaps(self, other)

    def label(self) -> str:
        return (
            f"room {self.room_id} on {self.date.isoformat()} "
            f"{format_time(self.start_time)}-{format_time(self.end_time)}"
        )


def overlaps(first, second) -> bool:
    """True when both share room and day and their ``[start, end)`` ranges intersect.

    Works on anything exposing ``room_id``, ``date``, ``start_time`` and
    ``end_time``, so stored reservations compare directly with candidates.
    Back-to-back slots do not overlap.
    """
    return (
        first.room_id == second.room_id
        and first.date == second.date
        and first.start_time < second.end_time
        and second.start_time < first.end_time
    )
