"""Domain value objects exchanged between the lifecycle components."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Tuple

from roombooker.domain.enums import REVIEWER_ROLES, ReservationStatus, Role
from roombooker.domain.errors import ValidationError
from roombooker.domain.intervals import RoomTimeInterval, TimeLike, format_time, normalize_time


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a lifecycle operation."""

    id: int
    name: str
    role: Role

    @property
    def is_reviewer(self) -> bool:
        return self.role in REVIEWER_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class TimeSlot:
    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"Start time {format_time(self.start_time)} must be before "
                f"end time {format_time(self.end_time)}"
            )

    @classmethod
    def parse(cls, start: TimeLike, end: TimeLike) -> "TimeSlot":
        return cls(normalize_time(start), normalize_time(end))


@dataclass(frozen=True)
class ReservationRequest:
    """A booking request: one slot, several slots on a day, or slots repeated daily.

    ``end_date`` defaults to ``start_date``; every slot is applied to every
    day of the inclusive range.
    """

    room_id: int
    start_date: date
    time_slots: Tuple[TimeSlot, ...]
    purpose: str = ""
    participant_count: int = 1
    department_id: Optional[int] = None
    end_date: Optional[date] = None

    @classmethod
    def single(cls, room_id: int, day: date, start: TimeLike, end: TimeLike, **metadata) -> "ReservationRequest":
        return cls(room_id=room_id, start_date=day, time_slots=(TimeSlot.parse(start, end),), **metadata)


@dataclass(frozen=True)
class ExpandedRequest:
    """Atomic intervals plus the metadata every resulting reservation shares."""

    intervals: Tuple[RoomTimeInterval, ...]
    purpose: str
    participant_count: int
    department_id: Optional[int]
    group_id: Optional[str]


@dataclass(frozen=True)
class BookedSlot:
    """Detached copy of an active reservation, safe to use after its session is gone."""

    id: int
    room_id: int
    date: date
    start_time: time
    end_time: time
    status: ReservationStatus

    @classmethod
    def of(cls, reservation) -> "BookedSlot":
        return cls(
            id=reservation.id,
            room_id=reservation.room_id,
            date=reservation.date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            status=ReservationStatus(reservation.status),
        )


@dataclass(frozen=True)
class SlotConflict:
    candidate: RoomTimeInterval
    blocking: Tuple[BookedSlot, ...] = ()

    @property
    def is_blocked(self) -> bool:
        return bool(self.blocking)


@dataclass(frozen=True)
class ProposedAlternative:
    """Alternate slot a reviewer offers when rejecting.

    It does not hold the slot; conflicts are checked when the owner accepts it.
    """

    interval: RoomTimeInterval
    motive: str = ""

    def to_dict(self) -> dict:
        return {
            "room_id": self.interval.room_id,
            "date": self.interval.date.isoformat(),
            "start_time": format_time(self.interval.start_time),
            "end_time": format_time(self.interval.end_time),
            "motive": self.motive,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProposedAlternative":
        interval = RoomTimeInterval.build(
            data["room_id"], date.fromisoformat(data["date"]), data["start_time"], data["end_time"]
        )
        return cls(interval, data.get("motive") or "")


@dataclass(frozen=True)
class ReservationPatch:
    """Field-level update; ``None`` means "leave unchanged"."""

    room_id: Optional[int] = None
    date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    purpose: Optional[str] = None
    participant_count: Optional[int] = None
    department_id: Optional[int] = None

    SLOT_FIELDS = ("room_id", "date", "start_time", "end_time")
    SHARED_FIELDS = ("purpose", "department_id")

    def provided(self) -> dict:
        names = self.SLOT_FIELDS + self.SHARED_FIELDS + ("participant_count",)
        return {name: getattr(self, name) for name in names if getattr(self, name) is not None}
