"""Turns a booking request into the flat list of atomic room/day/interval tuples."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from roombooker.domain.errors import ValidationError
from roombooker.domain.intervals import RoomTimeInterval
from roombooker.domain.models import ExpandedRequest, ReservationRequest


def expand_request(request: ReservationRequest) -> ExpandedRequest:
    """Expand single, multi-slot and multi-day requests.

    The result holds ``days x slots`` intervals ordered by day, then by the
    order the slots were given. A ``group_id`` is generated only when more
    than one reservation will be created.
    """
    if not request.time_slots:
        raise ValidationError("At least one time slot is required")
    if request.participant_count < 1:
        raise ValidationError("participant_count must be at least 1")

    start_date = request.start_date
    end_date = request.end_date or start_date
    if end_date < start_date:
        raise ValidationError(
            f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}"
        )

    day_count = (end_date - start_date).days + 1
    intervals = tuple(
        RoomTimeInterval(
            room_id=request.room_id,
            date=start_date + timedelta(days=offset),
            start_time=slot.start_time,
            end_time=slot.end_time,
        )
        for offset in range(day_count)
        for slot in request.time_slots
    )

    return ExpandedRequest(
        intervals=intervals,
        purpose=(request.purpose or "").strip(),
        participant_count=request.participant_count,
        department_id=request.department_id,
        group_id=uuid4().hex if len(intervals) > 1 else None,
    )
