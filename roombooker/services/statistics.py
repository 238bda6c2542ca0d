"""Non-mutating projections over reservation and history collections."""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from roombooker.domain.enums import ReservationStatus
from roombooker.domain.errors import NotFoundError
from roombooker.models.reservation import Reservation
from roombooker.repository.reservations import ReservationRepository


def display_status(reservation, today: date) -> ReservationStatus:
    """Stored status, except validated reservations in the past show as completed."""
    status = ReservationStatus(reservation.status)
    if status == ReservationStatus.VALIDATED and reservation.date < today:
        return ReservationStatus.COMPLETED
    return status


def filter_reservations(
    reservations: Iterable,
    today: date,
    status: Optional[ReservationStatus] = None,
    room_id: Optional[int] = None,
    user_id: Optional[int] = None,
    department_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List:
    """Filters combine with AND; ``status`` matches the displayed status."""
    selected = []
    for reservation in reservations:
        if status is not None and display_status(reservation, today) != status:
            continue
        if room_id is not None and reservation.room_id != room_id:
            continue
        if user_id is not None and reservation.user_id != user_id:
            continue
        if department_id is not None and reservation.department_id != department_id:
            continue
        if date_from is not None and reservation.date < date_from:
            continue
        if date_to is not None and reservation.date > date_to:
            continue
        selected.append(reservation)
    return selected


def status_counts(reservations: Iterable, today: date) -> Dict[str, int]:
    counts = {status.value: 0 for status in ReservationStatus}
    for reservation in reservations:
        counts[display_status(reservation, today).value] += 1
    return counts


def counts_by_room(reservations: Iterable) -> Dict[int, int]:
    return dict(Counter(reservation.room_id for reservation in reservations))


def counts_by_department(reservations: Iterable) -> Dict[Optional[int], int]:
    return dict(Counter(reservation.department_id for reservation in reservations))


def daily_series(reservations: Iterable, start: date, end: date) -> List[dict]:
    """One point per calendar day in ``[start, end]``, zero-filled."""
    per_day = Counter(reservation.date for reservation in reservations)
    return [
        {"date": start + timedelta(days=offset), "count": per_day.get(start + timedelta(days=offset), 0)}
        for offset in range((end - start).days + 1)
    ]


def week_bounds(today: date):
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def on_day(reservations: Iterable, day: date) -> List:
    return [reservation for reservation in reservations if reservation.date == day]


def in_week(reservations: Iterable, today: date) -> List:
    monday, sunday = week_bounds(today)
    return [reservation for reservation in reservations if monday <= reservation.date <= sunday]


class ReservationQueryService:
    def __init__(self, db: Session, today=None) -> None:
        self._reservations = ReservationRepository(db)
        self._today = today or date.today

    def get(self, reservation_id: int) -> Reservation:
        reservation = self._reservations.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    def list(self, **filters) -> List[Reservation]:
        today = self._today()
        status = filters.pop("status", None)
        # ``completed`` is not stored, so fetch validated rows and derive it.
        stored = ReservationStatus.VALIDATED if status == ReservationStatus.COMPLETED else status
        rows = self._reservations.find(status=stored, **filters)
        return filter_reservations(rows, today, status=status)

    def stats(self, **filters) -> dict:
        today = self._today()
        reservations = self.list(**filters)
        if reservations:
            first_day = min(item.date for item in reservations)
            last_day = max(item.date for item in reservations)
            series = daily_series(reservations, first_day, last_day)
        else:
            series = []
        return {
            "total": len(reservations),
            "by_status": status_counts(reservations, today),
            "by_room": counts_by_room(reservations),
            "by_department": counts_by_department(reservations),
            "daily": series,
            "today": len(on_day(reservations, today)),
            "this_week": len(in_week(reservations, today)),
        }
