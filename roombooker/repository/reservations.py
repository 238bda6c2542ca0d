"""Reservation persistence behind the interface the lifecycle engine consumes."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from roombooker.domain.enums import BLOCKING_STATUSES, AlternativeStatus, ReservationStatus
from roombooker.models.reservation import Reservation


class ReservationRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, reservation_id: int) -> Optional[Reservation]:
        return self._db.get(Reservation, reservation_id)

    def refresh(self, reservation: Reservation) -> Reservation:
        self._db.refresh(reservation)
        return reservation

    def find_active(
        self,
        room_ids: Optional[Iterable[int]] = None,
        dates: Optional[Iterable[date]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Reservation]:
        """Snapshot of reservations that still hold their slot (pending or validated)."""
        query = self._db.query(Reservation).filter(
            Reservation.status.in_(list(BLOCKING_STATUSES))
        )
        if room_ids is not None:
            query = query.filter(Reservation.room_id.in_(list(room_ids)))
        if dates is not None:
            query = query.filter(Reservation.date.in_(list(dates)))
        if date_from is not None:
            query = query.filter(Reservation.date >= date_from)
        if date_to is not None:
            query = query.filter(Reservation.date <= date_to)
        return query.order_by(Reservation.date, Reservation.start_time).all()

    def find(
        self,
        status: Optional[ReservationStatus] = None,
        room_id: Optional[int] = None,
        user_id: Optional[int] = None,
        department_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Reservation]:
        query = self._db.query(Reservation)
        if status is not None:
            query = query.filter(Reservation.status == status)
        if room_id is not None:
            query = query.filter(Reservation.room_id == room_id)
        if user_id is not None:
            query = query.filter(Reservation.user_id == user_id)
        if department_id is not None:
            query = query.filter(Reservation.department_id == department_id)
        if date_from is not None:
            query = query.filter(Reservation.date >= date_from)
        if date_to is not None:
            query = query.filter(Reservation.date <= date_to)
        return query.order_by(Reservation.date, Reservation.start_time, Reservation.id).all()

    def group_members(self, group_id: str) -> List[Reservation]:
        return (
            self._db.query(Reservation)
            .filter(Reservation.group_id == group_id)
            .order_by(Reservation.id)
            .all()
        )

    def pending_alternatives(self, user_id: int) -> List[Reservation]:
        """Rejected reservations of ``user_id`` whose proposed alternative awaits an answer."""
        return (
            self._db.query(Reservation)
            .filter(
                Reservation.user_id == user_id,
                Reservation.status == ReservationStatus.REJECTED,
                Reservation.alternative_status == AlternativeStatus.PENDING,
            )
            .order_by(Reservation.id.desc())
            .all()
        )

    def persist(self, reservations: List[Reservation]) -> None:
        """Stage every reservation in the current transaction and assign ids."""
        self._db.add_all(reservations)
        self._db.flush()

    def remove(self, reservation: Reservation) -> None:
        self._db.delete(reservation)
        self._db.flush()
