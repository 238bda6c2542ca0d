from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from roombooker.domain.errors import NotFoundError, ValidationError
from roombooker.domain.intervals import RoomTimeInterval, normalize_time
from roombooker.repository.directory import RoomRepository
from roombooker.repository.reservations import ReservationRepository
from roombooker.services.conflicts import ConflictDetector, detect_conflicts
from roombooker.utils.config import Settings, get_settings


class AvailabilityService:
    """Read-only availability queries; nothing here mutates reservations."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._reservations = ReservationRepository(db)
        self._rooms = RoomRepository(db)
        self._conflicts = ConflictDetector(self._reservations)

    def check_availability(self, interval: RoomTimeInterval, exclude_id: Optional[int] = None) -> list:
        """
        Return the reservations blocking ``interval``; an empty list means the slot is free.
        """
        if self._rooms.get(interval.room_id) is None:
            raise NotFoundError("Room not found")
        conflicts = self._conflicts.find_conflicts([interval], exclude_id=exclude_id)
        return list(conflicts[0].blocking)

    def available_slots(self, room_id: int, day: date, duration: Optional[int] = None) -> List[dict]:
        """
        List free slots of ``duration`` minutes within the working day, walking
        from the start of the day and jumping over each active reservation.
        """
        if duration is None:
            duration = self._settings.slot_step_minutes
        if duration <= 0:
            raise ValidationError("Duration must be positive")
        if self._rooms.get(room_id) is None:
            raise NotFoundError("Room not found")

        day_start = datetime.combine(day, normalize_time(self._settings.working_day_start))
        day_end = datetime.combine(day, normalize_time(self._settings.working_day_end))
        bookings = self._reservations.find_active(room_ids=[room_id], dates=[day])

        slots = []
        current_time = day_start
        duration_delta = timedelta(minutes=duration)

        for booking in bookings:
            booking_start = datetime.combine(day, booking.start_time)
            booking_end = datetime.combine(day, booking.end_time)
            while current_time + duration_delta <= booking_start:
                slot_end = current_time + duration_delta
                slots.append({"start_time": current_time.time(), "end_time": slot_end.time()})
                current_time = slot_end
            current_time = max(current_time, booking_end)

        while current_time + duration_delta <= day_end:
            slot_end = current_time + duration_delta
            slots.append({"start_time": current_time.time(), "end_time": slot_end.time()})
            current_time = slot_end

        return slots

    def suggest_rooms(
        self,
        day: date,
        start_time,
        end_time,
        participant_count: int = 1,
        exclude_id: Optional[int] = None,
    ):
        """
        Rooms open for the whole slot with enough capacity, smallest room first.
        """
        rooms = self._rooms.list(min_capacity=participant_count, only_available=True)
        if not rooms:
            return []
        candidates = [RoomTimeInterval.build(room.id, day, start_time, end_time) for room in rooms]
        existing = self._reservations.find_active(room_ids=[room.id for room in rooms], dates=[day])
        conflicts = detect_conflicts(candidates, existing, exclude_id=exclude_id)
        free = [room for room, conflict in zip(rooms, conflicts) if not conflict.is_blocked]
        return sorted(free, key=lambda room: (room.capacity, room.id))
