"""Detects which active reservations block a set of candidate intervals."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from roombooker.domain.enums import BLOCKING_STATUSES, ReservationStatus
from roombooker.domain.errors import ConflictError
from roombooker.domain.intervals import RoomTimeInterval, overlaps
from roombooker.domain.models import BookedSlot, SlotConflict
from roombooker.repository.reservations import ReservationRepository
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)


def detect_conflicts(
    candidates: Sequence[RoomTimeInterval],
    existing: Iterable,
    exclude_id: Optional[int] = None,
) -> List[SlotConflict]:
    """One ``SlotConflict`` per candidate, in candidate order.

    Candidates are never compared with each other: slots requested together
    are accepted together. Only pending and validated reservations block,
    and they are reported as detached ``BookedSlot`` copies.
    """
    blockers = [
        reservation
        for reservation in existing
        if reservation.id != exclude_id
        and ReservationStatus(reservation.status) in BLOCKING_STATUSES
    ]
    return [
        SlotConflict(
            candidate=candidate,
            blocking=tuple(BookedSlot.of(item) for item in blockers if overlaps(candidate, item)),
        )
        for candidate in candidates
    ]


class ConflictDetector:
    """Reads one snapshot of active reservations per check from the repository."""

    def __init__(self, reservations: ReservationRepository) -> None:
        self._reservations = reservations

    def find_conflicts(
        self,
        candidates: Sequence[RoomTimeInterval],
        exclude_id: Optional[int] = None,
    ) -> List[SlotConflict]:
        if not candidates:
            return []
        existing = self._reservations.find_active(
            room_ids={candidate.room_id for candidate in candidates},
            dates={candidate.date for candidate in candidates},
        )
        return detect_conflicts(candidates, existing, exclude_id=exclude_id)

    def ensure_available(
        self,
        candidates: Sequence[RoomTimeInterval],
        exclude_id: Optional[int] = None,
    ) -> None:
        conflicts = [item for item in self.find_conflicts(candidates, exclude_id) if item.is_blocked]
        if conflicts:
            error = ConflictError(conflicts)
            logger.warning(str(error))
            raise error
