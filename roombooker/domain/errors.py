"""Error taxonomy shared by every reservation lifecycle component."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:
    from roombooker.domain.models import SlotConflict


class BookingError(Exception):
    """Base class for business-rule failures surfaced to the caller."""


class ValidationError(BookingError):
    """Raised when a request is malformed (bad times, empty slots, missing reason)."""


class NotFoundError(BookingError):
    """Raised when a reservation, room or notification does not exist."""


class InvalidStateError(BookingError):
    """Raised when a transition is not permitted from the current status."""


class ForbiddenError(BookingError):
    """Raised when the actor lacks the role or ownership for a transition."""


class DependencyError(BookingError):
    """Raised when the persistence backend cannot complete the operation."""


class ConflictError(BookingError):
    """Raised when requested slots overlap active reservations.

    ``conflicts`` only holds the candidates that are actually blocked, each with
    the reservations blocking it, so callers can offer alternatives.
    """

    def __init__(self, conflicts: Iterable["SlotConflict"]) -> None:
        self.conflicts: List["SlotConflict"] = [item for item in conflicts if item.blocking]
        super().__init__(self._describe())

    @property
    def blocking(self) -> list:
        seen = {}
        for conflict in self.conflicts:
            for reservation in conflict.blocking:
                seen.setdefault(reservation.id, reservation)
        return list(seen.values())

    def _describe(self) -> str:
        parts = []
        for conflict in self.conflicts:
            taken = ", ".join(
                f"#{item.id} {item.start_time:%H:%M:%S}-{item.end_time:%H:%M:%S}"
                for item in conflict.blocking
            )
            parts.append(f"{conflict.candidate.label()} overlaps reservation(s) {taken}")
        return "Requested slot is not available: " + "; ".join(parts)
