"""Reservation state machine.

pending -> validated | rejected | cancelled, validated -> cancelled while the
slot is not past, and any status -> hard-deleted by an admin. ``completed`` is
a display-only status and is never written here. A rejection may carry a
proposed slot, which the owner later accepts (booking it as a new validated
reservation) or refuses.

Every transition commits its state change together with its history entries;
notifications are written afterwards and a failure there is logged without
undoing the transition.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, time
from enum import Enum
from typing import Callable, Collection, Iterator, List, Optional

from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session

from roombooker.db import transaction
from roombooker.domain.enums import (
    CANCELLABLE_STATUSES,
    EDITABLE_STATUSES,
    AlternativeStatus,
    ReservationStatus,
)
from roombooker.domain.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from roombooker.domain.intervals import RoomTimeInterval, format_time
from roombooker.domain.models import Actor, ProposedAlternative, ReservationPatch, ReservationRequest
from roombooker.models.reservation import Reservation
from roombooker.repository.directory import RoomRepository, UserRepository
from roombooker.repository.history import HistoryRepository
from roombooker.repository.reservations import ReservationRepository
from roombooker.services.conflicts import ConflictDetector
from roombooker.services.expander import expand_request
from roombooker.services.history import HistoryRecorder
from roombooker.services.locks import RoomLockRegistry, room_locks
from roombooker.services.notifications import NotificationDispatcher
from roombooker.utils.config import Settings, get_settings
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, time):
        return format_time(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class ReservationService:
    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        locks: Optional[RoomLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        history: Optional[HistoryRecorder] = None,
        notifications: Optional[NotificationDispatcher] = None,
    ) -> None:
        self._db = db
        self._settings = settings or get_settings()
        self._locks = locks or room_locks
        self._clock = clock or datetime.now
        self._reservations = ReservationRepository(db)
        self._rooms = RoomRepository(db)
        self._users = UserRepository(db)
        self._conflicts = ConflictDetector(self._reservations)
        self._history = history or HistoryRecorder(
            HistoryRepository(db, self._settings.history_retention_limit, clock=self._clock)
        )
        self._notifications = notifications or NotificationDispatcher(db)

    # -- helpers -----------------------------------------------------------

    def _room_name(self, room_id: int) -> str:
        room = self._rooms.get(room_id)
        return room.name if room is not None else f"#{room_id}"

    def _owner_name(self, reservation: Reservation) -> str:
        owner = self._users.get(reservation.user_id)
        return owner.full_name if owner is not None else f"user #{reservation.user_id}"

    def _reviewer_ids(self) -> List[int]:
        return [user.id for user in self._users.reviewers()]

    @contextmanager
    def _locked(self, reservation_id: int, extra_rooms: Collection[int] = ()) -> Iterator[Reservation]:
        """Yield the reservation re-read under the lock of its room (and ``extra_rooms``).

        A concurrent update may move the reservation while we wait; in that
        case the locks are released and taken again for the room it now uses.
        """
        reservation = self._reservations.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        while True:
            rooms = {reservation.room_id, *extra_rooms}
            with self._locks.hold(rooms):
                try:
                    self._reservations.refresh(reservation)
                except InvalidRequestError:
                    raise NotFoundError(f"Reservation {reservation_id} not found") from None
                if reservation.room_id in rooms:
                    yield reservation
                    return
            logger.info(
                "Reservation %s moved to room %s while waiting for its lock",
                reservation_id,
                reservation.room_id,
            )

    @staticmethod
    def _require_status(reservation: Reservation, allowed, verb: str) -> None:
        current = ReservationStatus(reservation.status)
        if current not in allowed:
            raise InvalidStateError(f"Cannot {verb} reservation {reservation.id}: it is {current.value}")

    def _dispatch(self, action: str, emit: Callable[[], object]) -> None:
        try:
            emit()
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            logger.exception("Notifications for %s could not be stored; the transition is kept", action)

    # -- transitions -------------------------------------------------------

    def create(self, request: ReservationRequest, actor: Actor) -> List[Reservation]:
        """Book every slot of the request as ``pending``, or none of them."""
        expanded = expand_request(request)
        room = self._rooms.get(request.room_id)
        if room is None:
            raise NotFoundError("Room not found")

        with self._locks.hold([room.id]):
            with transaction(self._db, "reservation creation"):
                self._conflicts.ensure_available(expanded.intervals)
                created_at = self._clock()
                reservations = [
                    Reservation(
                        room_id=interval.room_id,
                        user_id=actor.id,
                        department_id=expanded.department_id,
                        group_id=expanded.group_id,
                        date=interval.date,
                        start_time=interval.start_time,
                        end_time=interval.end_time,
                        purpose=expanded.purpose,
                        participant_count=expanded.participant_count,
                        status=ReservationStatus.PENDING,
                        created_at=created_at,
                    )
                    for interval in expanded.intervals
                ]
                self._reservations.persist(reservations)
                for reservation in reservations:
                    self._history.record_created(actor, reservation, room.name)

        logger.info(
            "User %s booked %s slot(s) in room %s (group %s)",
            actor.id,
            len(reservations),
            room.id,
            expanded.group_id,
        )
        reviewer_ids = self._reviewer_ids()
        self._dispatch(
            "creation",
            lambda: self._notifications.reservation_created(actor, reservations, room.name, reviewer_ids),
        )
        return reservations

    def validate(self, reservation_id: int, actor: Actor) -> Reservation:
        if not actor.is_reviewer:
            raise ForbiddenError("Only responsables and admins can validate reservations")
        with self._locked(reservation_id) as reservation:
            self._require_status(reservation, {ReservationStatus.PENDING}, "validate")
            room_name = self._room_name(reservation.room_id)
            owner_name = self._owner_name(reservation)
            with transaction(self._db, "validation"):
                reservation.status = ReservationStatus.VALIDATED
                self._history.record_validated(actor, reservation, room_name, owner_name)

        logger.info("Reservation %s validated by user %s", reservation_id, actor.id)
        self._dispatch(
            "validation",
            lambda: self._notifications.reservation_validated(actor, reservation, room_name),
        )
        return reservation

    def reject(
        self,
        reservation_id: int,
        actor: Actor,
        reason: str,
        alternative: Optional[ProposedAlternative] = None,
    ) -> Reservation:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        if not actor.is_reviewer:
            raise ForbiddenError("Only responsables and admins can reject reservations")
        with self._locked(reservation_id) as reservation:
            self._require_status(reservation, {ReservationStatus.PENDING}, "reject")
            room_name = self._room_name(reservation.room_id)
            owner_name = self._owner_name(reservation)
            with transaction(self._db, "rejection"):
                reservation.status = ReservationStatus.REJECTED
                reservation.rejection_reason = reason
                reservation.proposed_alternative = alternative.to_dict() if alternative else None
                reservation.alternative_status = AlternativeStatus.PENDING if alternative else None
                self._history.record_rejected(
                    actor,
                    reservation,
                    room_name,
                    owner_name,
                    reason,
                    alternative=reservation.proposed_alternative,
                )

        logger.info("Reservation %s rejected by user %s", reservation_id, actor.id)
        self._dispatch(
            "rejection",
            lambda: self._notifications.reservation_rejected(actor, reservation, room_name, reason),
        )
        return reservation

    # -- proposed alternatives ---------------------------------------------

    @staticmethod
    def _pending_alternative(reservation: Reservation, actor: Actor, verb: str) -> ProposedAlternative:
        if reservation.user_id != actor.id:
            raise ForbiddenError(f"Only the owner can {verb} a proposed alternative")
        if (
            ReservationStatus(reservation.status) != ReservationStatus.REJECTED
            or reservation.alternative_status != AlternativeStatus.PENDING
            or not reservation.proposed_alternative
        ):
            raise InvalidStateError(f"Reservation {reservation.id} has no pending alternative")
        return ProposedAlternative.from_dict(reservation.proposed_alternative)

    def pending_alternatives(self, actor: Actor) -> List[Reservation]:
        return self._reservations.pending_alternatives(actor.id)

    def accept_alternative(self, reservation_id: int, actor: Actor) -> Reservation:
        """Book the slot a reviewer proposed when rejecting ``reservation_id``.

        The new reservation is validated straight away, since a reviewer
        offered it, but it still goes through conflict detection: the slot was
        never held while the owner made up their mind.
        """
        original = self._reservations.get(reservation_id)
        if original is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        proposed = self._pending_alternative(original, actor, "accept")

        with self._locked(reservation_id, [proposed.interval.room_id]) as original:
            interval = self._pending_alternative(original, actor, "accept").interval
            room = self._rooms.get(interval.room_id)
            if room is None:
                raise NotFoundError("Room not found")
            if interval.date < self._clock().date():
                raise InvalidStateError(f"The proposed slot {interval.label()} has already passed")
            with transaction(self._db, "alternative acceptance"):
                self._conflicts.ensure_available([interval])
                accepted = Reservation(
                    room_id=interval.room_id,
                    user_id=original.user_id,
                    department_id=original.department_id,
                    date=interval.date,
                    start_time=interval.start_time,
                    end_time=interval.end_time,
                    purpose=original.purpose,
                    participant_count=original.participant_count,
                    status=ReservationStatus.VALIDATED,
                    created_at=self._clock(),
                )
                self._reservations.persist([accepted])
                original.alternative_status = AlternativeStatus.ACCEPTED
                self._history.record_alternative_accepted(actor, original, accepted, room.name)

        logger.info(
            "User %s accepted the alternative to reservation %s as reservation %s",
            actor.id,
            reservation_id,
            accepted.id,
        )
        reviewer_ids = self._reviewer_ids()
        self._dispatch(
            "alternative acceptance",
            lambda: self._notifications.alternative_accepted(actor, accepted, room.name, reviewer_ids),
        )
        return accepted

    def refuse_alternative(self, reservation_id: int, actor: Actor) -> Reservation:
        with self._locked(reservation_id) as reservation:
            interval = self._pending_alternative(reservation, actor, "refuse").interval
            room_name = self._room_name(interval.room_id)
            with transaction(self._db, "alternative refusal"):
                reservation.alternative_status = AlternativeStatus.REFUSED
                self._history.record_alternative_refused(actor, reservation, room_name)

        logger.info("User %s refused the alternative to reservation %s", actor.id, reservation_id)
        reviewer_ids = self._reviewer_ids()
        self._dispatch(
            "alternative refusal",
            lambda: self._notifications.alternative_refused(actor, reservation, reviewer_ids),
        )
        return reservation

    def cancel(self, reservation_id: int, actor: Actor) -> Reservation:
        with self._locked(reservation_id) as reservation:
            if reservation.user_id != actor.id:
                raise ForbiddenError("Only the owner can cancel a reservation")
            self._require_status(reservation, CANCELLABLE_STATUSES, "cancel")
            if (
                ReservationStatus(reservation.status) == ReservationStatus.VALIDATED
                and reservation.date < self._clock().date()
            ):
                raise InvalidStateError(f"Reservation {reservation.id} already took place")
            room_name = self._room_name(reservation.room_id)
            with transaction(self._db, "cancellation"):
                reservation.status = ReservationStatus.CANCELLED
                self._history.record_cancelled(actor, reservation, room_name)

        logger.info("Reservation %s cancelled by its owner %s", reservation_id, actor.id)
        reviewer_ids = self._reviewer_ids()
        self._dispatch(
            "cancellation",
            lambda: self._notifications.reservation_cancelled(actor, reservation, room_name, reviewer_ids),
        )
        return reservation

    def delete(self, reservation_id: int, actor: Actor) -> None:
        """Hard-delete regardless of status; the history of the reservation is kept."""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can delete reservations")
        with self._locked(reservation_id) as reservation:
            room_name = self._room_name(reservation.room_id)
            owner_name = self._owner_name(reservation)
            with transaction(self._db, "deletion"):
                self._history.record_deleted(actor, reservation, room_name, owner_name)
                self._reservations.remove(reservation)
        logger.info("Reservation %s deleted by admin %s", reservation_id, actor.id)

    def update(self, reservation_id: int, actor: Actor, patch: ReservationPatch) -> Reservation:
        """Apply a field-level patch.

        Room, date and times may only move while the reservation is pending,
        and the new slot goes through conflict detection. Purpose and
        department are shared by a whole group, so they change on every member.
        """
        provided = patch.provided()
        if "participant_count" in provided and provided["participant_count"] < 1:
            raise ValidationError("participant_count must be at least 1")
        if "purpose" in provided:
            provided["purpose"] = provided["purpose"].strip()
        extra_rooms = []
        if "room_id" in provided:
            if self._rooms.get(provided["room_id"]) is None:
                raise NotFoundError("Room not found")
            extra_rooms.append(provided["room_id"])

        with self._locked(reservation_id, extra_rooms) as reservation:
            if reservation.user_id != actor.id and not actor.is_reviewer:
                raise ForbiddenError("Only the owner or a reviewer can update a reservation")
            self._require_status(reservation, EDITABLE_STATUSES, "update")

            changes = {
                name: (getattr(reservation, name), value)
                for name, value in provided.items()
                if getattr(reservation, name) != value
            }
            if not changes:
                return reservation
            slot_changed = any(name in ReservationPatch.SLOT_FIELDS for name in changes)
            if slot_changed and ReservationStatus(reservation.status) == ReservationStatus.VALIDATED:
                raise InvalidStateError(
                    "Room, date and time of a validated reservation cannot change"
                )

            shared = {name: new for name, (_, new) in changes.items() if name in ReservationPatch.SHARED_FIELDS}
            siblings = []
            if reservation.group_id and shared:
                siblings = [
                    member
                    for member in self._reservations.group_members(reservation.group_id)
                    if member.id != reservation.id
                ]

            with transaction(self._db, "update"):
                if slot_changed:
                    interval = RoomTimeInterval(
                        room_id=provided.get("room_id", reservation.room_id),
                        date=provided.get("date", reservation.date),
                        start_time=provided.get("start_time", reservation.start_time),
                        end_time=provided.get("end_time", reservation.end_time),
                    )
                    self._conflicts.ensure_available([interval], exclude_id=reservation.id)

                owner_name = self._owner_name(reservation)
                for name, (_, new) in changes.items():
                    setattr(reservation, name, new)
                diff = {
                    name: {"old": _jsonable(old), "new": _jsonable(new)}
                    for name, (old, new) in changes.items()
                }
                self._history.record_updated(
                    actor, reservation, self._room_name(reservation.room_id), owner_name, diff
                )
                for sibling in siblings:
                    sibling_diff = {
                        name: {"old": _jsonable(getattr(sibling, name)), "new": _jsonable(new)}
                        for name, new in shared.items()
                    }
                    for name, new in shared.items():
                        setattr(sibling, name, new)
                    self._history.record_updated(
                        actor, sibling, self._room_name(sibling.room_id), owner_name, sibling_diff
                    )

        logger.info(
            "Reservation %s updated by user %s (%s)",
            reservation_id,
            actor.id,
            ", ".join(sorted(changes)),
        )
        return reservation
