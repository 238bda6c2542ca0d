"""User-facing notifications derived from lifecycle transitions."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from roombooker.db import transaction
from roombooker.domain.enums import NOTIFICATION_ROUTING, NotificationType, ReservationStatus
from roombooker.domain.errors import ForbiddenError, NotFoundError
from roombooker.domain.intervals import format_time
from roombooker.domain.models import Actor
from roombooker.models.notification import Notification
from roombooker.repository.notifications import NotificationRepository
from roombooker.repository.reservations import ReservationRepository
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)


def _slot_text(reservation, room_name: str) -> str:
    return (
        f'room "{room_name}" on {reservation.date.isoformat()} '
        f"from {format_time(reservation.start_time)} to {format_time(reservation.end_time)}"
    )


class NotificationDispatcher:
    """Emits notifications and manages their read state.

    ``emit`` and the ``reservation_*`` hooks only stage rows in the caller's
    transaction. The read-state operations commit on their own and are
    idempotent. Unread counts are always recomputed from storage.
    """

    def __init__(self, db: Session, repository: Optional[NotificationRepository] = None) -> None:
        self._db = db
        self._repository = repository or NotificationRepository(db)

    def emit(
        self,
        type: NotificationType,
        recipient_user_id: int,
        title: str,
        message: str,
        reservation_id: Optional[int] = None,
    ) -> Notification:
        severity, route = NOTIFICATION_ROUTING[type]
        notification = Notification(
            recipient_user_id=recipient_user_id,
            type=type,
            title=title,
            message=message,
            severity=severity,
            action_route=route,
            reservation_id=reservation_id,
            read=False,
        )
        return self._repository.add(notification)

    # -- lifecycle hooks -------------------------------------------------

    def reservation_created(
        self,
        actor: Actor,
        reservations: Sequence,
        room_name: str,
        reviewer_ids: Iterable[int],
    ) -> List[Notification]:
        first = reservations[0]
        recipients = [user_id for user_id in reviewer_ids if user_id != actor.id]
        emitted = []
        if len(reservations) == 1:
            for reviewer_id in recipients:
                emitted.append(
                    self.emit(
                        NotificationType.NEW_RESERVATION,
                        reviewer_id,
                        "New reservation request",
                        f"{actor.name} requested {_slot_text(first, room_name)}",
                        reservation_id=first.id,
                    )
                )
            return emitted

        days = sorted({item.date for item in reservations})
        summary = (
            f'{len(reservations)} slots in room "{room_name}" '
            f"from {days[0].isoformat()} to {days[-1].isoformat()}"
        )
        emitted.append(
            self.emit(
                NotificationType.RESERVATION_CREATED_GROUP,
                first.user_id,
                "Reservations submitted",
                f"Your request for {summary} is awaiting validation",
                reservation_id=first.id,
            )
        )
        for reviewer_id in recipients:
            emitted.append(
                self.emit(
                    NotificationType.ADMIN_NEW_RESERVATION_GROUP,
                    reviewer_id,
                    "New grouped reservation request",
                    f"{actor.name} requested {summary}",
                    reservation_id=first.id,
                )
            )
        return emitted

    def reservation_validated(self, actor: Actor, reservation, room_name: str) -> Optional[Notification]:
        if actor.id == reservation.user_id:
            return None
        return self.emit(
            NotificationType.RESERVATION_VALIDATED,
            reservation.user_id,
            "Reservation validated",
            f"Your reservation for {_slot_text(reservation, room_name)} was validated",
            reservation_id=reservation.id,
        )

    def reservation_rejected(self, actor: Actor, reservation, room_name: str, reason: str) -> Optional[Notification]:
        if actor.id == reservation.user_id:
            return None
        message = f"Your reservation for {_slot_text(reservation, room_name)} was rejected: {reason}"
        if reservation.proposed_alternative:
            alternative = reservation.proposed_alternative
            message += (
                f". Proposed alternative: room {alternative['room_id']} on {alternative['date']} "
                f"from {alternative['start_time']} to {alternative['end_time']}"
            )
        return self.emit(
            NotificationType.RESERVATION_REJECTED,
            reservation.user_id,
            "Reservation rejected",
            message,
            reservation_id=reservation.id,
        )

    def reservation_cancelled(
        self,
        actor: Actor,
        reservation,
        room_name: str,
        reviewer_ids: Iterable[int],
    ) -> List[Notification]:
        return [
            self.emit(
                NotificationType.RESERVATION_CANCELLED,
                reviewer_id,
                "Reservation cancelled",
                f"{actor.name} cancelled {_slot_text(reservation, room_name)}",
                reservation_id=reservation.id,
            )
            for reviewer_id in reviewer_ids
            if reviewer_id != actor.id
        ]

    def alternative_accepted(
        self,
        actor: Actor,
        accepted,
        room_name: str,
        reviewer_ids: Iterable[int],
    ) -> List[Notification]:
        return [
            self.emit(
                NotificationType.ALTERNATIVE_ACCEPTED,
                reviewer_id,
                "Alternative accepted",
                f"{actor.name} accepted the proposed {_slot_text(accepted, room_name)}",
                reservation_id=accepted.id,
            )
            for reviewer_id in reviewer_ids
            if reviewer_id != actor.id
        ]

    def alternative_refused(
        self,
        actor: Actor,
        original,
        reviewer_ids: Iterable[int],
    ) -> List[Notification]:
        alternative = original.proposed_alternative
        return [
            self.emit(
                NotificationType.ALTERNATIVE_REFUSED,
                reviewer_id,
                "Alternative refused",
                f"{actor.name} refused the proposed slot on {alternative['date']} "
                f"from {alternative['start_time']} to {alternative['end_time']}",
                reservation_id=original.id,
            )
            for reviewer_id in reviewer_ids
            if reviewer_id != actor.id
        ]

    def send_reminders(self, target_date: date) -> List[Notification]:
        """Remind owners of validated reservations on ``target_date``, once each."""
        reservations = ReservationRepository(self._db).find(
            status=ReservationStatus.VALIDATED,
            date_from=target_date,
            date_to=target_date,
        )
        with transaction(self._db, "reminders"):
            emitted = [
                self.emit(
                    NotificationType.REMINDER,
                    reservation.user_id,
                    "Upcoming reservation",
                    f"Reminder: you booked {_slot_text(reservation, reservation.room.name)}",
                    reservation_id=reservation.id,
                )
                for reservation in reservations
                if not self._repository.exists_for_reservation(NotificationType.REMINDER, reservation.id)
            ]
        logger.info("Sent %s reminders for %s", len(emitted), target_date.isoformat())
        return emitted

    # -- read state ------------------------------------------------------

    def list(
        self,
        recipient_user_id: int,
        read: Optional[bool] = None,
        type: Optional[NotificationType] = None,
    ) -> List[Notification]:
        return self._repository.for_recipient(recipient_user_id, read=read, type=type)

    def unread_count(self, recipient_user_id: int) -> int:
        return self._repository.unread_count(recipient_user_id)

    def _owned(self, notification_id: int, recipient_user_id: int) -> Optional[Notification]:
        notification = self._repository.get(notification_id)
        if notification is not None and notification.recipient_user_id != recipient_user_id:
            raise ForbiddenError("This notification belongs to another user")
        return notification

    def mark_read(self, notification_id: int, recipient_user_id: int) -> Notification:
        with transaction(self._db, "notification read state"):
            notification = self._owned(notification_id, recipient_user_id)
            if notification is None:
                raise NotFoundError("Notification not found")
            notification.read = True
        return notification

    def mark_all_read(self, recipient_user_id: int) -> int:
        with transaction(self._db, "notification read state"):
            updated = self._repository.mark_all_read(recipient_user_id)
        return updated

    def delete(self, notification_id: int, recipient_user_id: int) -> bool:
        with transaction(self._db, "notification deletion"):
            notification = self._owned(notification_id, recipient_user_id)
            if notification is not None:
                self._repository.remove(notification)
        return notification is not None

    def clear_read(self, recipient_user_id: int) -> int:
        with transaction(self._db, "notification deletion"):
            removed = self._repository.remove_read(recipient_user_id)
        return removed
