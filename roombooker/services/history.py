"""Audit trail for reservation lifecycle transitions and administrative actions."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from roombooker.domain.enums import DateRange, HistoryKind, Perspective
from roombooker.domain.intervals import format_time
from roombooker.domain.models import Actor
from roombooker.models.history import HistoryEntry
from roombooker.repository.history import HistoryRepository


def reservation_details(reservation, room_name: str) -> dict:
    details = {
        "room_id": reservation.room_id,
        "room": room_name,
        "date": reservation.date.isoformat(),
        "start_time": format_time(reservation.start_time),
        "end_time": format_time(reservation.end_time),
    }
    if reservation.group_id:
        details["group_id"] = reservation.group_id
    return details


class HistoryRecorder:
    """Builds typed entries and appends them; entries are never edited afterwards.

    Transitions performed by someone other than the owner are written twice:
    once for the actor ("my actions") and once for the owner ("actions
    affecting me"), so neither view needs a join.
    """

    def __init__(self, repository: HistoryRepository) -> None:
        self._repository = repository

    def append(
        self,
        kind: HistoryKind,
        actor: Optional[Actor],
        description: str,
        reservation_id: Optional[int] = None,
        target_user_id: Optional[int] = None,
        perspective: Perspective = Perspective.ACTOR,
        details: Optional[dict] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            kind=kind,
            perspective=perspective,
            actor_user_id=actor.id if actor else None,
            actor_name=actor.name if actor else "System",
            description=description,
            subject_reservation_id=reservation_id,
            target_user_id=target_user_id,
            details=dict(details or {}),
        )
        return self._repository.append(entry)

    def _append_pair(
        self,
        kind: HistoryKind,
        actor: Actor,
        reservation,
        actor_text: str,
        subject_text: str,
        details: dict,
    ) -> List[HistoryEntry]:
        return [
            self.append(
                kind,
                actor,
                actor_text,
                reservation_id=reservation.id,
                target_user_id=reservation.user_id,
                perspective=Perspective.ACTOR,
                details=details,
            ),
            self.append(
                kind,
                actor,
                subject_text,
                reservation_id=reservation.id,
                target_user_id=reservation.user_id,
                perspective=Perspective.SUBJECT,
                details=details,
            ),
        ]

    def record_created(self, actor: Actor, reservation, room_name: str) -> HistoryEntry:
        details = reservation_details(reservation, room_name)
        details["purpose"] = reservation.purpose
        return self.append(
            HistoryKind.RESERVATION_CREATED,
            actor,
            f'{actor.name} created a reservation for room "{room_name}" on {reservation.date.isoformat()}',
            reservation_id=reservation.id,
            target_user_id=reservation.user_id,
            details=details,
        )

    def record_validated(self, actor: Actor, reservation, room_name: str, owner_name: str) -> List[HistoryEntry]:
        day = reservation.date.isoformat()
        return self._append_pair(
            HistoryKind.RESERVATION_VALIDATED,
            actor,
            reservation,
            f'{actor.name} validated the reservation of {owner_name} for room "{room_name}" on {day}',
            f'Your reservation for room "{room_name}" on {day} was validated by {actor.name}',
            reservation_details(reservation, room_name),
        )

    def record_rejected(
        self,
        actor: Actor,
        reservation,
        room_name: str,
        owner_name: str,
        reason: str,
        alternative: Optional[dict] = None,
    ) -> List[HistoryEntry]:
        day = reservation.date.isoformat()
        details = reservation_details(reservation, room_name)
        details["reason"] = reason
        if alternative:
            details["proposed_alternative"] = alternative
        return self._append_pair(
            HistoryKind.RESERVATION_REJECTED,
            actor,
            reservation,
            f'{actor.name} rejected the reservation of {owner_name} for room "{room_name}" on {day}',
            f'Your reservation for room "{room_name}" on {day} was rejected by {actor.name}: {reason}',
            details,
        )

    def record_cancelled(self, actor: Actor, reservation, room_name: str) -> HistoryEntry:
        return self.append(
            HistoryKind.RESERVATION_CANCELLED,
            actor,
            f'{actor.name} cancelled the reservation for room "{room_name}" on {reservation.date.isoformat()}',
            reservation_id=reservation.id,
            target_user_id=reservation.user_id,
            details=reservation_details(reservation, room_name),
        )

    def record_deleted(self, actor: Actor, reservation, room_name: str, owner_name: str) -> List[HistoryEntry]:
        day = reservation.date.isoformat()
        details = reservation_details(reservation, room_name)
        details["status"] = reservation.status.value
        details["owner"] = owner_name
        return self._append_pair(
            HistoryKind.RESERVATION_DELETED,
            actor,
            reservation,
            f'{actor.name} deleted the reservation of {owner_name} for room "{room_name}" on {day}',
            f'Your reservation for room "{room_name}" on {day} was deleted by {actor.name}',
            details,
        )

    def record_updated(
        self,
        actor: Actor,
        reservation,
        room_name: str,
        owner_name: str,
        changes: dict,
    ) -> List[HistoryEntry]:
        details = reservation_details(reservation, room_name)
        details["changes"] = changes
        actor_text = f'{actor.name} updated the reservation for room "{room_name}"'
        if actor.id == reservation.user_id:
            return [
                self.append(
                    HistoryKind.RESERVATION_UPDATED,
                    actor,
                    actor_text,
                    reservation_id=reservation.id,
                    target_user_id=reservation.user_id,
                    details=details,
                )
            ]
        return self._append_pair(
            HistoryKind.RESERVATION_UPDATED,
            actor,
            reservation,
            f'{actor.name} updated the reservation of {owner_name} for room "{room_name}"',
            f'Your reservation for room "{room_name}" was updated by {actor.name}',
            details,
        )

    def record_alternative_accepted(
        self,
        actor: Actor,
        original,
        accepted,
        room_name: str,
    ) -> HistoryEntry:
        """Logged against the rejected reservation; ``details`` points at the new booking."""
        details = reservation_details(accepted, room_name)
        details["original_reservation_id"] = original.id
        details["new_reservation_id"] = accepted.id
        return self.append(
            HistoryKind.ALTERNATIVE_ACCEPTED,
            actor,
            f'{actor.name} accepted the proposed alternative: room "{room_name}" on {accepted.date.isoformat()}',
            reservation_id=original.id,
            target_user_id=original.user_id,
            details=details,
        )

    def record_alternative_refused(self, actor: Actor, original, room_name: str) -> HistoryEntry:
        details = dict(original.proposed_alternative)
        details["room"] = room_name
        return self.append(
            HistoryKind.ALTERNATIVE_REFUSED,
            actor,
            f'{actor.name} refused the proposed alternative in room "{room_name}" on {details["date"]}',
            reservation_id=original.id,
            target_user_id=original.user_id,
            details=details,
        )

    def record_login(self, actor: Actor) -> HistoryEntry:
        return self.append(HistoryKind.USER_LOGIN, actor, f"{actor.name} signed in")

    def query(
        self,
        kind: Optional[HistoryKind] = None,
        date_range: Optional[DateRange] = None,
        user_id: Optional[int] = None,
        target_user_id: Optional[int] = None,
        reservation_id: Optional[int] = None,
        perspective: Optional[Perspective] = None,
        involving_user_id: Optional[int] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[HistoryEntry]:
        return self._repository.query(
            kind=kind,
            date_range=date_range,
            user_id=user_id,
            target_user_id=target_user_id,
            reservation_id=reservation_id,
            perspective=perspective,
            involving_user_id=involving_user_id,
            limit=limit,
            now=now,
        )

    def stats(self, recent: int = 10) -> dict:
        by_kind = self._repository.count_by_kind()
        return {
            "total": sum(by_kind.values()),
            "by_kind": by_kind,
            "recent": self._repository.query(limit=recent),
        }

    def clear(self) -> int:
        return self._repository.clear()
