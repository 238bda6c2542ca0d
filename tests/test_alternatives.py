from datetime import date, timedelta

import pytest
from fastapi import status

from roombooker.domain.enums import AlternativeStatus, HistoryKind, NotificationType, ReservationStatus
from roombooker.domain.errors import ConflictError, ForbiddenError, InvalidStateError
from roombooker.domain.intervals import RoomTimeInterval
from roombooker.domain.models import ProposedAlternative, ReservationRequest
from roombooker.models.history import HistoryEntry
from roombooker.models.notification import Notification
from roombooker.models.reservation import Reservation
from tests.conf_tests import (
    DAY,
    auth_headers,
    clear_db,
    client,
    headers_for,
    make_room,
    make_service,
    other_user,
    reviewer,
    reviewer_headers,
    test_db,
    test_room,
    test_user,
)

FUTURE = date.today() + timedelta(days=30)


def rejected_with_alternative(service, owner, room, reviewer, alternative_room=None, day=DAY):
    [reservation] = service.create(
        ReservationRequest.single(room.id, DAY, "10:00", "11:00", purpose="Design review", participant_count=6),
        owner.to_actor(),
    )
    alternative = ProposedAlternative(
        interval=RoomTimeInterval.build((alternative_room or room).id, day, "15:00", "16:00"),
        motive="Afternoon is free",
    )
    return service.reject(reservation.id, reviewer.to_actor(), "Overbooked", alternative)


# pylint: disable-next=redefined-outer-name
def test_accept_books_the_proposed_slot_as_validated(test_db, test_user, test_room, reviewer):
    service = make_service(test_db)
    other_room = make_room(test_db, name="Annex", capacity=8)
    original = rejected_with_alternative(service, test_user, test_room, reviewer, alternative_room=other_room)
    assert [item.id for item in service.pending_alternatives(test_user.to_actor())] == [original.id]

    accepted = service.accept_alternative(original.id, test_user.to_actor())

    assert accepted.id != original.id
    assert accepted.status == ReservationStatus.VALIDATED
    assert accepted.room_id == other_room.id
    assert (accepted.date, str(accepted.start_time), str(accepted.end_time)) == (DAY, "15:00:00", "16:00:00")
    assert accepted.purpose == "Design review"
    assert accepted.participant_count == 6
    assert accepted.user_id == test_user.id

    test_db.expire_all()
    stored = test_db.get(Reservation, original.id)
    assert stored.status == ReservationStatus.REJECTED
    assert stored.alternative_status == AlternativeStatus.ACCEPTED
    assert service.pending_alternatives(test_user.to_actor()) == []

    [entry] = test_db.query(HistoryEntry).filter(HistoryEntry.kind == HistoryKind.ALTERNATIVE_ACCEPTED).all()
    assert entry.subject_reservation_id == original.id
    assert entry.details["new_reservation_id"] == accepted.id
    assert entry.details["room"] == "Annex"

    [notification] = (
        test_db.query(Notification).filter(Notification.type == NotificationType.ALTERNATIVE_ACCEPTED).all()
    )
    assert notification.recipient_user_id == reviewer.id
    assert notification.reservation_id == accepted.id


# pylint: disable-next=redefined-outer-name
def test_accept_runs_conflict_detection(test_db, test_user, other_user, test_room, reviewer):
    service = make_service(test_db)
    original = rejected_with_alternative(service, test_user, test_room, reviewer)
    service.create(ReservationRequest.single(test_room.id, DAY, "15:30", "16:30"), other_user.to_actor())

    with pytest.raises(ConflictError):
        service.accept_alternative(original.id, test_user.to_actor())

    test_db.expire_all()
    assert test_db.get(Reservation, original.id).alternative_status == AlternativeStatus.PENDING
    assert test_db.query(Reservation).filter(Reservation.user_id == test_user.id).count() == 1
    assert test_db.query(HistoryEntry).filter(HistoryEntry.kind == HistoryKind.ALTERNATIVE_ACCEPTED).count() == 0


# pylint: disable-next=redefined-outer-name
def test_only_the_owner_answers_an_alternative(test_db, test_user, other_user, test_room, reviewer):
    service = make_service(test_db)
    original = rejected_with_alternative(service, test_user, test_room, reviewer)

    with pytest.raises(ForbiddenError):
        service.accept_alternative(original.id, other_user.to_actor())
    with pytest.raises(ForbiddenError):
        service.refuse_alternative(original.id, reviewer.to_actor())


# pylint: disable-next=redefined-outer-name
def test_alternative_is_answered_once(test_db, test_user, test_room, reviewer):
    service = make_service(test_db)
    original = rejected_with_alternative(service, test_user, test_room, reviewer)

    refused = service.refuse_alternative(original.id, test_user.to_actor())
    assert refused.alternative_status == AlternativeStatus.REFUSED

    with pytest.raises(InvalidStateError):
        service.accept_alternative(original.id, test_user.to_actor())
    with pytest.raises(InvalidStateError):
        service.refuse_alternative(original.id, test_user.to_actor())

    [entry] = test_db.query(HistoryEntry).filter(HistoryEntry.kind == HistoryKind.ALTERNATIVE_REFUSED).all()
    assert entry.actor_user_id == test_user.id
    assert entry.details["start_time"] == "15:00:00"
    [notification] = (
        test_db.query(Notification).filter(Notification.type == NotificationType.ALTERNATIVE_REFUSED).all()
    )
    assert notification.recipient_user_id == reviewer.id


# pylint: disable-next=redefined-outer-name
def test_rejection_without_alternative_has_nothing_to_accept(test_db, test_user, test_room, reviewer):
    service = make_service(test_db)
    [reservation] = service.create(ReservationRequest.single(test_room.id, DAY, "10:00", "11:00"), test_user.to_actor())
    rejected = service.reject(reservation.id, reviewer.to_actor(), "No")
    assert rejected.alternative_status is None

    with pytest.raises(InvalidStateError):
        service.accept_alternative(reservation.id, test_user.to_actor())


# pylint: disable-next=redefined-outer-name
def test_lapsed_alternative_cannot_be_accepted(test_db, test_user, test_room, reviewer):
    service = make_service(test_db)
    original = rejected_with_alternative(service, test_user, test_room, reviewer, day=date(2024, 5, 30))

    with pytest.raises(InvalidStateError):
        service.accept_alternative(original.id, test_user.to_actor())


def test_alternative_endpoints(auth_headers, reviewer_headers, test_room, other_user):
    reservation = client.post(
        "/reservations/",
        json={"room_id": test_room.id, "date": FUTURE.isoformat(), "start_time": "10:00", "end_time": "11:00"},
        headers=auth_headers,
    ).json()[0]
    client.put(
        f"/reservations/{reservation['id']}/reject",
        json={
            "reason": "Room booked for an exam",
            "alternative": {
                "room_id": test_room.id,
                "date": FUTURE.isoformat(),
                "start_time": "16:00",
                "end_time": "17:00",
            },
        },
        headers=reviewer_headers,
    )

    pending = client.get("/reservations/alternatives", headers=auth_headers)
    assert pending.status_code == status.HTTP_200_OK
    [item] = pending.json()
    assert item["id"] == reservation["id"]
    assert item["alternative_status"] == "pending"

    url = f"/reservations/{reservation['id']}/alternative/accept"
    assert client.put(url, headers=headers_for(other_user)).status_code == status.HTTP_403_FORBIDDEN

    accepted = client.put(url, headers=auth_headers)
    assert accepted.status_code == status.HTTP_201_CREATED
    data = accepted.json()
    assert data["status"] == "validated"
    assert data["start_time"] == "16:00:00"

    assert client.put(url, headers=auth_headers).status_code == status.HTTP_409_CONFLICT
    refuse = client.put(f"/reservations/{reservation['id']}/alternative/refuse", headers=auth_headers)
    assert refuse.status_code == status.HTTP_409_CONFLICT
    assert client.get("/reservations/alternatives", headers=auth_headers).json() == []
