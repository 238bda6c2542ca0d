from datetime import date, timedelta

import pytest
from fastapi import status

from roombooker.domain.errors import NotFoundError, ValidationError
from roombooker.services.availability import AvailabilityService
from tests.conf_tests import auth_headers, clear_db, client, make_room, test_db, test_room, test_user

FUTURE = date.today() + timedelta(days=30)


def book(headers, room_id, start, end, day=FUTURE):
    response = client.post(
        "/reservations/",
        json={"room_id": room_id, "date": day.isoformat(), "start_time": start, "end_time": end},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()[0]


# Tests
def test_get_rooms_with_data(test_room):
    response = client.get("/rooms/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == test_room.id
    assert data[0]["name"] == test_room.name
    assert data[0]["available"] is True


def test_get_rooms_filters(test_db):
    make_room(test_db, name="Huddle", capacity=4)
    big = make_room(test_db, name="Auditorium", capacity=120)
    make_room(test_db, name="Closed", capacity=200, available=False)

    response = client.get("/rooms/", params={"min_capacity": 50, "only_available": True})
    assert [room["id"] for room in response.json()] == [big.id]


def test_get_room_success(test_room):
    response = client.get(f"/rooms/{test_room.id}")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == test_room.id
    assert data["capacity"] == test_room.capacity
    assert data["location"] == test_room.location


def test_get_room_not_found():
    response = client.get("/rooms/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Room not found"


def test_available_slots_skip_booked_time(auth_headers, test_room):
    book(auth_headers, test_room.id, "08:00", "12:00")
    book(auth_headers, test_room.id, "13:00", "21:00")

    response = client.get(
        f"/rooms/{test_room.id}/available-slots",
        params={"date": FUTURE.isoformat(), "duration": 60},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == [
        {"start_time": "12:00:00", "end_time": "13:00:00"},
        {"start_time": "21:00:00", "end_time": "22:00:00"},
    ]


def test_available_slots_default_to_slot_step(test_room):
    response = client.get(f"/rooms/{test_room.id}/available-slots", params={"date": FUTURE.isoformat()})
    slots = response.json()
    # 08:00 to 22:00 in 30 minute steps
    assert len(slots) == 28
    assert slots[0] == {"start_time": "08:00:00", "end_time": "08:30:00"}


def test_available_slots_for_missing_room():
    response = client.get("/rooms/9999/available-slots", params={"date": FUTURE.isoformat()})
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_suggestions_skip_busy_and_small_rooms(test_db, auth_headers):
    busy = make_room(test_db, name="Busy", capacity=12)
    small = make_room(test_db, name="Small", capacity=2)
    large = make_room(test_db, name="Large", capacity=30)
    medium = make_room(test_db, name="Medium", capacity=15)
    book(auth_headers, busy.id, "10:00", "11:00")

    response = client.get(
        "/rooms/suggestions",
        params={
            "date": FUTURE.isoformat(),
            "start_time": "10:30",
            "end_time": "11:30",
            "participant_count": 10,
        },
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert [room["id"] for room in response.json()] == [medium.id, large.id]
    assert small.id not in [room["id"] for room in response.json()]


# pylint: disable-next=redefined-outer-name
def test_availability_service_rejects_bad_duration(test_db, test_room):
    service = AvailabilityService(test_db)
    with pytest.raises(ValidationError):
        service.available_slots(test_room.id, FUTURE, duration=0)
    with pytest.raises(NotFoundError):
        service.available_slots(9999, FUTURE)


def test_available_slots_zero_duration_is_rejected(test_room):
    response = client.get(
        f"/rooms/{test_room.id}/available-slots",
        params={"date": FUTURE.isoformat(), "duration": 0},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Duration must be positive"
