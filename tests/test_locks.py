import threading
from contextlib import contextmanager
from datetime import datetime

import pytest

from roombooker.domain.enums import Role
from roombooker.domain.errors import ConflictError, DependencyError
from roombooker.domain.models import ReservationRequest
from roombooker.models.reservation import Reservation
from roombooker.services.lifecycle import ReservationService
from roombooker.services.locks import RoomLockRegistry
from tests.conf_tests import DAY, NOW, TestingSessionLocal, clear_db, make_room, make_user, test_db


def test_lock_times_out_while_room_is_held():
    locks = RoomLockRegistry(timeout_seconds=0.05)
    with locks.hold([1]):
        with pytest.raises(DependencyError):
            with locks.hold([1]):
                pass
        # other rooms stay free
        with locks.hold([2]):
            pass


def test_locks_are_released_after_errors():
    locks = RoomLockRegistry(timeout_seconds=0.05)
    with pytest.raises(RuntimeError):
        with locks.hold([1, 2]):
            raise RuntimeError("boom")
    with locks.hold([2, 1]):
        pass


# pylint: disable-next=redefined-outer-name
def test_concurrent_overlapping_requests_book_once(test_db):
    room_id = make_room(test_db).id
    users = [make_user(test_db) for _ in range(4)]
    locks = RoomLockRegistry(timeout_seconds=10)
    barrier = threading.Barrier(len(users))
    outcomes = []

    def attempt(user_id, actor):
        db = TestingSessionLocal()
        try:
            service = ReservationService(db, locks=locks, clock=lambda: datetime(2024, 6, 1, 9, 0))
            barrier.wait()
            service.create(ReservationRequest.single(room_id, DAY, "10:00", "11:00"), actor)
            outcomes.append(("ok", user_id))
        except ConflictError:
            outcomes.append(("conflict", user_id))
        finally:
            db.close()

    threads = [threading.Thread(target=attempt, args=(user.id, user.to_actor())) for user in users]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(kind for kind, _ in outcomes) == ["conflict", "conflict", "conflict", "ok"]
    test_db.expire_all()
    assert test_db.query(Reservation).count() == 1


class RecordingLocks(RoomLockRegistry):
    """Records every set of rooms held; runs ``on_first_hold`` inside the first one."""

    def __init__(self, on_first_hold):
        super().__init__(timeout_seconds=1)
        self.held = []
        self._on_first_hold = on_first_hold

    @contextmanager
    def hold(self, room_ids):
        with super().hold(room_ids):
            self.held.append(sorted(set(room_ids)))
            if len(self.held) == 1:
                self._on_first_hold()
            yield


# pylint: disable-next=redefined-outer-name
def test_lock_follows_a_reservation_moved_while_waiting(test_db):
    first = make_room(test_db, name="First")
    second = make_room(test_db, name="Second")
    owner = make_user(test_db)
    reviewer = make_user(test_db, role=Role.RESPONSABLE)
    [reservation] = ReservationService(test_db, locks=RoomLockRegistry(1), clock=lambda: NOW).create(
        ReservationRequest.single(first.id, DAY, "10:00", "11:00"), owner.to_actor()
    )

    def move_to_second_room():
        db = TestingSessionLocal()
        try:
            db.get(Reservation, reservation.id).room_id = second.id
            db.commit()
        finally:
            db.close()

    locks = RecordingLocks(move_to_second_room)
    service = ReservationService(test_db, locks=locks, clock=lambda: NOW)
    validated = service.validate(reservation.id, reviewer.to_actor())

    assert validated.room_id == second.id
    assert locks.held == [[first.id], [second.id]]
