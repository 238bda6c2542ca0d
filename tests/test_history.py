from datetime import datetime, timedelta

import pytest

from roombooker.domain.enums import DateRange, HistoryKind, Perspective, Role
from roombooker.domain.models import Actor
from roombooker.repository.history import HistoryRepository
from roombooker.services.history import HistoryRecorder
from tests.conf_tests import clear_db, test_db


ALICE = Actor(id=1, name="Alice Martin", role=Role.USER)
BOB = Actor(id=2, name="Bob Durand", role=Role.ADMIN)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def recorder(db, limit=1000, clock=None):
    return HistoryRecorder(HistoryRepository(db, limit, clock=clock or Clock(datetime(2024, 6, 1, 12, 0))))


# pylint: disable-next=redefined-outer-name
def test_retention_must_be_positive(test_db):
    with pytest.raises(ValueError):
        HistoryRepository(test_db, 0)


# pylint: disable-next=redefined-outer-name
def test_retention_evicts_oldest_entries(test_db):
    history = recorder(test_db, limit=3)
    for number in range(5):
        history.append(HistoryKind.INFO, ALICE, f"entry {number}")
    test_db.commit()

    assert [entry.description for entry in history.query()] == ["entry 4", "entry 3", "entry 2"]


# pylint: disable-next=redefined-outer-name
def test_filters_combine_with_and(test_db):
    history = recorder(test_db)
    history.append(HistoryKind.RESERVATION_CREATED, ALICE, "created", reservation_id=10, target_user_id=1)
    history.append(
        HistoryKind.RESERVATION_VALIDATED, BOB, "validated", reservation_id=10, target_user_id=1
    )
    history.append(
        HistoryKind.RESERVATION_VALIDATED,
        BOB,
        "your booking was validated",
        reservation_id=10,
        target_user_id=1,
        perspective=Perspective.SUBJECT,
    )
    history.append(HistoryKind.RESERVATION_VALIDATED, BOB, "other", reservation_id=11, target_user_id=3)
    test_db.commit()

    validated_for_alice = history.query(kind=HistoryKind.RESERVATION_VALIDATED, target_user_id=1)
    assert [entry.description for entry in validated_for_alice] == ["your booking was validated", "validated"]

    subject_only = history.query(
        kind=HistoryKind.RESERVATION_VALIDATED, target_user_id=1, perspective=Perspective.SUBJECT
    )
    assert [entry.description for entry in subject_only] == ["your booking was validated"]

    assert [entry.description for entry in history.query(user_id=ALICE.id)] == ["created"]
    assert len(history.query(reservation_id=10)) == 3
    assert history.query(kind=HistoryKind.RESERVATION_DELETED) == []


# pylint: disable-next=redefined-outer-name
def test_involving_user_matches_actor_or_target(test_db):
    history = recorder(test_db)
    history.append(HistoryKind.USER_LOGIN, ALICE, "Alice signed in")
    history.append(HistoryKind.RESERVATION_VALIDATED, BOB, "validated for Alice", target_user_id=ALICE.id)
    history.append(HistoryKind.USER_LOGIN, BOB, "Bob signed in")
    test_db.commit()

    assert [entry.description for entry in history.query(involving_user_id=ALICE.id)] == [
        "validated for Alice",
        "Alice signed in",
    ]


# pylint: disable-next=redefined-outer-name
def test_date_range_windows_are_rolling(test_db):
    clock = Clock(datetime(2024, 6, 1, 12, 0))
    history = recorder(test_db, clock=clock)
    now = clock.now
    for label, age in [("old", 400), ("months", 100), ("weeks", 20), ("days", 3), ("hours", 0)]:
        clock.now = now - timedelta(days=age, hours=1 if label == "hours" else 0)
        history.append(HistoryKind.INFO, ALICE, label)
    test_db.commit()

    def described(date_range):
        return [entry.description for entry in history.query(date_range=date_range, now=now)]

    assert described(DateRange.TODAY) == ["hours"]
    assert described(DateRange.WEEK) == ["hours", "days"]
    assert described(DateRange.MONTH) == ["hours", "days", "weeks"]
    assert described(DateRange.YEAR) == ["hours", "days", "weeks", "months"]
    assert len(described(None)) == 5


# pylint: disable-next=redefined-outer-name
def test_limit_keeps_most_recent(test_db):
    history = recorder(test_db)
    for number in range(4):
        history.append(HistoryKind.INFO, ALICE, f"entry {number}")
    test_db.commit()
    assert [entry.description for entry in history.query(limit=2)] == ["entry 3", "entry 2"]


# pylint: disable-next=redefined-outer-name
def test_stats_and_clear(test_db):
    history = recorder(test_db)
    history.record_login(ALICE)
    history.record_login(BOB)
    history.append(HistoryKind.INFO, None, "maintenance window")
    test_db.commit()

    stats = history.stats(recent=2)
    assert stats["total"] == 3
    assert stats["by_kind"] == {"user_login": 2, "info": 1}
    assert [entry.description for entry in stats["recent"]] == ["maintenance window", "Bob Durand signed in"]
    assert stats["recent"][0].actor_name == "System"

    assert history.clear() == 3
    test_db.commit()
    assert history.query() == []
