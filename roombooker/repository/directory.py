"""Read access to rooms and users (display metadata and reviewer lookup)."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from roombooker.domain.enums import REVIEWER_ROLES
from roombooker.models.room import Room
from roombooker.models.user import User


class RoomRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, room_id: int) -> Optional[Room]:
        return self._db.get(Room, room_id)

    def list(self, min_capacity: Optional[int] = None, only_available: bool = False) -> List[Room]:
        query = self._db.query(Room)
        if min_capacity is not None:
            query = query.filter(Room.capacity >= min_capacity)
        if only_available:
            query = query.filter(Room.available.is_(True))
        return query.order_by(Room.id).all()


class UserRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, user_id: int) -> Optional[User]:
        return self._db.get(User, user_id)

    def reviewers(self) -> List[User]:
        return (
            self._db.query(User)
            .filter(User.role.in_(list(REVIEWER_ROLES)))
            .order_by(User.id)
            .all()
        )
