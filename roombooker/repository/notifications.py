"""Notification persistence keyed by recipient."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from roombooker.domain.enums import NotificationType
from roombooker.models.notification import Notification


class NotificationRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, notification: Notification) -> Notification:
        self._db.add(notification)
        self._db.flush()
        return notification

    def get(self, notification_id: int) -> Optional[Notification]:
        return self._db.get(Notification, notification_id)

    def for_recipient(
        self,
        recipient_user_id: int,
        read: Optional[bool] = None,
        type: Optional[NotificationType] = None,
    ) -> List[Notification]:
        query = self._db.query(Notification).filter(
            Notification.recipient_user_id == recipient_user_id
        )
        if read is not None:
            query = query.filter(Notification.read.is_(read))
        if type is not None:
            query = query.filter(Notification.type == type)
        return query.order_by(Notification.id.desc()).all()

    def unread_count(self, recipient_user_id: int) -> int:
        return (
            self._db.query(func.count(Notification.id))
            .filter(
                Notification.recipient_user_id == recipient_user_id,
                Notification.read.is_(False),
            )
            .scalar()
            or 0
        )

    def mark_all_read(self, recipient_user_id: int) -> int:
        return (
            self._db.query(Notification)
            .filter(
                Notification.recipient_user_id == recipient_user_id,
                Notification.read.is_(False),
            )
            .update({Notification.read: True}, synchronize_session="fetch")
        )

    def remove(self, notification: Notification) -> None:
        self._db.delete(notification)
        self._db.flush()

    def remove_read(self, recipient_user_id: int) -> int:
        return (
            self._db.query(Notification)
            .filter(
                Notification.recipient_user_id == recipient_user_id,
                Notification.read.is_(True),
            )
            .delete(synchronize_session="fetch")
        )

    def exists_for_reservation(self, type: NotificationType, reservation_id: int) -> bool:
        return (
            self._db.query(Notification.id)
            .filter(Notification.type == type, Notification.reservation_id == reservation_id)
            .first()
            is not None
        )
