from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text

from roombooker.db import Base
from roombooker.domain.enums import NotificationType, Severity


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(
        Enum(NotificationType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False, default="")
    severity = Column(
        Enum(Severity, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Severity.INFO,
    )
    action_route = Column(String, nullable=False, default="/reservations")
    reservation_id = Column(Integer, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
