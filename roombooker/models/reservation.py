from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.orm import relationship

from roombooker.db import Base
from roombooker.domain.enums import AlternativeStatus, ReservationStatus


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_room_date_status", "room_id", "date", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    group_id = Column(String(32), nullable=True, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    purpose = Column(Text, nullable=False, default="")
    participant_count = Column(Integer, nullable=False, default=1)
    status = Column(
        Enum(
            ReservationStatus,
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    rejection_reason = Column(Text, nullable=True)
    proposed_alternative = Column(JSON, nullable=True)
    alternative_status = Column(
        Enum(
            AlternativeStatus,
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=True,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    room = relationship("Room", back_populates="reservations")
    user = relationship("User", back_populates="reservations")
