from sqlalchemy.orm import relationship
from sqlalchemy import Boolean, Column, Integer, String
from roombooker.db import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    capacity = Column(Integer, nullable=False)
    location = Column(String, nullable=True)
    available = Column(Boolean, nullable=False, default=True)

    reservations = relationship("Reservation", back_populates="room")
