from sqlalchemy import Column, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from roombooker.db import Base
from roombooker.domain.enums import Role
from roombooker.domain.models import Actor


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(
        Enum(Role, native_enum=False, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.USER,
    )
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)

    reservations = relationship("Reservation", back_populates="user")
    department = relationship("Department")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def to_actor(self):
        return Actor(id=self.id, name=self.full_name, role=Role(self.role))
