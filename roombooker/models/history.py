from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String, Text

from roombooker.db import Base
from roombooker.domain.enums import HistoryKind, Perspective


def _values(enum_cls):
    return [member.value for member in enum_cls]


class HistoryEntry(Base):
    """Append-only audit record.

    ``subject_reservation_id`` has no foreign key; entries outlive the
    reservations they describe.
    """

    __tablename__ = "history_entries"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.now, index=True)
    kind = Column(Enum(HistoryKind, native_enum=False, values_callable=_values), nullable=False)
    perspective = Column(
        Enum(Perspective, native_enum=False, values_callable=_values),
        nullable=False,
        default=Perspective.ACTOR,
    )
    actor_user_id = Column(Integer, nullable=True, index=True)
    actor_name = Column(String, nullable=False, default="System")
    description = Column(Text, nullable=False, default="")
    subject_reservation_id = Column(Integer, nullable=True, index=True)
    target_user_id = Column(Integer, nullable=True, index=True)
    details = Column(JSON, nullable=False, default=dict)
