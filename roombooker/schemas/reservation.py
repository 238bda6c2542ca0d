import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from roombooker.domain.enums import AlternativeStatus, ReservationStatus
from roombooker.domain.intervals import RoomTimeInterval, normalize_time
from roombooker.domain.models import ProposedAlternative, ReservationPatch, ReservationRequest, TimeSlot
from roombooker.services.statistics import display_status


class TimeSlotIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: str = Field(alias="heure_debut")
    end_time: str = Field(alias="heure_fin")


class ReservationCreate(BaseModel):
    """Single slot, several slots on one day, or slots repeated over a date range."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: int
    date: datetime.date = Field(alias="date_debut")
    end_date: Optional[datetime.date] = Field(default=None, alias="date_fin")
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    time_slots: List[TimeSlotIn] = Field(default_factory=list)
    purpose: str = ""
    participant_count: int = 1
    department_id: Optional[int] = None

    @model_validator(mode="after")
    def merge_single_slot(self):
        if not self.time_slots and self.start_time and self.end_time:
            self.time_slots = [TimeSlotIn(start_time=self.start_time, end_time=self.end_time)]
        return self

    def to_request(self) -> ReservationRequest:
        return ReservationRequest(
            room_id=self.room_id,
            start_date=self.date,
            end_date=self.end_date,
            time_slots=tuple(TimeSlot.parse(slot.start_time, slot.end_time) for slot in self.time_slots),
            purpose=self.purpose,
            participant_count=self.participant_count,
            department_id=self.department_id,
        )


class ReservationUpdate(BaseModel):
    room_id: Optional[int] = None
    date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    purpose: Optional[str] = None
    participant_count: Optional[int] = None
    department_id: Optional[int] = None

    def to_patch(self) -> ReservationPatch:
        data = self.model_dump(exclude_unset=True, exclude_none=True)
        for name in ("start_time", "end_time"):
            if name in data:
                data[name] = normalize_time(data[name])
        return ReservationPatch(**data)


class AlternativeIn(BaseModel):
    room_id: int
    date: datetime.date
    start_time: str
    end_time: str
    motive: str = ""

    def to_domain(self) -> ProposedAlternative:
        return ProposedAlternative(
            interval=RoomTimeInterval.build(self.room_id, self.date, self.start_time, self.end_time),
            motive=self.motive,
        )


class RejectionIn(BaseModel):
    reason: str = ""
    alternative: Optional[AlternativeIn] = None


class ReservationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_id: int
    user_id: int
    department_id: Optional[int] = None
    group_id: Optional[str] = None
    date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    purpose: str
    participant_count: int
    status: ReservationStatus
    rejection_reason: Optional[str] = None
    proposed_alternative: Optional[dict] = None
    alternative_status: Optional[AlternativeStatus] = None
    created_at: datetime.datetime

    @computed_field
    @property
    def display_status(self) -> ReservationStatus:
        return display_status(self, datetime.date.today())


class ConflictOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    room_id: int
    date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    status: ReservationStatus


class AvailabilityResponse(BaseModel):
    available: bool
    conflicts: List[ConflictOut]
