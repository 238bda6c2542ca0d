from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from roombooker.db import get_db
from roombooker.dependencies import get_availability_service
from roombooker.domain.models import Actor
from roombooker.repository.directory import RoomRepository
from roombooker.schemas.room import RoomResponse, SlotResponse
from roombooker.services.availability import AvailabilityService
from roombooker.utils.auth import get_current_user


router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)


@router.get("/", response_model=List[RoomResponse])
def get_rooms(
    min_capacity: Optional[int] = None,
    only_available: bool = False,
    db: Session = Depends(get_db),
):
    """
    Retrieve meeting rooms, optionally only open ones with enough seats.
    """
    return RoomRepository(db).list(min_capacity=min_capacity, only_available=only_available)


@router.get("/suggestions", response_model=List[RoomResponse])
def suggest_rooms(
    date: date,
    start_time: str,
    end_time: str,
    participant_count: int = 1,
    exclude_id: Optional[int] = None,
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Rooms free for the whole slot with enough capacity, smallest first.
    """
    return availability.suggest_rooms(date, start_time, end_time, participant_count, exclude_id=exclude_id)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a specific meeting room by ID.
    """
    room = RoomRepository(db).get(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.get("/{room_id}/available-slots", response_model=List[SlotResponse])
def get_available_slots(
    room_id: int,
    date: date,
    duration: Optional[int] = None,
    availability: AvailabilityService = Depends(get_availability_service),
):
    """
    Free slots of ``duration`` minutes (default: one slot step) within the working day.
    """
    return availability.available_slots(room_id, date, duration)
