from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from roombooker.dependencies import get_availability_service, get_query_service, get_reservation_service
from roombooker.domain.enums import ReservationStatus
from roombooker.domain.intervals import RoomTimeInterval
from roombooker.domain.models import Actor
from roombooker.schemas.reservation import (
    AvailabilityResponse,
    ConflictOut,
    RejectionIn,
    ReservationCreate,
    ReservationResponse,
    ReservationUpdate,
)
from roombooker.services.availability import AvailabilityService
from roombooker.services.lifecycle import ReservationService
from roombooker.services.statistics import ReservationQueryService
from roombooker.utils.auth import get_current_user
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(
    prefix="/reservations",
    tags=["reservations"],
)


def _parse_status(value: Optional[str]) -> Optional[ReservationStatus]:
    if value is None:
        return None
    try:
        return ReservationStatus.from_label(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post(
    "/",
    response_model=List[ReservationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create reservations",
    description="Book one slot, several slots on a day, or slots repeated over a date range.",
)
def create_reservation(
    payload: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Create one or more pending reservations. All slots are booked or none.

    - **room_id**: ID of the room to book.
    - **date** / **end_date**: first and last day (inclusive) of the request.
    - **time_slots**: list of `{start_time, end_time}` applied to every day.
    - **purpose**, **participant_count**, **department_id**: shared metadata.
    """
    logger.debug("Creating reservation for user %s, room_id %s", current_user.id, payload.room_id)
    return service.create(payload.to_request(), current_user)


@router.get(
    "/",
    response_model=List[ReservationResponse],
    summary="List reservations",
)
def list_reservations(
    status_label: Optional[str] = Query(default=None, alias="status"),
    room_id: Optional[int] = None,
    user_id: Optional[int] = None,
    department_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    queries: ReservationQueryService = Depends(get_query_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Filter reservations by status, room, user, department and date window.
    Regular users only see their own reservations.
    """
    if not current_user.is_reviewer:
        user_id = current_user.id
    return queries.list(
        status=_parse_status(status_label),
        room_id=room_id,
        user_id=user_id,
        department_id=department_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    summary="Check a slot",
)
def check_availability(
    room_id: int,
    date: date,
    start_time: str,
    end_time: str,
    exclude_id: Optional[int] = None,
    availability: AvailabilityService = Depends(get_availability_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Report whether a slot is free, listing blocking reservations otherwise.
    """
    interval = RoomTimeInterval.build(room_id, date, start_time, end_time)
    blocking = availability.check_availability(interval, exclude_id=exclude_id)
    return AvailabilityResponse(
        available=not blocking,
        conflicts=[ConflictOut.model_validate(item) for item in blocking],
    )


@router.get("/stats", summary="Reservation statistics")
def reservation_stats(
    status_label: Optional[str] = Query(default=None, alias="status"),
    room_id: Optional[int] = None,
    department_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    queries: ReservationQueryService = Depends(get_query_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Status, room and department counts plus a daily series for the filtered set.
    """
    return queries.stats(
        status=_parse_status(status_label),
        room_id=room_id,
        user_id=None if current_user.is_reviewer else current_user.id,
        department_id=department_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get(
    "/alternatives",
    response_model=List[ReservationResponse],
    summary="Pending alternative proposals",
)
def pending_alternatives(
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Rejected reservations of the current user whose proposed slot awaits an answer.
    """
    return service.pending_alternatives(current_user)


@router.get("/{reservation_id}", response_model=ReservationResponse, summary="Get a reservation")
def get_reservation(
    reservation_id: int,
    queries: ReservationQueryService = Depends(get_query_service),
    current_user: Actor = Depends(get_current_user),
):
    reservation = queries.get(reservation_id)
    if not current_user.is_reviewer and reservation.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this reservation")
    return reservation


@router.put("/{reservation_id}", response_model=ReservationResponse, summary="Update a reservation")
def update_reservation(
    reservation_id: int,
    payload: ReservationUpdate,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Update purpose, participants or department. Room, date and times can only
    change while the reservation is pending.
    """
    return service.update(reservation_id, current_user, payload.to_patch())


@router.put("/{reservation_id}/validate", response_model=ReservationResponse, summary="Validate a reservation")
def validate_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    return service.validate(reservation_id, current_user)


@router.put("/{reservation_id}/reject", response_model=ReservationResponse, summary="Reject a reservation")
def reject_reservation(
    reservation_id: int,
    payload: RejectionIn,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Reject with a mandatory reason and an optional alternative slot.
    """
    alternative = payload.alternative.to_domain() if payload.alternative else None
    return service.reject(reservation_id, current_user, payload.reason, alternative)


@router.put(
    "/{reservation_id}/alternative/accept",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Accept a proposed alternative",
)
def accept_alternative(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    """
    Book the proposed slot as a new validated reservation. Owner only; the
    slot is conflict-checked first.
    """
    return service.accept_alternative(reservation_id, current_user)


@router.put(
    "/{reservation_id}/alternative/refuse",
    response_model=ReservationResponse,
    summary="Refuse a proposed alternative",
)
def refuse_alternative(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    return service.refuse_alternative(reservation_id, current_user)


@router.put("/{reservation_id}/cancel", response_model=ReservationResponse, summary="Cancel a reservation")
def cancel_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    return service.cancel(reservation_id, current_user)


@router.delete(
    "/{reservation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a reservation",
    description="Hard-delete a reservation. Admin only; its history is kept.",
)
def delete_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
    current_user: Actor = Depends(get_current_user),
):
    service.delete(reservation_id, current_user)
    return None
