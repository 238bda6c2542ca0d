"""Service providers shared by the routers."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from roombooker.db import get_db
from roombooker.repository.history import HistoryRepository
from roombooker.services.availability import AvailabilityService
from roombooker.services.history import HistoryRecorder
from roombooker.services.lifecycle import ReservationService
from roombooker.services.locks import room_locks
from roombooker.services.notifications import NotificationDispatcher
from roombooker.services.statistics import ReservationQueryService
from roombooker.utils.config import get_settings


def get_reservation_service(request: Request, db: Session = Depends(get_db)) -> ReservationService:
    locks = getattr(request.app.state, "room_locks", None) or room_locks
    return ReservationService(db, settings=get_settings(), locks=locks)


def get_query_service(db: Session = Depends(get_db)) -> ReservationQueryService:
    return ReservationQueryService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db, settings=get_settings())


def get_history_recorder(db: Session = Depends(get_db)) -> HistoryRecorder:
    return HistoryRecorder(HistoryRepository(db, get_settings().history_retention_limit))


def get_notification_dispatcher(db: Session = Depends(get_db)) -> NotificationDispatcher:
    return NotificationDispatcher(db)
