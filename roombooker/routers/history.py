from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from roombooker.db import get_db, transaction
from roombooker.dependencies import get_history_recorder
from roombooker.domain.enums import DateRange, HistoryKind, Perspective
from roombooker.domain.models import Actor
from roombooker.schemas.history import HistoryEntryResponse, HistoryStatsResponse
from roombooker.schemas.notification import BulkResult
from roombooker.services.history import HistoryRecorder
from roombooker.utils.auth import get_current_user, require_admin, require_reviewer
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(
    prefix="/history",
    tags=["history"],
)


@router.get("/", response_model=List[HistoryEntryResponse])
def list_history(
    kind: Optional[HistoryKind] = None,
    date_range: Optional[DateRange] = None,
    user_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
    reservation_id: Optional[int] = None,
    perspective: Optional[Perspective] = None,
    limit: Optional[int] = None,
    history: HistoryRecorder = Depends(get_history_recorder),
    current_user: Actor = Depends(get_current_user),
):
    """
    Most recent entries first. Every supplied filter must match.
    Regular users only see entries they performed or that affected them.
    """
    return history.query(
        kind=kind,
        date_range=date_range,
        user_id=user_id,
        target_user_id=target_user_id,
        reservation_id=reservation_id,
        perspective=perspective,
        involving_user_id=None if current_user.is_reviewer else current_user.id,
        limit=limit,
    )


@router.get("/stats", response_model=HistoryStatsResponse)
def history_stats(
    history: HistoryRecorder = Depends(get_history_recorder),
    current_user: Actor = Depends(require_reviewer),
):
    return history.stats()


@router.delete("/", response_model=BulkResult)
def clear_history(
    db: Session = Depends(get_db),
    history: HistoryRecorder = Depends(get_history_recorder),
    current_user: Actor = Depends(require_admin),
):
    """
    Administrative purge of the whole log.
    """
    with transaction(db, "history purge"):
        removed = history.clear()
    logger.warning("History cleared by admin %s (%s entries)", current_user.id, removed)
    return BulkResult(affected=removed)
