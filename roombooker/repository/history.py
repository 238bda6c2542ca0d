"""Bounded, append-only storage for history entries."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from roombooker.domain.enums import DateRange, HistoryKind, Perspective
from roombooker.models.history import HistoryEntry
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)


class HistoryRepository:
    """Newest-first log; entries beyond ``retention_limit`` are evicted oldest first."""

    def __init__(
        self,
        db: Session,
        retention_limit: int,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if retention_limit <= 0:
            raise ValueError("retention_limit must be > 0")
        self._db = db
        self._retention_limit = retention_limit
        self._clock = clock

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        entry.timestamp = self._clock()
        self._db.add(entry)
        self._db.flush()
        self._evict_overflow()
        return entry

    def _evict_overflow(self) -> None:
        total = self._db.query(func.count(HistoryEntry.id)).scalar() or 0
        overflow = total - self._retention_limit
        if overflow <= 0:
            return
        stale_ids = [
            row.id
            for row in self._db.query(HistoryEntry.id)
            .order_by(HistoryEntry.id.asc())
            .limit(overflow)
        ]
        self._db.query(HistoryEntry).filter(HistoryEntry.id.in_(stale_ids)).delete(
            synchronize_session=False
        )
        logger.debug("Evicted %s history entries beyond retention", len(stale_ids))

    def query(
        self,
        kind: Optional[HistoryKind] = None,
        date_range: Optional[DateRange] = None,
        user_id: Optional[int] = None,
        target_user_id: Optional[int] = None,
        reservation_id: Optional[int] = None,
        perspective: Optional[Perspective] = None,
        involving_user_id: Optional[int] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[HistoryEntry]:
        """Entries matching every supplied filter, most recent first.

        ``involving_user_id`` keeps entries the user either performed or was
        affected by.
        """
        query = self._db.query(HistoryEntry)
        if kind is not None:
            query = query.filter(HistoryEntry.kind == kind)
        if date_range is not None:
            since = (now or self._clock()) - date_range.window
            query = query.filter(HistoryEntry.timestamp >= since)
        if user_id is not None:
            query = query.filter(HistoryEntry.actor_user_id == user_id)
        if target_user_id is not None:
            query = query.filter(HistoryEntry.target_user_id == target_user_id)
        if reservation_id is not None:
            query = query.filter(HistoryEntry.subject_reservation_id == reservation_id)
        if perspective is not None:
            query = query.filter(HistoryEntry.perspective == perspective)
        if involving_user_id is not None:
            query = query.filter(
                or_(
                    HistoryEntry.actor_user_id == involving_user_id,
                    HistoryEntry.target_user_id == involving_user_id,
                )
            )
        query = query.order_by(HistoryEntry.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_by_kind(self) -> dict:
        rows = (
            self._db.query(HistoryEntry.kind, func.count(HistoryEntry.id))
            .group_by(HistoryEntry.kind)
            .all()
        )
        return {HistoryKind(kind).value: count for kind, count in rows}

    def clear(self) -> int:
        return self._db.query(HistoryEntry).delete(synchronize_session=False)
