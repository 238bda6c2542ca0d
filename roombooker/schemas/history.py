from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from roombooker.domain.enums import HistoryKind, Perspective


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    kind: HistoryKind
    perspective: Perspective
    actor_user_id: Optional[int] = None
    actor_name: str
    description: str
    subject_reservation_id: Optional[int] = None
    target_user_id: Optional[int] = None
    details: dict


class HistoryStatsResponse(BaseModel):
    total: int
    by_kind: Dict[str, int]
    recent: List[HistoryEntryResponse]
