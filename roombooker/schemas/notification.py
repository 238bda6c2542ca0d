from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from roombooker.domain.enums import NotificationType, Severity


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: NotificationType
    title: str
    message: str
    severity: Severity
    action_route: str
    read: bool
    reservation_id: Optional[int] = None
    recipient_user_id: int
    created_at: datetime


class UnreadCountResponse(BaseModel):
    unread: int


class BulkResult(BaseModel):
    affected: int
