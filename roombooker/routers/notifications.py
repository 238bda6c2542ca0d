from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from roombooker.dependencies import get_notification_dispatcher
from roombooker.domain.enums import NotificationType
from roombooker.domain.models import Actor
from roombooker.schemas.notification import BulkResult, NotificationResponse, UnreadCountResponse
from roombooker.services.notifications import NotificationDispatcher
from roombooker.utils.auth import get_current_user, require_reviewer


router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("/", response_model=List[NotificationResponse])
def list_notifications(
    read: Optional[bool] = None,
    type: Optional[NotificationType] = None,
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(get_current_user),
):
    """
    Notifications of the calling user, newest first.
    """
    return notifications.list(current_user.id, read=read, type=type)


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(get_current_user),
):
    return UnreadCountResponse(unread=notifications.unread_count(current_user.id))


@router.put("/read-all", response_model=BulkResult)
def mark_all_read(
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(get_current_user),
):
    return BulkResult(affected=notifications.mark_all_read(current_user.id))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(get_current_user),
):
    return notifications.mark_read(notification_id, current_user.id)


@router.delete("/read", response_model=BulkResult)
def clear_read(
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(get_current_user),
):
    return BulkResult(affected=notifications.clear_read(current_user.id))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int,
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(get_current_user),
):
    """
    Deleting a notification that is already gone is not an error.
    """
    notifications.delete(notification_id, current_user.id)
    return None


@router.post("/reminders", response_model=BulkResult)
def send_reminders(
    target_date: date,
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    current_user: Actor = Depends(require_reviewer),
):
    """
    Remind owners of validated reservations taking place on ``target_date``.
    """
    return BulkResult(affected=len(notifications.send_reminders(target_date)))
