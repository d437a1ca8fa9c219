from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_notification_service
from ..models import Notification
from ..services.notifications import NotificationService
from ..services.storage import NotFoundError

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=list[Notification])
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    notifications: NotificationService = Depends(get_notification_service),
) -> list[Notification]:
    """List notifications, newest first."""
    return notifications.list_notifications(unread_only=unread_only)


@router.post("/read-all")
async def mark_all_as_read(notifications: NotificationService = Depends(get_notification_service)) -> dict:
    notifications.mark_all_as_read()
    return {"unreadCount": notifications.unread_count()}


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_as_read(
    notification_id: str,
    notifications: NotificationService = Depends(get_notification_service),
) -> Notification:
    try:
        return notifications.mark_as_read(notification_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"Notification not found: {notification_id}")


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_notifications(notifications: NotificationService = Depends(get_notification_service)) -> None:
    notifications.clear()


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    notifications: NotificationService = Depends(get_notification_service),
) -> None:
    if not any(n.id == notification_id for n in notifications.list_notifications()):
        raise HTTPException(status_code=404, detail=f"Notification not found: {notification_id}")
    notifications.delete_notification(notification_id)
