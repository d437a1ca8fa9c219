from typing import Any, Optional

from ..models import Notification, NotificationCategory, NotificationType
from .storage import KeyValueStore, NotFoundError, new_id


NOTIFICATIONS_KEY = "notifications"
MAX_NOTIFICATIONS = 100


class NotificationService:
    """In-app notifications, newest first, capped at MAX_NOTIFICATIONS."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def notify(
        self,
        type: NotificationType,
        category: NotificationCategory,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            id=new_id("notif"),
            type=type,
            category=category,
            title=title,
            message=message,
            data=data,
        )
        notifications = [notification, *self.list_notifications()]
        self._write(notifications[:MAX_NOTIFICATIONS])
        return notification

    def success(self, title: str, message: str, category: NotificationCategory = "system") -> Notification:
        return self.notify("success", category, title, message)

    def error(self, title: str, message: str, category: NotificationCategory = "system") -> Notification:
        return self.notify("error", category, title, message)

    def warning(self, title: str, message: str, category: NotificationCategory = "system") -> Notification:
        return self.notify("warning", category, title, message)

    def info(self, title: str, message: str, category: NotificationCategory = "system") -> Notification:
        return self.notify("info", category, title, message)

    def payment_sent(self, amount: float, currency: str, to: str, tx_hash: str) -> Notification:
        return self.notify(
            "success",
            "payment",
            "Payment Sent",
            f"Successfully sent {amount} {currency} to {to[:8]}...",
            {"txHash": tx_hash, "amount": amount, "currency": currency, "to": to},
        )

    def payment_failed(self, amount: float, currency: str, error: str) -> Notification:
        return self.notify(
            "error",
            "payment",
            "Payment Failed",
            f"Failed to send {amount} {currency}: {error}",
            {"amount": amount, "currency": currency, "error": error},
        )

    def list_notifications(self, unread_only: bool = False) -> list[Notification]:
        notifications = [Notification.model_validate(n) for n in self.store.get(NOTIFICATIONS_KEY, [])]
        if unread_only:
            return [n for n in notifications if not n.read]
        return notifications

    def unread_count(self) -> int:
        return len(self.list_notifications(unread_only=True))

    def mark_as_read(self, notification_id: str) -> Notification:
        notifications = self.list_notifications()
        for notification in notifications:
            if notification.id == notification_id:
                notification.read = True
                self._write(notifications)
                return notification
        raise NotFoundError(f"Notification not found: {notification_id}")

    def mark_all_as_read(self) -> None:
        notifications = self.list_notifications()
        for notification in notifications:
            notification.read = True
        self._write(notifications)

    def delete_notification(self, notification_id: str) -> None:
        self._write([n for n in self.list_notifications() if n.id != notification_id])

    def clear(self) -> None:
        self.store.delete(NOTIFICATIONS_KEY)

    def _write(self, notifications: list[Notification]) -> None:
        self.store.set(NOTIFICATIONS_KEY, [n.model_dump(mode="json", by_alias=True) for n in notifications])
