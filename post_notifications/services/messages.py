# post_notifications/services/messages.py
from typing import Any, Dict

from post_notifications.models.notification import Notification, NotificationType

_VERBS = {
    NotificationType.LIKE: "liked",
    NotificationType.COMMENT: "commented on",
}


def format_notification_message(notification: Notification) -> str:
    verb = _VERBS.get(notification.type)
    if verb is None:
        return "New notification"

    others = notification.count - 1
    if others <= 0:
        return f"{notification.actorName} {verb} your post"
    if others == 1:
        return f"{notification.actorName} and 1 other person {verb} your post"
    return f"{notification.actorName} and {others} others {verb} your post"


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    """JSON payload for REST and WebSocket clients."""
    payload = notification.model_dump(mode="json")
    payload["message"] = format_notification_message(notification)
    return payload
