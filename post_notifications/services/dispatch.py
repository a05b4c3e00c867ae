# post_notifications/services/dispatch.py
"""
Turns a like/comment event into zero or one notification for the post owner.

Event shape (as sent by the like/comment write path):
  {
    "postId": "rec123", "postTitle": "Best beaches in Bali",
    "postType": "recommendation", "postOwnerId": "user123",
    "actorId": "user456", "actorName": "John Doe", "actorAvatar": null,
    "currentLikeCount": 10          # or currentCommentCount
  }

Nothing here raises: a failed notification must never break the like or
comment that triggered it.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from post_notifications.models.notification import NotificationType
from post_notifications.services.notification_service import NotificationService
from post_notifications.services.thresholds import batch_threshold, should_notify

logger = logging.getLogger(__name__)

# running total after the action, per interaction type
COUNT_FIELDS = {
    NotificationType.LIKE: "currentLikeCount",
    NotificationType.COMMENT: "currentCommentCount",
}

EVENT_FIELDS = ("postId", "postTitle", "postType", "postOwnerId", "actorId", "actorName")


class InvalidEventError(ValueError):
    pass


def validate_event(event: Mapping[str, Any], count_field: str) -> int:
    """Checks required fields and returns the interaction count."""
    for field in EVENT_FIELDS:
        value = event.get(field)
        if value is None or value == "":
            raise InvalidEventError(f"Missing required field: {field}")
        if not isinstance(value, str):
            raise InvalidEventError(f"{field} must be a string, got {value!r}")

    avatar = event.get("actorAvatar")
    if avatar is not None and not isinstance(avatar, str):
        raise InvalidEventError(f"actorAvatar must be a string or null, got {avatar!r}")

    count = event.get(count_field)
    if count is None:
        raise InvalidEventError(f"Missing required field: {count_field}")
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidEventError(f"{count_field} must be an integer >= 1, got {count!r}")
    return count


class NotificationDispatcher:

    def __init__(self, service: NotificationService):
        self.service = service
        self.handlers: Dict[NotificationType, Callable[[Mapping[str, Any]], Awaitable[Optional[str]]]] = {
            NotificationType.LIKE: self.process_like,
            NotificationType.COMMENT: self.process_comment,
        }

    async def dispatch(
        self, type: Union[NotificationType, str, None], event: Mapping[str, Any]
    ) -> Optional[str]:
        """Routes an event to its handler. Returns the new notification id, if any."""
        try:
            handler = self.handlers.get(NotificationType(type))
        except ValueError:
            handler = None
        if handler is None:
            logger.error("Invalid notification type: %r", type)
            return None
        return await handler(event)

    async def notify_like(self, event: Mapping[str, Any]) -> Optional[str]:
        return await self.dispatch(NotificationType.LIKE, event)

    async def notify_comment(self, event: Mapping[str, Any]) -> Optional[str]:
        return await self.dispatch(NotificationType.COMMENT, event)

    async def process_like(self, event: Mapping[str, Any]) -> Optional[str]:
        return await self._process(NotificationType.LIKE, event)

    async def process_comment(self, event: Mapping[str, Any]) -> Optional[str]:
        return await self._process(NotificationType.COMMENT, event)

    async def _process(self, type: NotificationType, event: Mapping[str, Any]) -> Optional[str]:
        try:
            # 1) required fields
            try:
                count = validate_event(event, COUNT_FIELDS[type])
            except InvalidEventError as e:
                logger.error("Dropping %s event: %s", type.value, e)
                return None

            owner_id = event["postOwnerId"]
            post_id = event["postId"]

            # 2) no self-notification
            if event["actorId"] == owner_id:
                logger.debug("Skipping self-%s on post %s", type.value, post_id)
                return None

            # 3) only at batch points
            if not should_notify(count):
                logger.debug("No %s notification at count %d for post %s", type.value, count, post_id)
                return None

            # 4) + 5) one notification per threshold
            threshold = batch_threshold(count)
            existing = await self.service.find_existing(owner_id, post_id, type, threshold)
            if existing is not None:
                logger.debug(
                    "Notification %s already exists for post %s at threshold %d",
                    existing.id, post_id, threshold,
                )
                return None

            # 6) persist
            notification_id = await self.service.create({
                "userId": owner_id,
                "type": type.value,
                "postType": event["postType"],
                "postId": post_id,
                "postTitle": event["postTitle"],
                "actorId": event["actorId"],
                "actorName": event["actorName"],
                "actorAvatar": event.get("actorAvatar") or None,
                "count": count,
                "batchThreshold": threshold,
            })
            logger.info(
                "%s notification %s created for %s at count %d",
                type.value.capitalize(), notification_id, owner_id, count,
            )
            return notification_id
        except Exception:
            logger.exception("Error processing %s notification", type.value)
            return None
