# post_notifications/services/notification_service.py
"""
Notification CRUD on top of a NotificationStore, scoped per recipient.

Every mutation republishes the recipient's full list to live subscribers
(WebSocket feed) from a background task, so slow sockets never hold up
the write. Store errors propagate to the caller; only the dispatch
layer swallows them.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError

from post_notifications import config
from post_notifications.errors import NotificationValidationError
from post_notifications.infra.store import NotificationStore
from post_notifications.models.notification import Notification, NotificationCreate, NotificationType

logger = logging.getLogger(__name__)

OnChange = Callable[[List[Notification]], Awaitable[None]]
OnError = Callable[[Exception], Awaitable[None]]


class _Subscription:
    def __init__(self, on_change: OnChange, on_error: Optional[OnError]):
        self.on_change = on_change
        self.on_error = on_error


class NotificationService:

    def __init__(self, store: NotificationStore, clear_batch_size: Optional[int] = None):
        self.store = store
        self.clear_batch_size = clear_batch_size or config.CLEAR_BATCH_SIZE
        self._subscriptions: Dict[str, List[_Subscription]] = {}
        self._publish_locks: Dict[str, asyncio.Lock] = {}
        self._pending: Set[asyncio.Task] = set()

    async def create(self, data: Mapping[str, Any]) -> str:
        """
        Validates and persists a notification, returns its id.
        Raises NotificationValidationError for missing fields, unknown
        type/postType or count/batchThreshold below 1.
        """
        try:
            payload = NotificationCreate.model_validate(dict(data))
        except ValidationError as e:
            raise NotificationValidationError(f"Invalid notification data: {e}") from e

        fields = payload.model_dump(mode="json", exclude={"userId"})
        doc = await self.store.insert(payload.userId, fields)
        logger.info(
            "Notification %s created for %s (%s, threshold %s)",
            doc["id"], payload.userId, payload.type.value, payload.batchThreshold,
        )
        self._schedule_publish(payload.userId)
        return doc["id"]

    async def find_existing(
        self, user_id: str, post_id: str, type: NotificationType, threshold: int
    ) -> Optional[Notification]:
        docs = await self.store.query(
            user_id,
            postId=post_id,
            type=NotificationType(type).value,
            batchThreshold=threshold,
        )
        return Notification.model_validate(docs[0]) if docs else None

    async def mark_read(self, user_id: str, notification_id: str) -> None:
        await self.store.update(user_id, notification_id, {"isRead": True})
        self._schedule_publish(user_id)

    async def mark_all_read(self, user_id: str) -> int:
        unread = await self.store.query(user_id, isRead=False)
        await asyncio.gather(*(
            self.store.update(user_id, doc["id"], {"isRead": True}) for doc in unread
        ))
        if unread:
            self._schedule_publish(user_id)
        return len(unread)

    async def delete(self, user_id: str, notification_id: str) -> None:
        await self.store.delete(user_id, notification_id)
        self._schedule_publish(user_id)

    async def clear_all(self, user_id: str) -> int:
        """Deletes every notification of the recipient, returns how many."""
        ids = [doc["id"] for doc in await self.store.query(user_id)]
        if not ids:
            logger.debug("No notifications to clear for %s", user_id)
            return 0

        size = self.clear_batch_size
        chunks = [ids[i:i + size] for i in range(0, len(ids), size)]
        # chunks hold disjoint ids, commit them together
        await asyncio.gather(*(self.store.delete_batch(user_id, chunk) for chunk in chunks))
        logger.info("Cleared %d notifications for %s in %d batch(es)", len(ids), user_id, len(chunks))
        self._schedule_publish(user_id)
        return len(ids)

    async def list(
        self, user_id: str, limit: Optional[int] = None, unread_only: bool = False
    ) -> List[Notification]:
        """Newest first."""
        if limit is None:
            limit = config.DEFAULT_LIST_LIMIT
        if unread_only:
            notifications = await self._load(user_id, isRead=False)
        else:
            notifications = await self._load(user_id)
        return notifications[:limit]

    async def list_all(self, user_id: str) -> List[Notification]:
        return await self._load(user_id)

    async def _load(self, user_id: str, **equals: Any) -> List[Notification]:
        docs = await self.store.query(user_id, **equals)
        notifications = [Notification.model_validate(doc) for doc in docs]
        notifications.sort(key=lambda n: n.timestamp, reverse=True)
        return notifications

    async def unread_count(self, user_id: str) -> int:
        return len(await self.store.query(user_id, isRead=False))

    async def subscribe(
        self, user_id: str, on_change: OnChange, on_error: Optional[OnError] = None
    ) -> Callable[[], None]:
        """
        Registers a live listener and delivers the current list right away.
        Returns a callable that cancels the subscription.
        """
        subscription = _Subscription(on_change, on_error)
        self._subscriptions.setdefault(user_id, []).append(subscription)

        def unsubscribe() -> None:
            subscriptions = self._subscriptions.get(user_id, [])
            if subscription in subscriptions:
                subscriptions.remove(subscription)
            if not subscriptions:
                self._subscriptions.pop(user_id, None)
                self._publish_locks.pop(user_id, None)

        await self._publish(user_id, [subscription])
        return unsubscribe

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscriptions.get(user_id, []))

    async def drain(self) -> None:
        """Waits for snapshot pushes still in flight."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _schedule_publish(self, user_id: str) -> None:
        if not self._subscriptions.get(user_id):
            return
        task = asyncio.create_task(self._publish(user_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, user_id: str, targets: Optional[List[_Subscription]] = None) -> None:
        # one push at a time per user, each loads the latest state
        lock = self._publish_locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            if targets is None:
                targets = list(self._subscriptions.get(user_id, []))
            if not targets:
                return

            try:
                notifications = await self._load(user_id)
            except Exception as e:
                logger.exception("Could not load notifications for subscribers of %s", user_id)
                for subscription in targets:
                    await self._report(user_id, subscription, e)
                return

            for subscription in targets:
                try:
                    await subscription.on_change(notifications)
                except Exception as e:
                    logger.warning("Notification subscriber for %s failed: %s", user_id, e)
                    await self._report(user_id, subscription, e)

    async def _report(self, user_id: str, subscription: _Subscription, error: Exception) -> None:
        if subscription.on_error is None:
            return
        try:
            await subscription.on_error(error)
        except Exception:
            logger.exception("Error callback for %s failed", user_id)
