# post_notifications/infra/memory_store.py
import copy
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from post_notifications.errors import NotificationNotFoundError


class InMemoryNotificationStore:
    """
    Process-local store for development and tests.
    user_id -> {notification_id -> document}
    """

    def __init__(self):
        self.partitions: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.batches_committed = 0
        self._last_timestamp: Optional[datetime] = None

    def _now(self) -> datetime:
        # strictly increasing so newest-first ordering is stable
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    async def insert(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        notification_id = str(uuid.uuid4())
        doc = dict(fields)
        doc.update({
            "id": notification_id,
            "userId": user_id,
            "isRead": False,
            "timestamp": self._now(),
        })
        self.partitions.setdefault(user_id, {})[notification_id] = doc
        return copy.deepcopy(doc)

    async def get(self, user_id: str, notification_id: str) -> Optional[Dict[str, Any]]:
        doc = self.partitions.get(user_id, {}).get(notification_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query(self, user_id: str, **equals: Any) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(doc)
            for doc in self.partitions.get(user_id, {}).values()
            if all(doc.get(field) == value for field, value in equals.items())
        ]

    async def update(self, user_id: str, notification_id: str, fields: Dict[str, Any]) -> None:
        doc = self.partitions.get(user_id, {}).get(notification_id)
        if doc is None:
            raise NotificationNotFoundError(user_id, notification_id)
        doc.update(fields)

    async def delete(self, user_id: str, notification_id: str) -> None:
        self.partitions.get(user_id, {}).pop(notification_id, None)

    async def delete_batch(self, user_id: str, notification_ids: Iterable[str]) -> None:
        partition = self.partitions.get(user_id, {})
        for notification_id in notification_ids:
            partition.pop(notification_id, None)
        self.batches_committed += 1

    async def close(self) -> None:
        return None
