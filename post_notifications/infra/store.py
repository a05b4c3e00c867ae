# post_notifications/infra/store.py
from typing import Any, Dict, Iterable, List, Optional, Protocol


class NotificationStore(Protocol):
    """
    Per-recipient document store. Documents are plain dicts in wire form
    (camelCase keys, enum values as strings). The store assigns `id`,
    `isRead` (False) and `timestamp` on insert.
    """

    async def insert(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]: ...

    async def get(self, user_id: str, notification_id: str) -> Optional[Dict[str, Any]]: ...

    async def query(self, user_id: str, **equals: Any) -> List[Dict[str, Any]]: ...

    async def update(self, user_id: str, notification_id: str, fields: Dict[str, Any]) -> None: ...

    async def delete(self, user_id: str, notification_id: str) -> None: ...

    async def delete_batch(self, user_id: str, notification_ids: Iterable[str]) -> None: ...

    async def close(self) -> None: ...
