# post_notifications/services/websocket_manager.py
import asyncio
import logging
from typing import Callable, Dict, List, Set

from fastapi import WebSocket

from post_notifications.models.notification import Notification
from post_notifications.services.messages import serialize_notification
from post_notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def snapshot_message(notifications: List[Notification]) -> dict:
    return {
        "type": "notifications.snapshot",
        "notifications": [serialize_notification(n) for n in notifications],
        "unreadCount": sum(1 for n in notifications if not n.isRead),
    }


class WebSocketManager:
    """
    Keeps WebSocket connections per user and one service subscription per
    connected user.
    user_id -> set(WebSocket)
    """
    def __init__(self, service: NotificationService):
        self.service = service
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        self._unsubscribers: Dict[str, Callable[[], None]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        if user_id not in self.active_connections:
            self.active_connections[user_id] = set()
        self.active_connections[user_id].add(websocket)

        try:
            # one subscription per user even when sockets connect together
            lock = self._locks.setdefault(user_id, asyncio.Lock())
            async with lock:
                if user_id in self._unsubscribers:
                    # already subscribed: only the new socket needs the current list
                    notifications = await self.service.list_all(user_id)
                    await websocket.send_json(snapshot_message(notifications))
                    return

                async def on_change(notifications: List[Notification]):
                    await self.send_to_user(user_id, snapshot_message(notifications))

                async def on_error(error: Exception):
                    await self.send_to_user(user_id, {"type": "notifications.error", "detail": str(error)})

                unsubscribe = await self.service.subscribe(user_id, on_change, on_error)
                if user_id in self.active_connections:
                    self._unsubscribers[user_id] = unsubscribe
                else:
                    # every socket dropped while the first snapshot was sent
                    unsubscribe()
        except Exception:
            self.disconnect(user_id, websocket)
            raise

    def disconnect(self, user_id: str, websocket: WebSocket):
        if user_id in self.active_connections:
            self.active_connections[user_id].discard(websocket)
            if not self.active_connections[user_id]:
                del self.active_connections[user_id]
                self._locks.pop(user_id, None)
                unsubscribe = self._unsubscribers.pop(user_id, None)
                if unsubscribe is not None:
                    unsubscribe()

    async def send_to_user(self, user_id: str, message: dict):
        """
        Sends a message to EVERY connection of that user
        (several tabs, devices, etc.)
        """
        if user_id not in self.active_connections:
            return
        dead_sockets = []
        for ws in list(self.active_connections[user_id]):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug("Dropping dead socket for %s: %s", user_id, e)
                dead_sockets.append(ws)
        for ws in dead_sockets:
            self.disconnect(user_id, ws)
