import asyncio

import pytest

from post_notifications.services.websocket_manager import WebSocketManager

OWNER = "owner-1"


class FakeSocket:
    def __init__(self):
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        # yield like a real network send
        await asyncio.sleep(0)
        self.sent.append(message)


@pytest.fixture
def manager(service):
    return WebSocketManager(service)


async def test_concurrent_connects_share_one_subscription(manager, service):
    first, second = FakeSocket(), FakeSocket()

    await asyncio.gather(manager.connect(OWNER, first), manager.connect(OWNER, second))

    assert service.subscriber_count(OWNER) == 1
    assert first.sent and second.sent
    assert all(m["type"] == "notifications.snapshot" for m in first.sent + second.sent)

    manager.disconnect(OWNER, first)
    assert service.subscriber_count(OWNER) == 1
    manager.disconnect(OWNER, second)
    assert service.subscriber_count(OWNER) == 0


async def test_snapshots_reach_every_socket(manager, service, make_notification):
    first, second = FakeSocket(), FakeSocket()
    await manager.connect(OWNER, first)
    await manager.connect(OWNER, second)

    await service.create(make_notification())
    await service.drain()

    assert first.sent[-1]["unreadCount"] == 1
    assert second.sent[-1]["unreadCount"] == 1


async def test_failed_connect_is_unregistered(manager, service, store):
    first, second = FakeSocket(), FakeSocket()
    await manager.connect(OWNER, first)

    async def broken_query(user_id, **equals):
        raise ConnectionError("store down")

    store.query = broken_query

    with pytest.raises(ConnectionError):
        await manager.connect(OWNER, second)

    assert manager.active_connections[OWNER] == {first}

    manager.disconnect(OWNER, first)
    assert OWNER not in manager.active_connections
    assert service.subscriber_count(OWNER) == 0
