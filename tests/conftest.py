"""Shared fixtures: in-memory store, service, dispatcher and an app client."""
import jwt
import pytest
from fastapi.testclient import TestClient

from post_notifications import config
from post_notifications.infra.memory_store import InMemoryNotificationStore
from post_notifications.services.dispatch import NotificationDispatcher
from post_notifications.services.notification_service import NotificationService

OWNER = "owner-1"
ACTOR = "actor-1"


@pytest.fixture
def store():
    return InMemoryNotificationStore()


@pytest.fixture
def service(store):
    return NotificationService(store)


@pytest.fixture
def dispatcher(service):
    return NotificationDispatcher(service)


@pytest.fixture
def make_event():
    def _make(count_field="currentLikeCount", count=1, **overrides):
        event = {
            "postId": "rec-1",
            "postTitle": "Best beaches in Bali",
            "postType": "recommendation",
            "postOwnerId": OWNER,
            "actorId": ACTOR,
            "actorName": "Jane Smith",
            "actorAvatar": "https://example.com/jane.png",
            count_field: count,
        }
        event.update(overrides)
        return event
    return _make


@pytest.fixture
def make_notification():
    def _make(**overrides):
        data = {
            "userId": OWNER,
            "type": "like",
            "postType": "route",
            "postId": "route-1",
            "postTitle": "Pacific Coast Highway",
            "actorId": ACTOR,
            "actorName": "Jane Smith",
            "actorAvatar": None,
            "count": 10,
            "batchThreshold": 10,
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user_id=OWNER):
        token = jwt.encode({"sub": user_id}, config.JWT_SECRET, algorithm=config.JWT_ALG)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def app(store):
    from post_notifications.main import create_app
    return create_app(store=store, consume_queue=False)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
