import pytest
from starlette.websockets import WebSocketDisconnect

OWNER = "owner-1"
ACTOR = "actor-1"


def post_like(client, headers, make_event, count):
    return client.post("/events/like", json=make_event(count=count), headers=headers(ACTOR))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requires_bearer_token(client):
    assert client.get(f"/notifications/user/{OWNER}").status_code == 401
    response = client.get(f"/notifications/user/{OWNER}", headers={"Authorization": "Token abc"})
    assert response.status_code == 401
    response = client.get(f"/notifications/user/{OWNER}", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_cannot_read_someone_elses_notifications(client, auth_headers):
    response = client.get(f"/notifications/user/{OWNER}", headers=auth_headers("intruder"))
    assert response.status_code == 403
    response = client.get(f"/notifications/unread-count/{OWNER}", headers=auth_headers("intruder"))
    assert response.status_code == 403


def test_like_event_flows_to_owner_list(client, auth_headers, make_event):
    response = post_like(client, auth_headers, make_event, count=1)
    assert response.status_code == 202
    body = response.json()
    assert body["ok"] is True
    assert body["notificationId"]

    listed = client.get(f"/notifications/user/{OWNER}", headers=auth_headers()).json()
    assert len(listed) == 1
    assert listed[0]["id"] == body["notificationId"]
    assert listed[0]["type"] == "like"
    assert listed[0]["count"] == 1
    assert listed[0]["batchThreshold"] == 1
    assert listed[0]["message"] == "Jane Smith liked your post"


def test_event_below_batch_point_is_accepted_without_notification(client, auth_headers, make_event):
    response = post_like(client, auth_headers, make_event, count=47)
    assert response.status_code == 202
    assert response.json() == {"ok": True, "notificationId": None}


def test_bad_events_never_fail_the_caller(client, auth_headers, make_event):
    response = client.post("/events/share", json=make_event(count=1), headers=auth_headers(ACTOR))
    assert response.status_code == 202
    response = client.post("/events/like", json={"postId": "x"}, headers=auth_headers(ACTOR))
    assert response.status_code == 202
    assert response.json()["notificationId"] is None


def test_unread_count_mark_read_and_mark_all(client, auth_headers, make_event):
    first = post_like(client, auth_headers, make_event, count=10).json()["notificationId"]
    post_like(client, auth_headers, make_event, count=20)
    headers = auth_headers()

    assert client.get(f"/notifications/unread-count/{OWNER}", headers=headers).json() == {"count": 2}

    assert client.post(f"/notifications/mark-read/{first}", headers=headers).json() == {"ok": True}
    assert client.get(f"/notifications/unread-count/{OWNER}", headers=headers).json() == {"count": 1}

    unread = client.get(f"/notifications/user/{OWNER}?unreadOnly=true", headers=headers).json()
    assert [n["batchThreshold"] for n in unread] == [20]

    assert client.post("/notifications/mark-all-read", headers=headers).json() == {"ok": True, "updated": 1}
    assert client.get(f"/notifications/unread-count/{OWNER}", headers=headers).json() == {"count": 0}


def test_mark_read_unknown_id_is_404(client, auth_headers):
    response = client.post("/notifications/mark-read/missing", headers=auth_headers())
    assert response.status_code == 404


def test_delete_and_clear(client, auth_headers, make_event):
    first = post_like(client, auth_headers, make_event, count=1).json()["notificationId"]
    for count in (10, 20, 30):
        post_like(client, auth_headers, make_event, count=count)
    headers = auth_headers()

    assert client.delete(f"/notifications/{first}", headers=headers).json() == {"ok": True}
    assert len(client.get(f"/notifications/user/{OWNER}", headers=headers).json()) == 3

    assert client.delete("/notifications", headers=headers).json() == {"ok": True, "deleted": 3}
    assert client.get(f"/notifications/user/{OWNER}", headers=headers).json() == []


def test_list_limit(client, auth_headers, make_event):
    for count in (1, 10, 20):
        post_like(client, auth_headers, make_event, count=count)

    listed = client.get(f"/notifications/user/{OWNER}?limit=2", headers=auth_headers()).json()
    assert [n["count"] for n in listed] == [20, 10]


def test_store_failure_on_clear_is_500(client, store, auth_headers):
    async def broken_query(user_id, **equals):
        raise ConnectionError("store unavailable")

    store.query = broken_query

    response = client.delete("/notifications", headers=auth_headers())
    assert response.status_code == 500
    assert response.json()["detail"].startswith("Could not clear notifications")


def test_websocket_rejects_invalid_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/notifications?token=bad") as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_websocket_streams_snapshots(client, auth_headers, make_event):
    token = auth_headers()["Authorization"].removeprefix("Bearer ")

    with client.websocket_connect(f"/ws/notifications?token={token}") as ws:
        initial = ws.receive_json()
        assert initial == {"type": "notifications.snapshot", "notifications": [], "unreadCount": 0}

        post_like(client, auth_headers, make_event, count=1)

        update = ws.receive_json()
        assert update["type"] == "notifications.snapshot"
        assert update["unreadCount"] == 1
        assert update["notifications"][0]["message"] == "Jane Smith liked your post"


def test_events_require_bearer_token(client, make_event):
    assert client.post("/events/like", json=make_event(count=1)).status_code == 401


def test_events_must_come_from_the_actor(client, auth_headers, make_event, store):
    response = client.post("/events/like", json=make_event(count=1), headers=auth_headers("intruder"))
    assert response.status_code == 403
    assert store.partitions == {}


@pytest.mark.parametrize(
    "path,detail",
    [
        (f"/notifications/user/{OWNER}", "Could not load notifications"),
        (f"/notifications/unread-count/{OWNER}", "Could not count unread notifications"),
    ],
)
def test_store_failure_on_reads_is_500_with_detail(client, store, auth_headers, path, detail):
    async def broken_query(user_id, **equals):
        raise ConnectionError("store unavailable")

    store.query = broken_query

    response = client.get(path, headers=auth_headers())
    assert response.status_code == 500
    assert response.json()["detail"].startswith(detail)
