from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from src.crud.crud_notification_request import NOTIFICATION_REQUESTS_COLLECTION
from src.crud.crud_recipient import RECIPIENTS_COLLECTION
from src.crud.crud_scheduled_notification import SCHEDULED_NOTIFICATIONS_COLLECTION
from src.main import app
from src.services.push_transport import PushDeliveryError
from src.services.request_dispatcher import INVALID_FIELDS_ERROR

SEND_URL = "/api/v1/prayer-notifications/send"


@pytest.fixture
def employees(fake_db):
    fake_db.add(RECIPIENTS_COLLECTION, "emp-1", {"fcmToken": "T1", "email": "a@example.com"})
    fake_db.add(RECIPIENTS_COLLECTION, "emp-2", {"fcmToken": "T2"})
    fake_db.add(RECIPIENTS_COLLECTION, "emp-3", {"email": "c@example.com"})


@pytest.mark.asyncio
async def test_read_root(client):
    response = await client.get("/")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_broadcast_from_query_parameters(client, transport, employees):
    transport.failures["T2"] = PushDeliveryError("messaging/internal", "server error")

    response = await client.get(SEND_URL, params={"prayerName": "Fajr", "message": "Time for Fajr"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Prayer time notification sent: Fajr",
        "recipients": 2,
        "successCount": 1,
        "failureCount": 1,
        "totalEmployees": 3,
        "usersWithTokens": 2,
        "usersWithoutTokens": 1,
    }


@pytest.mark.asyncio
async def test_broadcast_from_json_body(client, transport, employees):
    response = await client.post(SEND_URL, json={"prayerName": "Asr", "message": "Time for Asr"})

    assert response.status_code == 200
    assert response.json()["successCount"] == 2
    assert {m.notification.title for m in transport.sent} == {"Asr"}


@pytest.mark.asyncio
async def test_query_parameters_take_precedence(client, transport, employees):
    response = await client.post(
        SEND_URL,
        params={"prayerName": "Isha"},
        json={"prayerName": "Asr", "message": "Time to pray"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Prayer time notification sent: Isha"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, body",
    [({}, None), ({"prayerName": "Fajr"}, None), ({}, {"message": "hello"}), ({"prayerName": ""}, {"message": "x"})],
)
async def test_broadcast_missing_parameters(client, transport, params, body):
    response = await client.post(SEND_URL, params=params, json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameters: prayerName and message"}
    assert transport.sent == []


@pytest.mark.asyncio
async def test_broadcast_ignores_malformed_body(client):
    response = await client.post(
        SEND_URL, content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_broadcast_store_failure_returns_500(client, fake_db):
    fake_db.failures[("stream", RECIPIENTS_COLLECTION)] = RuntimeError("firestore unavailable")

    response = await client.get(SEND_URL, params={"prayerName": "Fajr", "message": "Time"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to send prayer time notification",
        "details": "firestore unavailable",
    }


@pytest.mark.asyncio
async def test_dispatch_request_endpoint(client, fake_db, transport):
    fake_db.add(
        NOTIFICATION_REQUESTS_COLLECTION,
        "req-1",
        {"status": "pending", "fcmToken": "T1", "title": "Fajr", "body": "Prayer time"},
    )
    transport.message_ids = ["m1"]

    response = await client.post("/api/v1/notification-requests/req-1/dispatch")

    assert response.status_code == 200
    assert response.json() == {"requestId": "req-1", "status": "sent"}
    stored = fake_db.doc(NOTIFICATION_REQUESTS_COLLECTION, "req-1")
    assert (stored["status"], stored["messageId"]) == ("sent", "m1")


@pytest.mark.asyncio
async def test_redelivered_request_is_a_no_op(client, fake_db, transport):
    fake_db.add(
        NOTIFICATION_REQUESTS_COLLECTION,
        "req-1",
        {"status": "sent", "fcmToken": "T1", "title": "Fajr", "body": "Prayer time"},
    )

    response = await client.post("/api/v1/notification-requests/req-1/dispatch")

    assert response.status_code == 200
    assert response.json() == {"requestId": "req-1", "status": None}
    assert transport.sent == []


@pytest.mark.asyncio
async def test_dispatch_unknown_request(client):
    response = await client.post("/api/v1/notification-requests/missing/dispatch")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_run_scheduled_notifications(client, fake_db, transport, employees):
    fake_db.add(
        SCHEDULED_NOTIFICATIONS_COLLECTION,
        "s1",
        {"status": "pending", "prayerName": "Dhuhr", "scheduledFor": datetime.now(timezone.utc)},
    )

    response = await client.post("/api/v1/scheduled-notifications/run")

    assert response.status_code == 200
    assert response.json() == {
        "pendingCount": 1,
        "dueCount": 1,
        "processedCount": 1,
        "successCount": 2,
        "failureCount": 0,
    }
    assert fake_db.doc(SCHEDULED_NOTIFICATIONS_COLLECTION, "s1")["status"] == "sent"


@pytest.mark.asyncio
async def test_endpoints_unavailable_without_firebase():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get(SEND_URL, params={"prayerName": "Fajr", "message": "Time"})

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_malformed_pending_request_is_marked_failed(client, fake_db, transport):
    fake_db.add(
        NOTIFICATION_REQUESTS_COLLECTION,
        "req-1",
        {"status": "pending", "fcmToken": "T1", "title": 123, "body": "b"},
    )

    response = await client.post("/api/v1/notification-requests/req-1/dispatch")

    assert response.status_code == 200
    assert response.json() == {"requestId": "req-1", "status": "failed"}
    stored = fake_db.doc(NOTIFICATION_REQUESTS_COLLECTION, "req-1")
    assert stored["status"] == "failed"
    assert stored["error"] == INVALID_FIELDS_ERROR
    assert transport.sent == []


@pytest.mark.asyncio
async def test_malformed_finished_request_is_left_alone(client, fake_db, transport):
    fake_db.add(
        NOTIFICATION_REQUESTS_COLLECTION,
        "req-1",
        {"status": "sent", "fcmToken": "T1", "title": 123, "body": "b"},
    )

    response = await client.post("/api/v1/notification-requests/req-1/dispatch")

    assert response.json() == {"requestId": "req-1", "status": None}
    assert fake_db.updates == []


@pytest.mark.asyncio
async def test_broadcast_tolerates_odd_employee_fields(client, fake_db, transport):
    fake_db.add(RECIPIENTS_COLLECTION, "e1", {"fcmToken": "T1"})
    fake_db.add(RECIPIENTS_COLLECTION, "e2", {"fcmToken": "T2", "email": 42})
    fake_db.add(RECIPIENTS_COLLECTION, "e3", {"fcmToken": 777, "email": ["x"]})

    response = await client.get(SEND_URL, params={"prayerName": "Fajr", "message": "m"})

    assert response.status_code == 200
    body = response.json()
    assert body["successCount"] == 2
    assert body["usersWithTokens"] == 2
    assert body["usersWithoutTokens"] == 1
    assert sorted(transport.sent_tokens) == ["T1", "T2"]


@pytest.mark.asyncio
async def test_scheduled_run_skips_malformed_entries(client, fake_db, transport):
    fake_db.add(RECIPIENTS_COLLECTION, "e1", {"fcmToken": "T1"})
    fake_db.add(
        SCHEDULED_NOTIFICATIONS_COLLECTION,
        "s1",
        {"status": "pending", "prayerName": "Fajr", "scheduledFor": datetime.now(timezone.utc)},
    )
    fake_db.add(
        SCHEDULED_NOTIFICATIONS_COLLECTION,
        "s2",
        {"status": "pending", "prayerName": "Fajr", "scheduledFor": "not-a-date"},
    )

    response = await client.post("/api/v1/scheduled-notifications/run")

    assert response.status_code == 200
    assert response.json()["processedCount"] == 1
    assert fake_db.doc(SCHEDULED_NOTIFICATIONS_COLLECTION, "s1")["status"] == "sent"
    assert fake_db.doc(SCHEDULED_NOTIFICATIONS_COLLECTION, "s2")["status"] == "pending"
    assert transport.sent_tokens == ["T1"]
