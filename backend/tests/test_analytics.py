"""
Data-plane tests: POST /api/analytics/collect, GET event-summary, GET user-stats.

Each request first consumes one queued result for the key lookup.
"""

import datetime
import uuid

import pytest

from pulse.core.store import StoreError

from conftest import APP_ID, key_row, rows

NOW = datetime.datetime(2024, 2, 20, 12, 0, tzinfo=datetime.timezone.utc)
EVENT_ID = uuid.UUID("33333333-3333-4333-8333-333333333333")


# ── Key authentication ──────────────────────────────────────

DATA_PLANE = [
    pytest.param("POST", "/api/analytics/collect", {"json": {"event": "test_event"}}, id="collect"),
    pytest.param(
        "GET", "/api/analytics/event-summary", {"params": {"event": "test_event"}}, id="event-summary"
    ),
    pytest.param("GET", "/api/analytics/user-stats", {"params": {"userId": "user123"}}, id="user-stats"),
]

EXPIRED = datetime.datetime(2020, 1, 1, tzinfo=datetime.timezone.utc)


@pytest.mark.parametrize(("method", "url", "kwargs"), DATA_PLANE)
async def test_missing_key_is_401_without_store_access(client, fake_store, method, url, kwargs):
    response = await client.request(method, url, **kwargs)

    assert response.status_code == 401
    assert response.json() == {"error": "API key required in x-api-key header"}
    assert fake_store.statements == []


@pytest.mark.parametrize(("method", "url", "kwargs"), DATA_PLANE)
async def test_unknown_key_is_401(client, fake_store, api_key_header, method, url, kwargs):
    fake_store.queue(rows())

    response = await client.request(method, url, headers=api_key_header, **kwargs)

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid API key"}
    assert len(fake_store.statements) == 1


@pytest.mark.parametrize(("method", "url", "kwargs"), DATA_PLANE)
async def test_revoked_key_is_403(client, fake_store, api_key_header, method, url, kwargs):
    fake_store.queue(key_row(is_revoked=True))

    response = await client.request(method, url, headers=api_key_header, **kwargs)

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "KEY_REVOKED"
    assert body["error"] == "API key has been revoked"
    assert "regenerate-api-key" in body["message"]
    assert len(fake_store.statements) == 1


@pytest.mark.parametrize(("method", "url", "kwargs"), DATA_PLANE)
async def test_revoked_wins_over_expired(client, fake_store, api_key_header, method, url, kwargs):
    fake_store.queue(key_row(is_revoked=True, expires_at=EXPIRED))

    response = await client.request(method, url, headers=api_key_header, **kwargs)

    assert response.status_code == 403
    assert response.json()["code"] == "KEY_REVOKED"
    # Nothing beyond the key lookup ran
    assert len(fake_store.statements) == 1


@pytest.mark.parametrize(("method", "url", "kwargs"), DATA_PLANE)
async def test_expired_key_reports_expiry(client, fake_store, api_key_header, method, url, kwargs):
    fake_store.queue(key_row(expires_at=EXPIRED))

    response = await client.request(method, url, headers=api_key_header, **kwargs)

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "KEY_EXPIRED"
    assert body["error"] == "API key has expired"
    assert body["expired_at"].startswith("2020-01-01T00:00:00")
    assert len(fake_store.statements) == 1


async def test_naive_expiry_from_store_is_treated_as_utc(client, fake_store, api_key_header):
    fake_store.queue(key_row(expires_at=datetime.datetime(2020, 1, 1)))

    response = await client.get(
        "/api/analytics/user-stats", params={"userId": "u1"}, headers=api_key_header
    )

    assert response.status_code == 403
    assert response.json()["code"] == "KEY_EXPIRED"


async def test_key_without_expiry_is_accepted(client, fake_store, api_key_header):
    fake_store.queue(
        rows({"application_id": APP_ID, "is_revoked": False, "expires_at": None}),
        rows({"id": EVENT_ID, "timestamp": NOW}),
    )

    response = await client.post(
        "/api/analytics/collect", json={"event": "visit"}, headers=api_key_header
    )

    assert response.status_code == 201


@pytest.mark.parametrize(("method", "url", "kwargs"), DATA_PLANE)
async def test_key_lookup_failure_is_500(client, fake_store, api_key_header, method, url, kwargs):
    fake_store.queue(StoreError("connection refused"))

    response = await client.request(method, url, headers=api_key_header, **kwargs)

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal server error",
        "message": "Failed to validate API key",
    }


# ── Collect ─────────────────────────────────────────────────

async def test_collect_records_one_event(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows({"id": EVENT_ID, "timestamp": NOW}))

    response = await client.post(
        "/api/analytics/collect",
        json={
            "event": "button_click",
            "user_id": "user123",
            "device": "mobile",
            "metadata": {"browser": "Chrome"},
        },
        headers=api_key_header,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["event_id"] == str(EVENT_ID)
    assert body["recorded_at"].startswith("2024-02-20T12:00:00")

    assert len(fake_store.statements) == 2
    insert = fake_store.statements[1]
    assert insert.table.name == "analytics_events"
    params = fake_store.compiled(1).params
    assert params["event_name"] == "button_click"
    assert params["user_id"] == "user123"
    assert params["device"] == "mobile"
    assert params["application_id"] == APP_ID


async def test_collect_uses_key_application_not_body(client, fake_store, api_key_header):
    other_app = uuid.uuid4()
    fake_store.queue(key_row(application_id=other_app), rows({"id": EVENT_ID, "timestamp": NOW}))

    response = await client.post(
        "/api/analytics/collect",
        json={"event": "visit", "application_id": str(APP_ID)},
        headers=api_key_header,
    )

    assert response.status_code == 201
    assert fake_store.compiled(1).params["application_id"] == other_app


async def test_collect_accepts_epoch_millis(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows({"id": EVENT_ID, "timestamp": NOW}))

    response = await client.post(
        "/api/analytics/collect",
        json={"event": "visit", "timestamp": 1708430400000},
        headers=api_key_header,
    )

    assert response.status_code == 201
    assert fake_store.compiled(1).params["timestamp"] == NOW


async def test_collect_accepts_iso_timestamp(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows({"id": EVENT_ID, "timestamp": NOW}))

    response = await client.post(
        "/api/analytics/collect",
        json={"event": "visit", "timestamp": "2024-02-20T12:00:00Z"},
        headers=api_key_header,
    )

    assert response.status_code == 201
    assert fake_store.compiled(1).params["timestamp"] == NOW


async def test_collect_requires_event_name(client, fake_store, api_key_header):
    fake_store.queue(key_row())

    response = await client.post(
        "/api/analytics/collect", json={"user_id": "u1"}, headers=api_key_header
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Event name required"}
    assert len(fake_store.statements) == 1


async def test_collect_rejects_unparseable_timestamp(client, fake_store, api_key_header):
    fake_store.queue(key_row())

    response = await client.post(
        "/api/analytics/collect",
        json={"event": "visit", "timestamp": "not-a-date"},
        headers=api_key_header,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid timestamp"}
    assert len(fake_store.statements) == 1


async def test_collect_rejects_non_object_metadata(client, fake_store, api_key_header):
    fake_store.queue(key_row())

    response = await client.post(
        "/api/analytics/collect",
        json={"event": "visit", "metadata": ["not", "an", "object"]},
        headers=api_key_header,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


async def test_collect_store_failure_is_500(client, fake_store, api_key_header):
    fake_store.queue(key_row(), StoreError("disk full"))

    response = await client.post(
        "/api/analytics/collect", json={"event": "visit"}, headers=api_key_header
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to collect event"}


# ── Event summary ───────────────────────────────────────────

async def test_summary_folds_device_groups(client, fake_store, api_key_header):
    fake_store.queue(
        key_row(),
        rows(
            {"count": "50", "unique_users": "25", "device": "mobile"},
            {"count": "30", "unique_users": "20", "device": "desktop"},
        ),
    )

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "button_click"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    assert response.json() == {
        "event": "button_click",
        "count": 80,
        "uniqueUsers": 25,
        "deviceData": {"mobile": 50, "desktop": 30},
    }


async def test_summary_of_unseen_event_is_zero(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows())

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "never_fired"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    assert response.json() == {
        "event": "never_fired",
        "count": 0,
        "uniqueUsers": 0,
        "deviceData": {},
    }


async def test_summary_skips_null_device_in_breakdown(client, fake_store, api_key_header):
    fake_store.queue(
        key_row(),
        rows(
            {"count": 4, "unique_users": 2, "device": None},
            {"count": 6, "unique_users": 3, "device": "tablet"},
        ),
    )

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "visit"},
        headers=api_key_header,
    )

    body = response.json()
    assert body["count"] == 10
    assert body["deviceData"] == {"tablet": 6}


async def test_summary_applies_date_bounds(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows())

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "visit", "startDate": "2024-01-01", "endDate": "2024-01-31T23:59:59Z"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    sql = str(fake_store.compiled(1))
    assert "analytics_events.timestamp >=" in sql
    assert "analytics_events.timestamp <=" in sql
    assert "analytics_events.application_id =" in sql


async def test_summary_requires_event(client, fake_store, api_key_header):
    fake_store.queue(key_row())

    response = await client.get("/api/analytics/event-summary", headers=api_key_header)

    assert response.status_code == 400
    assert response.json() == {"error": "Event name required"}


async def test_summary_rejects_bad_start_date(client, fake_store, api_key_header):
    fake_store.queue(key_row())

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "visit", "startDate": "yesterday"},
        headers=api_key_header,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid startDate"}


async def test_summary_store_failure_is_500(client, fake_store, api_key_header):
    fake_store.queue(key_row(), StoreError("timeout"))

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "visit"},
        headers=api_key_header,
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to get summary"}


# ── User stats ──────────────────────────────────────────────

async def test_user_stats_returns_top_cluster(client, fake_store, api_key_header):
    fake_store.queue(
        key_row(),
        rows(
            {
                "total_events": "42",
                "metadata": {"browser": "Chrome", "os": "iOS"},
                "ip_address": "192.168.1.1",
            }
        ),
    )

    response = await client.get(
        "/api/analytics/user-stats",
        params={"userId": "user123"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    assert response.json() == {
        "userId": "user123",
        "totalEvents": 42,
        "deviceDetails": {"browser": "Chrome", "os": "iOS"},
        "ipAddress": "192.168.1.1",
    }


async def test_user_stats_with_null_metadata(client, fake_store, api_key_header):
    fake_store.queue(
        key_row(),
        rows({"total_events": 3, "metadata": None, "ip_address": None}),
    )

    response = await client.get(
        "/api/analytics/user-stats",
        params={"userId": "user123"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["deviceDetails"] == {"browser": None, "os": None}
    assert body["ipAddress"] is None


async def test_user_stats_unknown_user_is_404(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows())

    response = await client.get(
        "/api/analytics/user-stats",
        params={"userId": "ghost"},
        headers=api_key_header,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "No events found"}


async def test_user_stats_requires_user_id(client, fake_store, api_key_header):
    fake_store.queue(key_row())

    response = await client.get("/api/analytics/user-stats", headers=api_key_header)

    assert response.status_code == 400
    assert response.json() == {"error": "userId required"}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_summary_accepts_epoch_millis_bounds(client, fake_store, api_key_header):
    fake_store.queue(key_row(), rows())

    response = await client.get(
        "/api/analytics/event-summary",
        params={"event": "visit", "startDate": "1708430400000"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    assert fake_store.compiled(1).params["timestamp_1"] == NOW


async def test_user_stats_echoes_non_string_metadata(client, fake_store, api_key_header):
    fake_store.queue(
        key_row(),
        rows(
            {
                "total_events": 2,
                "metadata": {"browser": {"name": "Chrome", "version": 120}, "os": 17},
                "ip_address": "10.0.0.1",
            }
        ),
    )

    response = await client.get(
        "/api/analytics/user-stats",
        params={"userId": "user123"},
        headers=api_key_header,
    )

    assert response.status_code == 200
    assert response.json()["deviceDetails"] == {
        "browser": {"name": "Chrome", "version": 120},
        "os": 17,
    }
