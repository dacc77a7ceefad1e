"""
Schedule Route Tests

Google Calendar is replaced with an httpx.MockTransport that records requests.

Tests:
1. Scheduling without a connected calendar
2. Calendar event created, patched and deleted with the session
3. Calendar failures (including token refresh) never fail the request
4. Listing, filtering and ownership

Run with: pytest tests/test_schedule_routes.py -v
"""
import json

import httpx
import pytest

from prepcoach.services import calendar_client
from prepcoach.services.calendar_client import CalendarClient

from conftest import USER_ID


CONFIG = {"type": "technical", "difficulty": "hard", "duration": 45, "role": "Backend Engineer"}


@pytest.fixture
def calendar_requests(monkeypatch):
    """Install a fake Google Calendar; returns the list of requests it received."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(200, json={"id": "evt-123", "hangoutLink": "https://meet.google.com/x"})
        if request.method == "PATCH":
            return httpx.Response(200, json={"id": "evt-123"})
        return httpx.Response(204)

    monkeypatch.setattr(calendar_client, "_calendar_client", CalendarClient(transport=httpx.MockTransport(handler)))
    return seen


def connect_calendar(client, headers):
    response = client.post("/api/profile/calendar", json={"access_token": "ya29.token"}, headers=headers)
    assert response.status_code == 200


def schedule(client, headers, **overrides):
    body = {"session_config": CONFIG, "start_time": "2030-01-15T10:00:00Z", **overrides}
    response = client.post("/api/schedule", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_schedule_without_calendar(client, headers, calendar_requests):
    session = schedule(client, headers)

    assert session["status"] == "scheduled"
    assert session["calendar_synced"] is False
    assert session["session_config"]["duration"] == 45
    assert calendar_requests == []


def test_schedule_creates_calendar_event(client, headers, calendar_requests):
    connect_calendar(client, headers)

    session = schedule(client, headers)

    assert session["calendar_synced"] is True
    assert session["calendar_event_id"] == "evt-123"
    assert session["google_calendar_id"] == "primary"

    request = calendar_requests[0]
    assert request.url.path == "/calendar/v3/calendars/primary/events"
    assert request.headers["Authorization"] == "Bearer ya29.token"
    event = json.loads(request.content)
    assert event["summary"] == "Interview Practice - technical (hard)"
    # end defaults to start + duration
    assert event["end"]["dateTime"] == "2030-01-15T10:45:00Z"


def test_calendar_error_leaves_session_unsynced(client, headers, monkeypatch):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "backend"}))
    monkeypatch.setattr(calendar_client, "_calendar_client", CalendarClient(transport=transport))
    connect_calendar(client, headers)

    session = schedule(client, headers)

    assert session["calendar_synced"] is False


def test_end_time_must_follow_start_time(client, headers):
    response = client.post(
        "/api/schedule",
        json={"session_config": CONFIG, "start_time": "2030-01-15T10:00:00Z", "end_time": "2030-01-15T09:00:00Z"},
        headers=headers,
    )
    assert response.status_code == 400


def test_patch_end_time_must_follow_start_time(client, headers):
    session = schedule(client, headers, end_time="2030-01-15T11:00:00Z")

    before_start = client.patch(
        f"/api/schedule/{session['id']}", json={"end_time": "2030-01-15T09:30:00Z"}, headers=headers
    )
    assert before_start.status_code == 400
    assert before_start.json()["detail"] == "end_time must be after start_time"

    after_end = client.patch(
        f"/api/schedule/{session['id']}", json={"start_time": "2030-01-15T11:00:00Z"}, headers=headers
    )
    assert after_end.status_code == 400

    moved = client.patch(
        f"/api/schedule/{session['id']}",
        json={"start_time": "2030-01-15T12:00:00Z", "end_time": "2030-01-15T13:00:00Z"},
        headers=headers,
    )
    assert moved.status_code == 200
    assert moved.json()["data"]["start_time"].startswith("2030-01-15T12:00:00")


def test_patch_merges_config_and_syncs_calendar(client, headers, calendar_requests):
    connect_calendar(client, headers)
    session = schedule(client, headers)

    response = client.patch(
        f"/api/schedule/{session['id']}",
        json={"session_config": {"difficulty": "medium"}, "sync_to_calendar": True},
        headers=headers,
    )

    assert response.status_code == 200
    config = response.json()["data"]["session_config"]
    assert config["difficulty"] == "medium"
    assert config["role"] == "Backend Engineer"

    patch = calendar_requests[-1]
    assert patch.method == "PATCH"
    assert json.loads(patch.content) == {"summary": "Interview Practice - technical (medium)"}


def test_patch_status_without_sync_skips_calendar(client, headers, calendar_requests):
    connect_calendar(client, headers)
    session = schedule(client, headers)

    response = client.patch(f"/api/schedule/{session['id']}", json={"status": "cancelled"}, headers=headers)

    assert response.json()["data"]["status"] == "cancelled"
    assert [r.method for r in calendar_requests] == ["POST"]


def test_delete_removes_calendar_event(client, headers, calendar_requests):
    connect_calendar(client, headers)
    session = schedule(client, headers)

    assert client.delete(f"/api/schedule/{session['id']}", headers=headers).status_code == 204
    assert calendar_requests[-1].method == "DELETE"
    assert calendar_requests[-1].url.path.endswith("/events/evt-123")
    assert client.get(f"/api/schedule/{session['id']}", headers=headers).status_code == 404


def test_list_filters_by_status(client, headers, other_headers):
    first = schedule(client, headers, start_time="2030-01-10T10:00:00Z")
    schedule(client, headers, start_time="2030-01-20T10:00:00Z")
    schedule(client, other_headers)
    client.patch(f"/api/schedule/{first['id']}", json={"status": "completed"}, headers=headers)

    everything = client.get("/api/schedule", headers=headers).json()
    completed = client.get("/api/schedule", params={"status": "completed"}, headers=headers).json()

    assert everything["count"] == 2
    # newest start first
    assert everything["data"][1]["id"] == first["id"]
    assert [s["id"] for s in completed["data"]] == [first["id"]]


def test_other_user_cannot_touch_session(client, headers, other_headers):
    session = schedule(client, headers)

    assert client.get(f"/api/schedule/{session['id']}", headers=other_headers).status_code == 404
    missing = client.patch(f"/api/schedule/{session['id']}", json={"status": "cancelled"}, headers=other_headers)
    assert missing.json()["detail"] == "Scheduled session not found"
    assert client.delete(f"/api/schedule/{session['id']}", headers=other_headers).status_code == 404


def test_malformed_token_refresh_leaves_session_unsynced(client, headers, monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"token_type": "Bearer"})
        return httpx.Response(200, json={"id": "evt-123"})

    calendar = CalendarClient(transport=httpx.MockTransport(handler))
    monkeypatch.setattr(calendar_client, "_calendar_client", calendar)
    calendar.store_calendar_tokens(USER_ID, "ya29.expired", "1//refresh", expires_in=-60)

    session = schedule(client, headers)

    assert session["calendar_synced"] is False
    assert [r.url.host for r in seen] == ["oauth2.googleapis.com"]


def test_token_refresh_rejects_non_json_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    assert CalendarClient(transport=transport).refresh_access_token(USER_ID, "1//refresh") is None


def test_token_refresh_stores_new_token():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"access_token": "ya29.fresh", "expires_in": 3600})
    )
    calendar = CalendarClient(transport=transport)
    calendar.store_calendar_tokens(USER_ID, "ya29.expired", "1//refresh", expires_in=-60)

    assert calendar.get_valid_access_token(USER_ID) == "ya29.fresh"
    assert calendar.get_valid_access_token(USER_ID) == "ya29.fresh"
