"""Endpoint tests for the scheduling API"""

import pytest
from fastapi.testclient import TestClient

from meetsync.api.main import create_app

from conftest import MONDAY, iso


@pytest.fixture
def client(store):
    with TestClient(create_app(store=store)) as test_client:
        yield test_client


def test_root_lists_endpoints(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["suggest_time"] == "/api/meetings/suggest-time"


def test_health_reports_collaborators(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["services"]["calendar_store_type"] == "InMemoryCalendarStore"
    assert body["services"]["explanation_writer"] in ("enabled", "templates")


def test_suggest_time_on_preferred_date(client):
    response = client.post("/api/meetings/suggest-time", json={
        "participantIds": [1, 2, 3],
        "participantRoles": [
            {"userId": 1, "role": "Organizer"},
            {"userId": 3, "role": "Subject-Matter-Expert", "requiredAttendance": False},
        ],
        "durationMinutes": 60,
        "preferredDates": ["2025-03-10"],
        "meetingPurpose": "Curriculum review"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["suggestedDate"] == "2025-03-10"
    assert body["suggestedTime"] == "10:00"
    assert body["availableParticipants"] == 3
    assert body["totalParticipants"] == 3
    assert len(body["alternativeTimes"]) == 3
    assert body["alternativeTimes"][0] == {"date": "2025-03-10", "time": "11:00", "availableParticipants": 3}
    assert body["conflictDetails"] == {"conflictingParticipants": [], "conflictResolutionSuggestion": ""}
    assert body["warnings"] == []


def test_suggest_time_with_optional_participant(client):
    response = client.post("/api/meetings/suggest-time", json={
        "participantIds": [2, 3],
        "participantRoles": [{"userId": 3, "role": "Optional"}],
        "durationMinutes": 60,
        "preferredDates": ["2025-03-10"]
    })

    body = response.json()
    # 09:00 is blocked for both by Quarterly Planning
    assert body["suggestedTime"] == "10:00"
    assert body["conflictDetails"]["conflictingParticipants"] == []


def test_suggest_time_without_participants(client):
    response = client.post("/api/meetings/suggest-time", json={"participantIds": []})

    assert response.status_code == 200
    body = response.json()
    assert body["totalParticipants"] == 0
    assert body["availableParticipants"] == 0
    assert body["suggestedTime"] == "10:00"


def test_suggest_time_rejects_non_positive_duration(client):
    response = client.post("/api/meetings/suggest-time", json={"participantIds": [1], "durationMinutes": -30})

    assert response.status_code == 400
    assert "durationMinutes" in response.json()["error"]


def test_suggest_time_rejects_malformed_participant_list(client):
    response = client.post("/api/meetings/suggest-time", json={"participantIds": "1,2"})

    assert response.status_code == 422


def test_detect_conflicts_for_rescheduled_meeting(client):
    response = client.post("/api/meetings/detect-conflicts", json={
        "meetingId": 100,
        "newStartTime": iso(MONDAY, 14),
        "newEndTime": iso(MONDAY, 15)
    })

    assert response.status_code == 200
    body = response.json()
    assert body["hasConflicts"] is True
    assert body["totalParticipants"] == 3
    assert body["conflictingParticipantsCount"] == 2
    bob = body["conflictingParticipants"][0]
    assert bob["userId"] == 2
    assert bob["requiredAttendance"] is True
    assert bob["conflictingEvent"]["title"] == "Project Review"
    assert "Project Review" in bob["conflictReason"]
    assert body["resolutionSuggestion"].startswith("Rescheduling is recommended")


def test_detect_conflicts_unknown_meeting(client):
    response = client.post("/api/meetings/detect-conflicts", json={"meetingId": 404})

    assert response.status_code == 404
    assert response.json()["error"] == "Meeting 404 not found"


def test_detect_conflicts_inverted_times(client):
    response = client.post("/api/meetings/detect-conflicts", json={
        "meetingId": 100,
        "newStartTime": iso(MONDAY, 15),
        "newEndTime": iso(MONDAY, 14)
    })

    assert response.status_code == 400


def test_suggest_time_rejects_overlong_duration(client):
    response = client.post("/api/meetings/suggest-time", json={"participantIds": [1], "durationMinutes": 10_000_000_000})

    assert response.status_code == 400
    assert "must not exceed" in response.json()["error"]


def test_detect_conflicts_with_unreadable_meeting_record(client, store):
    store.meetings[100]["participants"][1]["status"] = "Maybe"

    response = client.post("/api/meetings/detect-conflicts", json={"meetingId": 100})

    assert response.status_code == 502
    assert "Meeting 100" in response.json()["error"]
