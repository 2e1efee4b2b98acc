import time

import pytest
from fastapi.testclient import TestClient

from sentinel.core.config import Settings
from sentinel.main import create_app


def wait_for(predicate, timeout=3.0, step=0.05):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step)
    return False


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'sentinel.db'}",
        detection_interval=0.05,
        detection_source="queue",
        assistant_api_key=None,
        seed_sample_students=True,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def test_health_and_home(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "assistant": "missing", "assistant_reachable": False}
    assert "SmartClass Sentinel" in client.get("/").text


def test_roster_is_seeded_and_extendable(client):
    r = client.get("/api/v1/students/")
    assert [s["id"] for s in r.json()] == ["1", "2", "3", "4"]

    r = client.post("/api/v1/students/", json={"id": "5", "name": "Meera Iyer", "email": "meera@school.edu"})
    assert r.status_code == 201
    assert client.get("/api/v1/students/5").json()["name"] == "Meera Iyer"

    assert client.post("/api/v1/students/", json={"id": "5", "name": "Again"}).status_code == 400
    assert client.get("/api/v1/students/nope").status_code == 404

    r = client.post("/api/v1/students/", json={"name": "No Id"})
    assert r.status_code == 201
    assert r.json()["id"]


def test_capture_end_to_end(client):
    # detections are refused until a session runs
    evt = {"student_id": "1", "emotion": "happy", "confidence": 0.93}
    assert client.post("/api/v1/capture/detections", json=evt).status_code == 409

    session_id = client.post("/api/v1/capture/start").json()["session_id"]
    assert client.post("/api/v1/capture/start").json()["session_id"] == session_id

    for _ in range(3):
        assert client.post("/api/v1/capture/detections", json=evt).status_code == 202
        time.sleep(0.1)
    client.post("/api/v1/capture/detections",
                json={"student_id": "2", "emotion": "focused", "confidence": 1.4})

    def two_recorded():
        return len(client.get("/api/v1/attendance/records").json()) == 2

    assert wait_for(two_recorded)
    status = client.get("/api/v1/capture/status").json()
    assert status["running"] is True
    assert status["attendees"] == 2

    stopped = client.post("/api/v1/capture/stop").json()
    assert stopped["session_id"] == session_id
    assert client.get("/api/v1/capture/status").json()["running"] is False

    records = client.get("/api/v1/attendance/records", params={"session_id": session_id}).json()
    by_student = {r["student_id"]: r for r in records}
    assert len(records) == 2
    assert by_student["1"]["student_name"] == "Riya Sen"
    assert by_student["2"]["confidence"] == 1.0

    insights = client.get("/api/v1/dashboard/insights").json()
    assert insights["insights"]["present_students"] == 2
    assert insights["insights"]["attendance_rate"] == 50
    assert insights["insights"]["engagement_score"] == 100
    assert len(insights["hourly_engagement"]) == 24

    analytics = client.get("/api/v1/dashboard/analytics").json()
    assert [r["type"] for r in analytics["recommendations"]] == ["attendance"]
    assert client.get("/api/v1/dashboard/recommendations").json() == analytics["recommendations"]

    report = client.get("/api/v1/attendance/report").json()
    assert report["unique_students"] == 2
    assert report["session_count"] == 1


def test_invalid_emotion_is_rejected(client):
    client.post("/api/v1/capture/start")
    r = client.post("/api/v1/capture/detections",
                    json={"student_id": "1", "emotion": "ecstatic", "confidence": 0.5})
    assert r.status_code == 422
    client.post("/api/v1/capture/stop")


def test_agent_extras_are_accepted(client):
    client.post("/api/v1/capture/start")
    r = client.post("/api/v1/capture/detections",
                    json={"student_id": "2", "emotion": "neutral", "confidence": 0.7,
                          "camera_id": "cam-2", "timestamp": "2024-05-15T10:00:00",
                          "metadata": {"bbox": [1, 2, 3, 4]}})
    assert r.status_code == 202
    client.post("/api/v1/capture/stop")
    assert client.get("/api/v1/capture/detections").json() == []


def test_records_survive_restart(settings):
    with TestClient(create_app(settings)) as c:
        c.post("/api/v1/capture/start")
        c.post("/api/v1/capture/detections", json={"student_id": "3", "emotion": "bored", "confidence": 0.5})
        assert wait_for(lambda: len(c.get("/api/v1/attendance/records").json()) == 1)
        c.post("/api/v1/capture/stop")

    with TestClient(create_app(settings)) as c:
        records = c.get("/api/v1/attendance/records").json()
        assert [r["student_id"] for r in records] == ["3"]
        assert records[0]["emotion"] == "bored"
        assert c.get("/api/v1/dashboard/insights").json()["insights"]["present_students"] == 1


def test_chat_falls_back_without_assistant(client):
    r = client.post("/api/v1/assistant/chat", json={"message": "What is the attendance today?"})
    assert r.status_code == 200
    body = r.json()
    assert body["fallback"] is True
    assert body["response"].startswith("Today's attendance is 0%")
    assert body["insights"]["total_students"] == 4

    assert client.post("/api/v1/assistant/chat", json={"message": "   "}).status_code == 400


def test_insights_websocket_pushes_snapshot(client):
    with client.websocket_connect("/api/v1/dashboard/ws/insights") as ws:
        first = ws.receive_json()
        assert first["present_students"] == 0
        client.post("/api/v1/capture/start")
        client.post("/api/v1/capture/detections", json={"student_id": "4", "emotion": "happy", "confidence": 0.8})
        second = ws.receive_json()
        assert second["present_students"] == 1
    client.post("/api/v1/capture/stop")
