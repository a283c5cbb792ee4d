"""End-to-end tests for the HTTP API through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from sleeptracker.api.main import create_app
from sleeptracker.config import AppSettings
from conftest import sleep_payload


def create_sleep(client, **kwargs):
    response = client.post("/api/sleep", json=sleep_payload(**kwargs))
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestSleepEndpoints:
    def test_create_and_get(self, client):
        session_id = create_sleep(client)
        response = client.get(f"/api/sleep/{session_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "2025-06-02"
        assert body["bed_time"] == "23:00:00"
        assert body["quality"] == 4

    def test_get_by_date(self, client):
        create_sleep(client)
        create_sleep(client, bed="13:00:00", wake="14:00:00")
        sessions = client.get("/api/sleep/date/2025-06-02").json()
        assert [s["wake_time"] for s in sessions] == ["07:00:00", "14:00:00"]

    def test_get_by_invalid_date(self, client):
        response = client.get("/api/sleep/date/June-2")
        assert response.status_code == 400
        assert response.json()["code"] == "bad_request"

    def test_update(self, client):
        session_id = create_sleep(client)
        response = client.put(f"/api/sleep/{session_id}", json=sleep_payload(wake="06:30:00", quality=2))
        assert response.status_code == 204
        body = client.get(f"/api/sleep/{session_id}").json()
        assert body["wake_time"] == "06:30:00"
        assert body["quality"] == 2

    def test_update_missing(self, client):
        response = client.put("/api/sleep/99", json=sleep_payload())
        assert response.status_code == 404
        assert response.json() == {"error": "not found"}

    def test_delete(self, client):
        session_id = create_sleep(client)
        assert client.delete(f"/api/sleep/{session_id}").status_code == 204
        response = client.get(f"/api/sleep/{session_id}")
        assert response.status_code == 404
        assert response.json() == {"error": "not found"}
        assert client.delete(f"/api/sleep/{session_id}").status_code == 404

    def test_overlap_rejected(self, client):
        create_sleep(client)
        response = client.post("/api/sleep", json=sleep_payload(bed="06:00:00", wake="08:00:00"))
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "sleep session overlaps existing session"}

    def test_update_may_keep_its_own_window(self, client):
        session_id = create_sleep(client)
        response = client.put(f"/api/sleep/{session_id}", json=sleep_payload(bed="22:30:00"))
        assert response.status_code == 204

    def test_bad_quality(self, client):
        response = client.post("/api/sleep", json=sleep_payload(quality=6))
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "bad_request"
        assert "quality must be between 1 and 5" in body["message"]

    def test_missing_field(self, client):
        payload = sleep_payload()
        del payload["bed_time"]
        response = client.post("/api/sleep", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "bad_request"

    def test_recent(self, client):
        for day in range(1, 6):
            create_sleep(client, wake_date=f"2025-06-0{day}")
        items = client.get("/api/sleep/recent", params={"days": 2}).json()
        assert [i["date"] for i in items] == ["2025-06-05", "2025-06-04"]
        assert items[0]["duration_min"] == 480
        assert items[0]["session_count"] == 1

    def test_range(self, client):
        create_sleep(client)
        create_sleep(client, bed="13:00:00", wake="14:00:00")
        items = client.get("/api/sleep/range", params={"from": "2025-06-01", "to": "2025-06-30"}).json()
        assert len(items) == 1
        assert items[0]["duration_min"] == 540
        assert items[0]["session_count"] == 2

    def test_range_limit_is_inclusive(self, client):
        response = client.get("/api/sleep/range", params={"from": "2025-01-01", "to": "2025-03-03"})
        assert response.status_code == 200
        response = client.get("/api/sleep/range", params={"from": "2025-01-01", "to": "2025-03-04"})
        assert response.status_code == 400
        assert response.json()["message"] == "range must be <= 62 days"

    @pytest.mark.parametrize("params,message", [
        ({"from": "2025-06-10", "to": "2025-06-01"}, "from must be <= to"),
        ({"from": "2025-13-01", "to": "2025-06-01"}, "invalid from date"),
        ({"from": "2025-06-01", "to": "tomorrow"}, "invalid to date"),
    ])
    def test_range_errors(self, client, params, message):
        response = client.get("/api/sleep/range", params=params)
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": message}


class TestActivityEndpoints:
    def test_exercise_intensity(self, client):
        assert client.post("/api/exercise", json={"date": "2025-06-02", "intensity": "light"}).status_code == 201
        client.post("/api/exercise", json={
            "date": "2025-06-02", "intensity": "hard", "start_time": "18:00:00", "duration_min": 40,
        })
        response = client.get("/api/exercise/intensity", params={"from": "2025-06-01", "to": "2025-06-07"})
        assert response.json() == [{"date": "2025-06-02", "intensity": "hard"}]

    def test_intensity_range_errors(self, client):
        response = client.get("/api/exercise/intensity", params={"from": "2025-06-10", "to": "2025-06-01"})
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "from must be <= to"}

        response = client.get("/api/exercise/intensity", params={"from": "2025-01-01", "to": "2025-03-04"})
        assert response.json() == {"code": "bad_request", "message": "range must be <= 62 days"}

    def test_invalid_intensity(self, client):
        response = client.post("/api/exercise", json={"date": "2025-06-02", "intensity": "extreme"})
        assert response.status_code == 400
        assert "Invalid intensity" in response.json()["message"]

    def test_note(self, client):
        response = client.post("/api/note", json={"date": "2025-06-02", "body": "late dinner"})
        assert response.status_code == 201
        assert response.json() == {"id": 1}


class TestTimezone:
    def test_default(self, client):
        assert client.get("/api/settings/timezone").json() == {"timezone": "Asia/Tokyo"}

    def test_invalid(self, client):
        response = client.put("/api/settings/timezone", json={"timezone": "Mars/Olympus"})
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "invalid timezone"}

    def test_duration_across_fall_back(self, client):
        response = client.put("/api/settings/timezone", json={"timezone": "America/New_York"})
        assert response.status_code == 204
        assert client.get("/api/settings/timezone").json() == {"timezone": "America/New_York"}

        create_sleep(client, wake_date="2025-11-02", bed="01:30:00", wake="01:30:00")
        items = client.get("/api/sleep/range", params={"from": "2025-11-02", "to": "2025-11-02"}).json()
        assert items[0]["duration_min"] == 60


class TestTrendsEndpoints:
    def test_sleep_bars(self, client):
        create_sleep(client, wake_date="2025-06-03")
        create_sleep(client, wake_date="2025-06-02")
        bars = client.get("/api/trends/sleep-bars", params={"from": "2025-06-01", "to": "2025-06-30"}).json()
        assert [b["date"] for b in bars] == ["2025-06-02", "2025-06-03"]

    def test_summary_by_week(self, client):
        create_sleep(client, wake_date="2025-06-02")
        create_sleep(client, wake_date="2025-06-03", quality=2)
        summary = client.get(
            "/api/trends/summary", params={"from": "2025-06-01", "to": "2025-06-30", "bucket": "week"}
        ).json()
        assert summary["duration_by_bucket"][0]["bucket"] == "2025-W23"
        assert summary["quality_by_bucket"][0]["avg"] == 3.0

    @pytest.mark.parametrize("path", ["/api/trends/sleep-bars", "/api/trends/summary"])
    def test_range_limit(self, client, path):
        assert client.get(path, params={"from": "2025-01-01", "to": "2025-03-03"}).status_code == 200

        response = client.get(path, params={"from": "2025-01-01", "to": "2025-03-04"})
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "range must be <= 62 days"}

        response = client.get(path, params={"from": "2025-01-01", "to": "2025-06-30"})
        assert response.status_code == 400

    @pytest.mark.parametrize("path", ["/api/trends/sleep-bars", "/api/trends/summary"])
    def test_reversed_range(self, client, path):
        response = client.get(path, params={"from": "2025-06-10", "to": "2025-06-01"})
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "to must be >= from"}

    def test_range_limit_follows_settings(self, tmp_path):
        app = create_app(AppSettings(data_dir=str(tmp_path / "short"), max_range_days=7))
        client = TestClient(app)
        response = client.get("/api/trends/sleep-bars", params={"from": "2025-06-01", "to": "2025-06-08"})
        assert response.json() == {"code": "bad_request", "message": "range must be <= 7 days"}

    def test_summary_bad_bucket(self, client):
        response = client.get(
            "/api/trends/summary", params={"from": "2025-06-01", "to": "2025-06-30", "bucket": "month"}
        )
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "bucket must be day or week"}

    def test_personalization_without_history(self, client):
        response = client.get("/api/trends/personalization", params={"to": "2025-06-28"})
        assert response.status_code == 200
        body = response.json()
        assert body["as_of"] == "2025-06-28"
        assert body["window_days"] == 28
        assert body["current_window"]["from"] == "2025-06-01"
        assert body["prior_window"]["to"] == "2025-05-31"
        assert len(body["recommendations"]) == 5
        duration = body["recommendations"][0]
        assert duration["action_key"] == "personal_duration_warning_tuning"
        assert duration["status"] == "suppressed"
        assert "needs at least 60 baseline sessions in prior window" in duration["suppression_reasons"]

    def test_personalization_window_days_validated(self, client):
        response = client.get("/api/trends/personalization", params={"window_days": 0})
        assert response.status_code == 400
        assert response.json()["code"] == "bad_request"


class TestFrictionEndpoints:
    def test_negative_values_rejected(self, client):
        response = client.post("/api/personalization/friction-telemetry", json={"form_time_ms": -1})
        assert response.status_code == 400
        assert response.json() == {"code": "bad_request", "message": "form_time_ms must be >= 0"}

        response = client.post(
            "/api/personalization/friction-telemetry", json={"form_time_ms": 10, "retry_count": -2}
        )
        assert response.json()["message"] == "retry_count must be >= 0"

    def test_recorded_event_shows_in_backlog(self, client):
        response = client.post("/api/personalization/friction-telemetry", json={
            "form_time_ms": 60000, "error_kind": " Validation ", "retry_count": 2, "immediate_edit": True,
        })
        assert response.status_code == 201

        backlog = client.get("/api/personalization/friction-backlog", params={"window_days": 7}).json()
        assert backlog["current_window"]["submit_count"] == 1
        assert not backlog["minimum_sample_met"]
        assert [p["action_key"] for p in backlog["proposals"]] == ["friction_reduction_validation"]
        assert backlog["proposals"][0]["rank"] == 1


def test_storage_failure_is_500(app, client, monkeypatch):
    def broken(*args):
        raise OSError("disk unavailable")

    monkeypatch.setattr(app.state.sleep_service.repository, "get_daily_sleep", broken)
    response = client.get("/api/sleep/recent")
    assert response.status_code == 500
    assert response.json() == {"error": "storage error"}
