"""
Integration tests for staging and publishing endpoints.
"""
from datetime import time
from uuid import uuid4

from daypart_scheduler.models import DaypartSchedule

from conftest import make_definition, make_schedule, make_store

WEEKDAYS = [1, 2, 3, 4, 5]


def create_payload(daypart_id, days=WEEKDAYS, start="12:00", end="14:00"):
    return {
        "change_type": "create",
        "target_table": "schedule",
        "change_data": {"daypart_id": str(daypart_id), "days_of_week": days, "start_time": start, "end_time": end},
    }


def update_payload(target_id, **data):
    return {"change_type": "update", "target_table": "schedule", "target_id": str(target_id), "change_data": data}


class TestStagedChangesRouter:
    """Tests for /api/staged-changes endpoints."""

    def test_stage_into_empty_ledger(self, client, db):
        breakfast = make_definition(db, "breakfast")

        response = client.post("/api/staged-changes", json={"change": create_payload(breakfast.id)})

        assert response.status_code == 200
        data = response.json()
        assert len(data["ledger"]["changes"]) == 1
        assert data["summary"] == {"create": 1, "update": 0, "delete": 0, "total": 1}
        assert data["collisions"] == []

    def test_repeat_update_replaces_entry(self, client, db):
        target = uuid4()
        first = client.post("/api/staged-changes", json={"change": update_payload(target, start_time="07:00")})

        second = client.post(
            "/api/staged-changes",
            json={"ledger": first.json()["ledger"], "change": update_payload(target, start_time="08:00")},
        )

        changes = second.json()["ledger"]["changes"]
        assert len(changes) == 1
        assert changes[0]["change_data"]["start_time"] == "08:00:00"

    def test_collisions_reported_not_blocking(self, client, db):
        breakfast = make_definition(db, "breakfast")
        existing = make_schedule(db, breakfast, [1, 2], time(6, 0), time(11, 0))

        response = client.post("/api/staged-changes", json={"change": create_payload(breakfast.id, days=[2, 3])})

        assert response.status_code == 200
        data = response.json()
        assert len(data["ledger"]["changes"]) == 1
        assert data["collisions"][0]["conflicting_days"] == [2]
        assert data["collisions"][0]["conflicting_ids"] == [str(existing.id)]
        assert data["collisions"][0]["message"] == "This daypart already has a schedule for: Tuesday"

    def test_zero_length_window_rejected(self, client, db):
        response = client.post(
            "/api/staged-changes",
            json={"change": create_payload(uuid4(), start="09:00", end="09:00")},
        )
        assert response.status_code == 422

    def test_remove(self, client, db):
        ledger = {"changes": [create_payload(uuid4()), update_payload(uuid4(), start_time="07:00")]}

        response = client.post("/api/staged-changes/remove", json={"ledger": ledger, "index": 0})

        assert response.status_code == 200
        data = response.json()
        assert [c["change_type"] for c in data["ledger"]["changes"]] == ["update"]
        assert data["summary"]["total"] == 1

    def test_remove_out_of_range(self, client, db):
        response = client.post("/api/staged-changes/remove", json={"ledger": {"changes": []}, "index": 0})
        assert response.status_code == 400


class TestPublishRouter:
    """Tests for /api/publish and /api/publish-jobs endpoints."""

    def test_publish_now(self, client, db):
        breakfast = make_definition(db, "breakfast")

        response = client.post("/api/publish", json={"changes": [create_payload(breakfast.id)], "notes": "Lunch"})

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "applied"
        assert data["change_count"] == 1
        assert data["notes"] == "Lunch"
        assert db.query(DaypartSchedule).count() == 1

    def test_publish_empty(self, client, db):
        response = client.post("/api/publish", json={"changes": []})
        assert response.status_code == 400

    def test_failed_publish_is_conflict(self, client, db):
        breakfast = make_definition(db, "breakfast")

        response = client.post(
            "/api/publish",
            json={"changes": [create_payload(breakfast.id), update_payload(uuid4(), start_time="07:00")]},
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["status"] == "failed"
        assert detail["failed_change_index"] == 1
        assert detail["error_message"].startswith("Change 2 of 2 failed")
        assert db.query(DaypartSchedule).count() == 0

    def test_deferred_publish_and_sweep(self, client, db, clock):
        breakfast = make_definition(db, "breakfast")

        # Clock fixture is 2024-01-10 07:00 UTC
        response = client.post(
            "/api/publish",
            json={"changes": [create_payload(breakfast.id)], "effective_at": "2024-01-10T08:00:00Z"},
        )
        assert response.status_code == 201
        job = response.json()
        assert job["status"] == "pending"

        early = client.post("/api/publish-jobs/sweep")
        assert early.json()["applied"] == []

        clock.set(clock.now().replace(hour=9))
        swept = client.post("/api/publish-jobs/sweep")
        again = client.post("/api/publish-jobs/sweep")

        assert swept.json()["applied"] == [job["id"]]
        assert again.json()["applied"] == []
        assert db.query(DaypartSchedule).count() == 1

        fetched = client.get(f"/api/publish-jobs/{job['id']}")
        assert fetched.json()["status"] == "applied"

    def test_naive_effective_at_is_utc_not_store_local(self, client, db, clock):
        store = make_store(db, timezone_name="America/Chicago")
        breakfast = make_definition(db, "breakfast")

        response = client.post(
            "/api/publish",
            json={
                "changes": [create_payload(breakfast.id)],
                "effective_at": "2024-01-10T08:00:00",
                "store_id": str(store.id),
            },
        )
        assert response.json()["status"] == "pending"

        # 08:00 UTC, still the small hours in Chicago
        clock.set(clock.now().replace(hour=8))
        swept = client.post("/api/publish-jobs/sweep")

        assert swept.json()["applied"] == [response.json()["id"]]

    def test_list_jobs_filtered(self, client, db):
        breakfast = make_definition(db, "breakfast")
        client.post("/api/publish", json={"changes": [create_payload(breakfast.id)]})
        client.post(
            "/api/publish",
            json={"changes": [create_payload(breakfast.id)], "effective_at": "2030-01-01T00:00:00Z"},
        )

        pending = client.get("/api/publish-jobs", params={"status": "pending"})
        everything = client.get("/api/publish-jobs")

        assert pending.json()["total"] == 1
        assert pending.json()["jobs"][0]["status"] == "pending"
        assert everything.json()["total"] == 2

    def test_unknown_job(self, client, db):
        response = client.get(f"/api/publish-jobs/{uuid4()}")
        assert response.status_code == 404
