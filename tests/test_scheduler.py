"""
Tests for the background publish sweep.
"""
from datetime import time, timedelta

from daypart_scheduler import scheduler
from daypart_scheduler.models import DaypartSchedule, JobStatus, PublishJob
from daypart_scheduler.schemas.staged_change import StagedChange
from daypart_scheduler.services.publish import PublishCoordinator

from conftest import TestingSessionLocal, make_definition, make_schedule


def test_run_publish_sweep_applies_due_jobs(db, clock):
    breakfast = make_definition(db, "breakfast")
    rule = make_schedule(db, breakfast, [1, 2, 3, 4, 5], time(6, 0), time(11, 0))
    change = StagedChange(
        change_type="update", target_table="schedule", target_id=rule.id, change_data={"start_time": "05:30"}
    )
    job = PublishCoordinator(db, clock).publish([change], effective_at=clock.now() + timedelta(minutes=1))

    clock.advance(timedelta(minutes=5))
    result = scheduler.run_publish_sweep(clock=clock, session_factory=TestingSessionLocal)

    assert result.applied == [job.id]
    db.expire_all()
    assert db.get(PublishJob, job.id).status == JobStatus.APPLIED.value
    assert db.get(DaypartSchedule, rule.id).version == 2


def test_run_publish_sweep_honours_stop_event(db, clock):
    breakfast = make_definition(db, "breakfast")
    change = StagedChange(
        change_type="create",
        target_table="schedule",
        change_data={"daypart_id": str(breakfast.id), "days_of_week": [1], "start_time": "06:00", "end_time": "07:00"},
    )
    PublishCoordinator(db, clock).publish([change], effective_at=clock.now() + timedelta(minutes=1))
    clock.advance(timedelta(minutes=5))

    scheduler.stop_event.set()
    try:
        result = scheduler.run_publish_sweep(clock=clock, session_factory=TestingSessionLocal)
    finally:
        scheduler.stop_event.clear()

    assert result.stopped
    assert result.applied == []


def test_start_and_stop_scheduler():
    scheduler.start_scheduler()
    try:
        job = scheduler.scheduler.get_job("publish_sweep")
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=60)
    finally:
        scheduler.stop_scheduler()

    assert scheduler.scheduler is None
    assert scheduler.stop_event.is_set()
    scheduler.stop_event.clear()
