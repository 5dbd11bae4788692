"""
Background Scheduler for Deferred Publishing

Uses APScheduler to run the publish sweep on a fixed interval.
"""
import logging
import threading
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from daypart_scheduler.core.clock import Clock, SystemClock
from daypart_scheduler.core.config import get_settings
from daypart_scheduler.db.session import SessionLocal
from daypart_scheduler.services.publish import PublishCoordinator, SweepResult

logger = logging.getLogger(__name__)

scheduler: Optional[BackgroundScheduler] = None
stop_event = threading.Event()


def run_publish_sweep(clock: Optional[Clock] = None, session_factory=SessionLocal) -> SweepResult:
    """
    Apply every publish job that has come due.

    Opens its own session so it can run on the scheduler thread.
    """
    with session_factory() as db:
        coordinator = PublishCoordinator(db, clock or SystemClock())
        return coordinator.apply_due_jobs(stop_event=stop_event)


def _sweep_job():
    try:
        run_publish_sweep()
    except Exception as e:
        # Jobs that were being applied stay claimed and are never retried
        logger.error(f"Publish sweep failed: {e}", exc_info=True)


def start_scheduler():
    """Start the background scheduler with the publish sweep job."""
    global scheduler
    settings = get_settings()

    stop_event.clear()
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        _sweep_job,
        IntervalTrigger(seconds=settings.PUBLISH_SWEEP_INTERVAL_SECONDS),
        id="publish_sweep",
        name="Apply due daypart publish jobs",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started - publish sweep every {settings.PUBLISH_SWEEP_INTERVAL_SECONDS}s")


def stop_scheduler():
    """Stop the scheduler; a sweep in progress finishes its current job first."""
    global scheduler
    if scheduler is None:
        return
    stop_event.set()
    scheduler.shutdown(wait=True)
    scheduler = None
    logger.info("Scheduler stopped")
