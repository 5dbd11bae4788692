"""
Staging and publishing router.

The staged-change ledger lives with the caller; these endpoints validate
edits against it and return the updated ledger. Publishing turns a ledger
snapshot into a publish job that is applied now or by the background sweep.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from daypart_scheduler.core.clock import Clock
from daypart_scheduler.core.deps import get_clock
from daypart_scheduler.core.exceptions import EmptyLedgerError
from daypart_scheduler.db.session import get_db
from daypart_scheduler.models.publish_job import JobStatus
from daypart_scheduler.schemas.publish import (
    DayCollisionResponse,
    LedgerResponse,
    PublishJobListResponse,
    PublishJobResponse,
    PublishRequest,
    RemoveChangeRequest,
    StageChangeRequest,
    SweepResponse,
)
from daypart_scheduler.services.daypart_schedule import DaypartScheduleService
from daypart_scheduler.services.publish import PublishCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["publishing"])


@router.post("/staged-changes", response_model=LedgerResponse)
def stage_change(
    request: StageChangeRequest,
    db: Session = Depends(get_db),
):
    """
    Add a change to a ledger.

    A repeated update to the same row replaces the earlier one in place.
    Day collisions with existing rows of the same daypart are reported but
    do not block staging.
    """
    ledger = request.ledger.add(request.change)

    collisions = []
    collision = DaypartScheduleService(db).collisions_for(request.change)
    if collision is not None:
        collisions.append(DayCollisionResponse.from_collision(collision))

    return LedgerResponse(ledger=ledger, summary=ledger.summary(), collisions=collisions)


@router.post("/staged-changes/remove", response_model=LedgerResponse)
def remove_staged_change(request: RemoveChangeRequest):
    """Remove the change at a position (0-based) from a ledger."""
    try:
        ledger = request.ledger.remove(request.index)
    except IndexError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return LedgerResponse(ledger=ledger, summary=ledger.summary())


@router.post("/publish", response_model=PublishJobResponse, status_code=status.HTTP_201_CREATED)
def publish_changes(
    request: PublishRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Publish staged changes now, or schedule them for effective_at.

    Immediate publishes are applied before responding. A failed publish
    returns 409 with the job, including the index of the change that failed.
    """
    coordinator = PublishCoordinator(db, clock)
    try:
        job = coordinator.publish(
            request.changes,
            effective_at=request.effective_at,
            notes=request.notes,
            store_id=request.store_id,
        )
    except EmptyLedgerError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    response = PublishJobResponse.from_job(job)
    if job.status == JobStatus.FAILED.value:
        logger.warning(f"Publish job {job.id} rejected: {job.error_message}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=response.model_dump(mode="json"),
        )
    return response


@router.get("/publish-jobs", response_model=PublishJobListResponse)
def list_publish_jobs(
    job_status: Optional[JobStatus] = Query(None, alias="status", description="Filter by job status"),
    store_id: Optional[UUID] = Query(None, description="Filter by store"),
    db: Session = Depends(get_db),
):
    jobs = PublishCoordinator(db).list_jobs(status=job_status, store_id=store_id)
    return PublishJobListResponse(
        jobs=[PublishJobResponse.from_job(j) for j in jobs],
        total=len(jobs),
    )


@router.get("/publish-jobs/{job_id}", response_model=PublishJobResponse)
def get_publish_job(
    job_id: UUID,
    db: Session = Depends(get_db),
):
    job = PublishCoordinator(db).get_job(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Publish job not found"
        )
    return PublishJobResponse.from_job(job)


@router.post("/publish-jobs/sweep", response_model=SweepResponse)
def sweep_publish_jobs(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Apply every due publish job once. Meant for an external cron trigger."""
    result = PublishCoordinator(db, clock).apply_due_jobs()
    return SweepResponse(applied=result.applied, failed=result.failed, skipped=result.skipped)
