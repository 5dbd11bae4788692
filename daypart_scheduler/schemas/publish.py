"""
Staging and publishing Pydantic schemas for API request/response models.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from daypart_scheduler.models.publish_job import JobStatus
from daypart_scheduler.schemas.staged_change import ChangeSummary, StagedChange
from daypart_scheduler.services.collisions import DayCollision
from daypart_scheduler.services.staged_changes import StagedChangeLedger


class StageChangeRequest(BaseModel):
    """Add a change to the caller's ledger."""
    ledger: StagedChangeLedger = Field(default_factory=StagedChangeLedger)
    change: StagedChange


class RemoveChangeRequest(BaseModel):
    ledger: StagedChangeLedger
    index: int


class DayCollisionResponse(BaseModel):
    daypart_id: UUID
    placement_id: Optional[UUID] = None
    conflicting_days: List[int]
    conflicting_ids: List[UUID]
    message: str

    @classmethod
    def from_collision(cls, collision: DayCollision) -> "DayCollisionResponse":
        return cls(
            daypart_id=collision.daypart_id,
            placement_id=collision.placement_id,
            conflicting_days=collision.conflicting_days,
            conflicting_ids=collision.conflicting_ids,
            message=collision.message,
        )


class LedgerResponse(BaseModel):
    ledger: StagedChangeLedger
    summary: ChangeSummary
    collisions: List[DayCollisionResponse] = Field(default_factory=list)


class PublishRequest(BaseModel):
    changes: List[StagedChange]
    effective_at: Optional[datetime] = Field(
        default=None,
        description=(
            "When the changes take effect; omitted or past publishes immediately. "
            "A value without an offset is taken as UTC, not store-local time."
        ),
    )
    notes: Optional[str] = None
    store_id: Optional[UUID] = None


class PublishJobResponse(BaseModel):
    id: UUID
    store_id: Optional[UUID] = None
    status: JobStatus
    effective_at: datetime
    created_at: datetime
    claimed_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    notes: Optional[str] = None
    change_count: int
    failed_change_index: Optional[int] = None
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_job(cls, job) -> "PublishJobResponse":
        return cls(
            id=job.id,
            store_id=job.store_id,
            status=JobStatus(job.status),
            effective_at=job.effective_at,
            created_at=job.created_at,
            claimed_at=job.claimed_at,
            applied_at=job.applied_at,
            notes=job.notes,
            change_count=len(job.changes or []),
            failed_change_index=job.failed_change_index,
            error_message=job.error_message,
        )


class PublishJobListResponse(BaseModel):
    jobs: List[PublishJobResponse]
    total: int


class SweepResponse(BaseModel):
    applied: List[UUID]
    failed: List[UUID]
    skipped: List[UUID]
