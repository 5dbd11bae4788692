"""
Publish coordinator: commits a batch of staged changes now or later.

Each job is applied at most once. Whoever applies a job first has to claim
it with a conditional status update (pending -> applying); the claim only
succeeds for one caller, so overlapping sweeps and an immediate publish
racing a sweep cannot apply the same job twice.

A job is the unit of atomicity. All of its changes are written in a single
transaction together with the "applied" status. If any change fails, the
transaction is rolled back and the job is marked failed with the index of
the change that did not land.

Updates and deletes only land if the row still carries the version they
read, so two jobs editing one row at the same time cannot both write it.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Union
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from daypart_scheduler.core.clock import Clock, SystemClock, ensure_utc, to_storage
from daypart_scheduler.core.exceptions import DoubleApplyError, EmptyLedgerError, StaleTargetError
from daypart_scheduler.models.daypart import DaypartDefinition, DaypartSchedule, PlacementDaypartOverride
from daypart_scheduler.models.publish_job import JobStatus, PublishJob
from daypart_scheduler.models.store import Placement
from daypart_scheduler.schemas.staged_change import ChangeType, StagedChange, TargetTable
from daypart_scheduler.services.staged_changes import StagedChangeLedger

logger = logging.getLogger(__name__)


TARGET_MODELS = {
    TargetTable.SCHEDULE: DaypartSchedule,
    TargetTable.OVERRIDE: PlacementDaypartOverride,
}


@dataclass
class SweepResult:
    """Outcome of one ApplyDueJobs pass."""
    applied: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)
    skipped: List[UUID] = field(default_factory=list)  # claimed by another caller
    stopped: bool = False


class _ChangeFailed(Exception):
    def __init__(self, index: int, cause: Exception):
        self.index = index
        self.cause = cause
        super().__init__(f"Change {index} failed: {cause}")


class PublishCoordinator:
    """
    Creates publish jobs and applies them.

    Args:
        db: Session used for both job bookkeeping and schedule writes
        clock: Source of "now"; defaults to the system clock
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()

    # ============ Publishing ============

    def publish(
        self,
        changes: Union[StagedChangeLedger, Sequence[StagedChange]],
        effective_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        store_id: Optional[UUID] = None,
    ) -> PublishJob:
        """
        Publish a snapshot of staged changes.

        With no effective_at, or one that is not in the future, the job is
        applied before returning and comes back applied or failed. Otherwise
        it is stored as pending for the sweep to pick up.

        Raises:
            EmptyLedgerError: if there is nothing to publish
        """
        snapshot = list(changes.snapshot() if isinstance(changes, StagedChangeLedger) else changes)
        if not snapshot:
            raise EmptyLedgerError("There are no staged changes to publish")

        now = self.clock.now()
        when = ensure_utc(effective_at) if effective_at is not None else now

        job = PublishJob(
            id=uuid4(),
            store_id=store_id,
            changes=[change.model_dump(mode="json") for change in snapshot],
            effective_at=to_storage(when),
            status=JobStatus.PENDING.value,
            notes=notes,
            created_at=to_storage(now),
        )
        self.db.add(job)
        self.db.commit()
        logger.info(f"Publish job {job.id} created with {len(snapshot)} change(s), effective {when.isoformat()}")

        if when <= now:
            if self._claim(job.id):
                return self._apply_claimed(job.id)
            # A sweep got there first; it owns the job now
            logger.info(f"Publish job {job.id} was claimed by a concurrent sweep")

        self.db.refresh(job)
        return job

    def apply(self, job_id: UUID) -> PublishJob:
        """
        Claim and apply a single pending job regardless of its effective time.

        Raises:
            LookupError: if the job does not exist
            DoubleApplyError: if the job is no longer pending
        """
        if not self._claim(job_id):
            job = self.get_job(job_id)
            if job is None:
                raise LookupError(f"Publish job {job_id} not found")
            raise DoubleApplyError(f"Publish job {job_id} is {job.status}; it will not be applied again")
        return self._apply_claimed(job_id)

    def apply_due_jobs(
        self,
        now: Optional[datetime] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> SweepResult:
        """
        Apply every pending job whose effective time has passed.

        Jobs are applied independently; one failure does not block the rest.
        Safe to run concurrently with itself: a job claimed elsewhere is
        skipped. ``stop_event`` is checked between jobs, never mid-job.
        """
        now = ensure_utc(now) if now is not None else self.clock.now()
        result = SweepResult()

        stmt = (
            select(PublishJob.id)
            .where(
                PublishJob.status == JobStatus.PENDING.value,
                PublishJob.effective_at <= to_storage(now),
            )
            .order_by(PublishJob.effective_at, PublishJob.created_at)
        )
        due = list(self.db.execute(stmt).scalars().all())
        self.db.commit()
        logger.info(f"Publish sweep at {now.isoformat()}: {len(due)} due job(s)")

        for job_id in due:
            if stop_event is not None and stop_event.is_set():
                logger.info("Publish sweep stopped before finishing")
                result.stopped = True
                break

            try:
                claimed = self._claim(job_id)
            except Exception as e:
                # Still pending; the next sweep tries again
                self.db.rollback()
                logger.error(f"Could not claim publish job {job_id}: {e}", exc_info=True)
                result.skipped.append(job_id)
                continue

            if not claimed:
                logger.info(f"Publish job {job_id} already claimed, skipping")
                result.skipped.append(job_id)
                continue

            try:
                job = self._apply_claimed(job_id)
            except Exception as e:
                # Failure could not be recorded either; the job stays claimed and is not retried
                self.db.rollback()
                logger.error(f"Publish job {job_id} left in applying: {e}", exc_info=True)
                result.failed.append(job_id)
                continue

            if job.status == JobStatus.APPLIED.value:
                result.applied.append(job_id)
            else:
                result.failed.append(job_id)

        logger.info(
            f"Publish sweep finished: {len(result.applied)} applied, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped"
        )
        return result

    # ============ Queries ============

    def get_job(self, job_id: UUID) -> Optional[PublishJob]:
        return self.db.get(PublishJob, job_id)

    def list_jobs(self, status: Optional[JobStatus] = None, store_id: Optional[UUID] = None) -> List[PublishJob]:
        stmt = select(PublishJob)
        if status is not None:
            stmt = stmt.where(PublishJob.status == status.value)
        if store_id is not None:
            stmt = stmt.where(PublishJob.store_id == store_id)
        stmt = stmt.order_by(PublishJob.effective_at.desc(), PublishJob.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    # ============ Internals ============

    def _claim(self, job_id: UUID) -> bool:
        """Compare-and-set pending -> applying. True only for the caller that won."""
        stmt = (
            update(PublishJob)
            .where(PublishJob.id == job_id, PublishJob.status == JobStatus.PENDING.value)
            .values(status=JobStatus.APPLYING.value, claimed_at=to_storage(self.clock.now()))
            .execution_options(synchronize_session=False)
        )
        claimed = self.db.execute(stmt).rowcount == 1
        self.db.commit()
        return claimed

    def _apply_claimed(self, job_id: UUID) -> PublishJob:
        job = self.db.get(PublishJob, job_id)
        raw_changes = list(job.changes)

        try:
            for index, raw in enumerate(raw_changes):
                try:
                    change = StagedChange.model_validate(raw)
                    self._apply_change(change)
                    self.db.flush()
                except Exception as e:
                    raise _ChangeFailed(index, e) from e

            job.status = JobStatus.APPLIED.value
            job.applied_at = to_storage(self.clock.now())
            self.db.commit()
            logger.info(f"Publish job {job_id} applied ({len(raw_changes)} change(s))")
        except _ChangeFailed as failure:
            logger.error(
                f"Publish job {job_id} failed at change index {failure.index}: {failure.cause}",
                exc_info=failure.cause,
            )
            self._record_failure(
                job_id,
                f"Change {failure.index + 1} of {len(raw_changes)} failed: {failure.cause}",
                failure.index,
            )
        except Exception as e:
            # Every change landed but the transaction did not commit
            logger.error(f"Publish job {job_id} could not be committed: {e}", exc_info=True)
            self._record_failure(job_id, f"Publish could not be committed: {e}")

        job = self.db.get(PublishJob, job_id)
        self.db.refresh(job)
        return job

    def _record_failure(self, job_id: UUID, message: str, index: Optional[int] = None) -> None:
        """Roll back the job's changes and mark it failed."""
        self.db.rollback()
        job = self.db.get(PublishJob, job_id)
        job.status = JobStatus.FAILED.value
        job.failed_change_index = index
        job.error_message = message
        self.db.commit()

    def _apply_change(self, change: StagedChange) -> None:
        model = TARGET_MODELS[change.target_table]
        values = change.change_data.patch_values()

        if change.change_type == ChangeType.CREATE:
            self._check_references(values)
            row = model(version=1, **values)
            row.window  # raises WindowValidationError for a malformed window
            self.db.add(row)
            return

        # Fresh, locked read so the merged window is checked against the committed row
        row = self.db.get(model, change.target_id, with_for_update=True, populate_existing=True)
        if row is None:
            raise StaleTargetError(change.target_table.value, change.target_id)

        if change.change_type == ChangeType.DELETE:
            self.db.delete(row)
            return

        self._check_references(values)
        for key, value in values.items():
            setattr(row, key, value)
        row.window
        # The flush matches on the version read above; a concurrent update fails this job
        row.version = row.version + 1

    def _check_references(self, values: dict) -> None:
        daypart_id = values.get("daypart_id")
        if daypart_id is not None and self.db.get(DaypartDefinition, daypart_id) is None:
            raise StaleTargetError("daypart_definition", daypart_id)
        placement_id = values.get("placement_id")
        if placement_id is not None and self.db.get(Placement, placement_id) is None:
            raise StaleTargetError("placement", placement_id)
