"""
Publish jobs: a batch of staged changes committed now or at a future instant.

Status moves pending -> applying -> applied | failed, each step exactly once.
"applying" is the claim taken by whichever caller applies the job.
"""
import enum
import uuid
from sqlalchemy import Column, String, Integer, Text, DateTime, JSON, ForeignKey, Uuid, func, Index

from daypart_scheduler.db.base import Base


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


class PublishJob(Base):
    __tablename__ = "publish_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id", ondelete="SET NULL"), nullable=True)
    changes = Column(JSON, nullable=False)  # ordered list of serialized StagedChange
    effective_at = Column(DateTime, nullable=False)  # naive UTC
    status = Column(String(20), nullable=False, default=JobStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    claimed_at = Column(DateTime, nullable=True)
    applied_at = Column(DateTime, nullable=True)
    failed_change_index = Column(Integer, nullable=True)  # 0-based position in changes
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        # Sweep query: pending jobs that are due
        Index('idx_publish_jobs_status_effective', 'status', 'effective_at'),
    )
