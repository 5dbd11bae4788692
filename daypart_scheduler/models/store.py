"""
Stores and their placements.

Only the columns the scheduling engine reads are modelled here; store and
placement management belongs to the console's CRUD screens.
"""
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, func, Index
from sqlalchemy.orm import relationship

from daypart_scheduler.db.base import Base


class Store(Base):
    __tablename__ = "stores"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    concept_id = Column(Uuid, nullable=True)  # Brand/concept the store belongs to
    timezone = Column(String(50), nullable=False, server_default='UTC')
    created_at = Column(DateTime, server_default=func.now())

    placements = relationship("Placement", back_populates="store", cascade="all, delete-orphan")


class Placement(Base):
    """
    A physical or logical display location inside a store.
    Placements may be nested (e.g. "Drive Thru" > "Pre-sell Board").
    """
    __tablename__ = "placements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Uuid, ForeignKey("placements.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    store = relationship("Store", back_populates="placements")

    __table_args__ = (
        Index('idx_placements_store', 'store_id'),
    )
