"""
VmdbRawSnapshot Model
Single-slot cache of the latest cumulative statistics sample per resource
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from app.database import Base


class VmdbRawSnapshot(Base):
    """
    Prior raw sample for a resource, overwritten on every capture.

    counters holds the cumulative values as read from the statistics source
    (dates serialized as ISO strings). The next capture subtracts them from
    the fresh sample to get the interval deltas.
    """
    __tablename__ = "vmdb_raw_snapshots"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    resource_type = Column(String(50), nullable=False)
    resource_id = Column(Integer, nullable=False)

    captured_at = Column(DateTime, nullable=False)
    counters = Column(JSON, nullable=False)

    __table_args__ = (
        Index('ix_vmdb_raw_snapshots_resource', 'resource_type', 'resource_id', unique=True),
    )

    def __repr__(self):
        return f"<VmdbRawSnapshot(resource={self.resource_type}:{self.resource_id}, captured_at={self.captured_at})>"
