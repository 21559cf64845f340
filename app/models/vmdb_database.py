"""
VmdbDatabase Model
The database instance whose tables and indexes are monitored
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class VmdbDatabase(Base):
    """
    Monitored database instance.

    Found or created by seed_self() from the statistics source and passed
    explicitly to capture, rollup and seeding.
    """
    __tablename__ = "vmdb_databases"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity (current_database() on PostgreSQL)
    name = Column(String(255), unique=True, nullable=False)
    vendor = Column(String(50), nullable=True)
    version = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    vmdb_tables = relationship(
        "VmdbTable",
        back_populates="vmdb_database",
        cascade="all",
        order_by="VmdbTable.name",
    )

    @property
    def evm_tables(self):
        return [t for t in self.vmdb_tables if t.kind == "evm"]

    def __repr__(self):
        return f"<VmdbDatabase(id={self.id}, name='{self.name}', vendor='{self.vendor}')>"
