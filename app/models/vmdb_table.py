"""
VmdbTable and VmdbIndex Models
Tables and indexes of the monitored database; both are metric resources
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class VmdbTable(Base):
    """
    A monitored table.

    kind:
    - evm: application table, seeded from list_monitored_objects()
    - text: TOAST table owned by an evm table (parent_id)

    Capture of an evm table cascades to its text tables and indexes.
    """
    __tablename__ = "vmdb_tables"

    resource_type = "VmdbTable"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    vmdb_database_id = Column(Integer, ForeignKey("vmdb_databases.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    kind = Column(String(20), nullable=False, default="evm")

    # Owning evm table (text tables only)
    parent_id = Column(Integer, ForeignKey("vmdb_tables.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    vmdb_database = relationship("VmdbDatabase", back_populates="vmdb_tables")
    evm_table = relationship("VmdbTable", back_populates="text_tables", remote_side="VmdbTable.id")
    text_tables = relationship(
        "VmdbTable",
        back_populates="evm_table",
        cascade="all",
        order_by="VmdbTable.name",
    )
    vmdb_indexes = relationship(
        "VmdbIndex",
        back_populates="vmdb_table",
        cascade="all, delete-orphan",
        order_by="VmdbIndex.name",
    )
    vmdb_metrics = relationship(
        "VmdbMetric",
        primaryjoin="and_(foreign(VmdbMetric.resource_id) == VmdbTable.id, "
                    "VmdbMetric.resource_type == 'VmdbTable')",
        order_by="VmdbMetric.timestamp",
        viewonly=True,
    )

    __table_args__ = (
        Index('ix_vmdb_tables_database_name', 'vmdb_database_id', 'name', unique=True),
        {'sqlite_autoincrement': True},
    )

    @property
    def sub_resources(self):
        """Resources captured after this table: its text tables, then its indexes"""
        return list(self.text_tables) + list(self.vmdb_indexes)

    def __repr__(self):
        return f"<VmdbTable(id={self.id}, name='{self.name}', kind='{self.kind}')>"


class VmdbIndex(Base):
    """
    A monitored index, owned by a table.
    """
    __tablename__ = "vmdb_indexes"

    resource_type = "VmdbIndex"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    vmdb_table_id = Column(Integer, ForeignKey("vmdb_tables.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    vmdb_table = relationship("VmdbTable", back_populates="vmdb_indexes")
    vmdb_metrics = relationship(
        "VmdbMetric",
        primaryjoin="and_(foreign(VmdbMetric.resource_id) == VmdbIndex.id, "
                    "VmdbMetric.resource_type == 'VmdbIndex')",
        order_by="VmdbMetric.timestamp",
        viewonly=True,
    )

    # SQLite would otherwise hand a deleted highest id to the next index
    __table_args__ = {"sqlite_autoincrement": True}

    @property
    def sub_resources(self):
        return []

    def __repr__(self):
        return f"<VmdbIndex(id={self.id}, name='{self.name}', vmdb_table_id={self.vmdb_table_id})>"
