"""
VmdbMetric Model
Time-scoped measurements for monitored tables and indexes
"""

from sqlalchemy import Column, Integer, BigInteger, Float, String, DateTime, Index
from app.database import Base


# Counts accumulated during the interval: delta on capture, summed on rollup
ADDITIVE_COLUMNS = (
    "table_scans",
    "sequential_rows_read",
    "index_scans",
    "index_rows_fetched",
    "rows_inserted",
    "rows_updated",
    "rows_deleted",
    "rows_hot_updated",
)

# Point-in-time state: copied on capture, time-weighted average on rollup
INTEGER_GAUGE_COLUMNS = ("size", "rows", "pages", "otta", "rows_live", "rows_dead")
FLOAT_GAUGE_COLUMNS = ("percent_bloat", "wasted_bytes")
NUMERIC_GAUGE_COLUMNS = INTEGER_GAUGE_COLUMNS + FLOAT_GAUGE_COLUMNS

# Copied on capture, latest value on rollup
DATE_GAUGE_COLUMNS = (
    "last_vacuum_date",
    "last_autovacuum_date",
    "last_analyze_date",
    "last_autoanalyze_date",
)

GAUGE_COLUMNS = NUMERIC_GAUGE_COLUMNS + DATE_GAUGE_COLUMNS
METRIC_COLUMNS = ADDITIVE_COLUMNS + GAUGE_COLUMNS


class VmdbMetric(Base):
    """
    One measurement of a resource (VmdbTable or VmdbIndex) for one interval.

    - capture_interval_name="hourly": appended by capture, timestamp = capture time
    - capture_interval_name="daily"/"weekly": upserted by rollup, timestamp = window start

    Timestamps are naive UTC. Unique per (resource, interval, timestamp) so
    re-running a rollup overwrites instead of duplicating.
    """
    __tablename__ = "vmdb_metrics"

    # Primary Key
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # Polymorphic resource reference
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(Integer, nullable=False)

    capture_interval_name = Column(String(20), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    # Additive columns
    table_scans = Column(BigInteger, nullable=True)
    sequential_rows_read = Column(BigInteger, nullable=True)
    index_scans = Column(BigInteger, nullable=True)
    index_rows_fetched = Column(BigInteger, nullable=True)
    rows_inserted = Column(BigInteger, nullable=True)
    rows_updated = Column(BigInteger, nullable=True)
    rows_deleted = Column(BigInteger, nullable=True)
    rows_hot_updated = Column(BigInteger, nullable=True)

    # Gauge columns
    size = Column(BigInteger, nullable=True)  # bytes
    rows = Column(BigInteger, nullable=True)
    pages = Column(BigInteger, nullable=True)
    otta = Column(BigInteger, nullable=True)  # expected pages without bloat
    rows_live = Column(BigInteger, nullable=True)
    rows_dead = Column(BigInteger, nullable=True)
    percent_bloat = Column(Float, nullable=True)
    wasted_bytes = Column(Float, nullable=True)

    last_vacuum_date = Column(DateTime, nullable=True)
    last_autovacuum_date = Column(DateTime, nullable=True)
    last_analyze_date = Column(DateTime, nullable=True)
    last_autoanalyze_date = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            'ix_vmdb_metrics_resource_interval_ts',
            'resource_type', 'resource_id', 'capture_interval_name', 'timestamp',
            unique=True,
        ),
    )

    def to_dict(self) -> dict:
        data = {
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "capture_interval_name": self.capture_interval_name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
        for column in METRIC_COLUMNS:
            value = getattr(self, column)
            if column in DATE_GAUGE_COLUMNS and value is not None:
                value = value.isoformat()
            data[column] = value
        return data

    def __repr__(self):
        return (
            f"<VmdbMetric(resource={self.resource_type}:{self.resource_id}, "
            f"interval={self.capture_interval_name}, timestamp={self.timestamp})>"
        )
