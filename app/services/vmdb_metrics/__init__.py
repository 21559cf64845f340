"""
VMDB Metrics Service Package

Capture of raw table/index statistics into interval metrics, time-weighted
rollups into coarser intervals, the rollup scheduler, schema introspection
and resource seeding.
"""

from app.services.vmdb_metrics.errors import (
    MetricsError,
    StatisticsUnavailableError,
    UnknownIntervalError,
)
from app.services.vmdb_metrics.snapshot_store import RawSnapshot, RawSnapshotStore
from app.services.vmdb_metrics.repository import MetricsRepository
from app.services.vmdb_metrics.capture import MetricCapture, compute_metric_values
from app.services.vmdb_metrics.rollup import (
    MetricRollup,
    aggregate_records,
    record_weights,
    weighted_average,
)
from app.services.vmdb_metrics.rollup_scheduler import RollupScheduler
from app.services.vmdb_metrics.schema import SqlIndex, sql_indexes
from app.services.vmdb_metrics.stats_source import StatisticsSource, PostgresStatisticsSource
from app.services.vmdb_metrics.seeding import (
    ReconcileResult,
    forget_resource,
    reconcile,
    seed,
    seed_indexes,
    seed_self,
    seed_tables,
    seed_texts,
)

__all__ = [
    # Errors
    "MetricsError",
    "StatisticsUnavailableError",
    "UnknownIntervalError",
    # Snapshots / persistence
    "RawSnapshot",
    "RawSnapshotStore",
    "MetricsRepository",
    # Capture
    "MetricCapture",
    "compute_metric_values",
    # Rollup
    "MetricRollup",
    "aggregate_records",
    "record_weights",
    "weighted_average",
    "RollupScheduler",
    # Schema / statistics source
    "SqlIndex",
    "sql_indexes",
    "StatisticsSource",
    "PostgresStatisticsSource",
    # Seeding
    "ReconcileResult",
    "forget_resource",
    "reconcile",
    "seed",
    "seed_indexes",
    "seed_self",
    "seed_tables",
    "seed_texts",
]
