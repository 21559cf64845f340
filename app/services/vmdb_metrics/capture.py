"""
Metric Capture Service

Turns consecutive raw statistics samples into interval metric records.

- First capture of a resource only seeds the RawSnapshotStore
- Later captures write one record with delta (additive) and copied (gauge) columns
- Snapshot update and metric insert commit together per resource
- Tables cascade to their text tables and indexes; sub-resource failures are isolated
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
import structlog

from app.config import settings
from app.models.vmdb_metric import VmdbMetric, ADDITIVE_COLUMNS, GAUGE_COLUMNS
from app.services.vmdb_metrics.repository import MetricsRepository
from app.services.vmdb_metrics.snapshot_store import RawSnapshot, RawSnapshotStore

logger = structlog.get_logger(__name__)


def compute_metric_values(prior: RawSnapshot, current: RawSnapshot) -> Tuple[Dict[str, Any], List[str]]:
    """
    Derive metric column values from two consecutive snapshots.

    Args:
        prior: Snapshot stored by the previous capture
        current: Fresh snapshot

    Returns:
        (values, reset_columns) where reset_columns lists additive columns
        whose counter went backwards and were clamped to 0
    """
    values: Dict[str, Any] = {}
    reset_columns: List[str] = []

    for column in ADDITIVE_COLUMNS:
        current_value = current.get(column)
        prior_value = prior.get(column)
        if current_value is None or prior_value is None:
            values[column] = None
            continue

        delta = current_value - prior_value
        if delta < 0:
            # Counter reset (stats reset or server restart)
            reset_columns.append(column)
            delta = 0
        values[column] = delta

    for column in GAUGE_COLUMNS:
        values[column] = current.get(column)

    return values, reset_columns


class MetricCapture:
    """
    Capture driver for VmdbTable / VmdbIndex resources.

    Usage:
        capture = MetricCapture(db, source)
        metric = capture.capture(table)  # None on first capture
    """

    def __init__(self, db: Session, source, interval_name: Optional[str] = None):
        """
        Initialize MetricCapture.

        Args:
            db: Database session
            source: StatisticsSource providing fetch_raw_stats()
            interval_name: Interval stamped on new records (default: settings.capture_interval_name)
        """
        self.db = db
        self.source = source
        self.interval_name = interval_name or settings.capture_interval_name
        self.snapshots = RawSnapshotStore(db)
        self.metrics = MetricsRepository(db)

    def capture(self, resource) -> Optional[VmdbMetric]:
        """
        Capture metrics for a resource, then for each of its sub-resources.

        Args:
            resource: VmdbTable or VmdbIndex

        Returns:
            The resource's new VmdbMetric, or None if this was its first capture

        Raises:
            StatisticsUnavailableError: If the resource's own statistics cannot be read
        """
        metric = self._capture_resource(resource)

        for sub_resource in resource.sub_resources:
            try:
                self.capture(sub_resource)
            except Exception as e:
                logger.error(
                    "sub_resource_capture_failed",
                    parent=resource.name,
                    resource_type=sub_resource.resource_type,
                    resource=sub_resource.name,
                    error=str(e),
                    exc_info=True
                )

        return metric

    def _capture_resource(self, resource) -> Optional[VmdbMetric]:
        current = self.source.fetch_raw_stats(resource)

        try:
            prior = self.snapshots.get(resource, for_update=True)

            metric = None
            if prior is None:
                logger.info(
                    "capture_seeded",
                    resource_type=resource.resource_type,
                    resource=resource.name
                )
            else:
                values, reset_columns = compute_metric_values(prior, current)
                if reset_columns:
                    logger.warning(
                        "counter_reset_detected",
                        resource_type=resource.resource_type,
                        resource=resource.name,
                        columns=reset_columns,
                        prior_captured_at=str(prior.captured_at)
                    )
                metric = self.metrics.add_metric(resource, self.interval_name, current.captured_at, values)

            self.snapshots.put(resource, current)
            self.db.commit()

        except Exception:
            self.db.rollback()
            raise

        if metric is not None:
            logger.info(
                "capture_completed",
                resource_type=resource.resource_type,
                resource=resource.name,
                timestamp=str(metric.timestamp),
                interval=self.interval_name
            )
        return metric

    def capture_all(self, database) -> Dict[str, Any]:
        """
        Capture every evm table of a database (with cascade).

        A failing table is logged and skipped; the others still run.

        Args:
            database: VmdbDatabase

        Returns:
            dict: {'tables': N, 'captured': N, 'seeded': N, 'failed': [names]}
        """
        captured = 0
        seeded = 0
        failed: List[str] = []
        tables = database.evm_tables

        for table in tables:
            try:
                if self.capture(table) is None:
                    seeded += 1
                else:
                    captured += 1
            except Exception as e:
                failed.append(table.name)
                logger.error("table_capture_failed", table=table.name, error=str(e), exc_info=True)

        summary = {
            "tables": len(tables),
            "captured": captured,
            "seeded": seeded,
            "failed": failed,
        }
        logger.info("capture_all_completed", database=database.name, **summary)
        return summary


__all__ = [
    "compute_metric_values",
    "MetricCapture",
]
