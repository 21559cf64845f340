"""
MetricsRepository

Reads and writes VmdbMetric rows for a resource.
Does NOT commit - caller controls transaction.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.vmdb_metric import VmdbMetric, METRIC_COLUMNS


class MetricsRepository:
    """Persistence operations used by capture and rollup."""

    def __init__(self, db: Session):
        self.db = db

    def _for_resource(self, resource, interval_name: Optional[str] = None):
        query = self.db.query(VmdbMetric).filter(
            VmdbMetric.resource_type == resource.resource_type,
            VmdbMetric.resource_id == resource.id,
        )
        if interval_name is not None:
            query = query.filter(VmdbMetric.capture_interval_name == interval_name)
        return query

    def add_metric(self, resource, interval_name: str, timestamp: datetime, values: Dict[str, Any]) -> VmdbMetric:
        """Append a new metric record."""
        metric = VmdbMetric(
            resource_type=resource.resource_type,
            resource_id=resource.id,
            capture_interval_name=interval_name,
            timestamp=timestamp,
        )
        self._assign(metric, values)
        self.db.add(metric)
        return metric

    def upsert_metric(self, resource, interval_name: str, timestamp: datetime, values: Dict[str, Any]) -> VmdbMetric:
        """
        Insert or overwrite the record keyed by (resource, interval_name, timestamp).

        Every metric column is rewritten, so columns absent from values are
        reset to None.
        """
        existing = self._for_resource(resource, interval_name).filter(
            VmdbMetric.timestamp == timestamp
        ).with_for_update().first()

        if existing:
            self._assign(existing, values)
            return existing

        return self.add_metric(resource, interval_name, timestamp, values)

    def metrics_in_range(self, resource, interval_name: str, start: datetime, end: datetime) -> List[VmdbMetric]:
        """Records with start <= timestamp < end, oldest first."""
        return self._for_resource(resource, interval_name).filter(
            VmdbMetric.timestamp >= start,
            VmdbMetric.timestamp < end,
        ).order_by(VmdbMetric.timestamp.asc()).all()

    def previous_metric(
        self,
        resource,
        interval_name: str,
        before: datetime,
        since: Optional[datetime] = None
    ) -> Optional[VmdbMetric]:
        """Latest record strictly before the given instant, optionally not older than since."""
        query = self._for_resource(resource, interval_name).filter(VmdbMetric.timestamp < before)
        if since is not None:
            query = query.filter(VmdbMetric.timestamp >= since)
        return query.order_by(VmdbMetric.timestamp.desc()).first()

    def recent_metrics(self, resource, interval_name: Optional[str] = None, limit: int = 100) -> List[VmdbMetric]:
        """Newest records first."""
        return self._for_resource(resource, interval_name).order_by(
            VmdbMetric.timestamp.desc()
        ).limit(limit).all()

    @staticmethod
    def _assign(metric: VmdbMetric, values: Dict[str, Any]) -> None:
        for column in METRIC_COLUMNS:
            setattr(metric, column, values.get(column))
