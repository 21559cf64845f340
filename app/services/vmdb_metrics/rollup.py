"""
Metric Rollup Service

Aggregates fine-grained metric records (e.g. hourly) into one coarser record
(e.g. daily) per resource and window.

Column rules:
- Additive columns: sum
- Numeric gauges: time-weighted average, integer columns truncated
- Date gauges: latest value

Weighting: each record stands for the time elapsed since the previous record
of the same resource and interval. A record just before the window (at most
one source interval before window_start) still counts as the predecessor of
the first record in the window. Without such a predecessor, e.g. after a
capture outage, the first record is weighted by its nominal interval duration. With all weights zero (duplicate timestamps) the plain mean is used.

Rollups are upserted by (resource, interval_name, window_start), so re-running
a window overwrites the previous result.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session
import structlog

from app.models.vmdb_metric import (
    VmdbMetric,
    ADDITIVE_COLUMNS,
    INTEGER_GAUGE_COLUMNS,
    NUMERIC_GAUGE_COLUMNS,
    DATE_GAUGE_COLUMNS,
)
from app.services.vmdb_metrics.intervals import (
    interval_duration,
    source_interval,
    window_start_for,
)
from app.services.vmdb_metrics.repository import MetricsRepository

logger = structlog.get_logger(__name__)


def record_weights(
    timestamps: Sequence[datetime],
    previous_timestamp: Optional[datetime],
    nominal: timedelta
) -> List[float]:
    """
    Weight (seconds) of each record in an ascending series.

    Args:
        timestamps: Record timestamps, oldest first
        previous_timestamp: Timestamp of the record preceding the series, if any
        nominal: Duration used when a record has no predecessor

    Returns:
        One weight per timestamp
    """
    weights = []
    prev = previous_timestamp
    for ts in timestamps:
        if prev is None:
            weights.append(nominal.total_seconds())
        else:
            weights.append(max((ts - prev).total_seconds(), 0.0))
        prev = ts
    return weights


def weighted_average(values: Sequence[Optional[float]], weights: Sequence[float]) -> Optional[float]:
    """
    Σ(value * weight) / Σ(weight), ignoring None values.

    Returns None when no value is present, and the plain mean of the present
    values when their weights sum to zero.
    """
    pairs = [(v, w) for v, w in zip(values, weights) if v is not None]
    if not pairs:
        return None

    total_weight = sum(w for _, w in pairs)
    if total_weight == 0:
        return sum(v for v, _ in pairs) / len(pairs)

    return sum(v * w for v, w in pairs) / total_weight


def aggregate_records(records: Sequence[VmdbMetric], weights: Sequence[float]) -> Dict[str, Any]:
    """
    Combine records into rollup column values.

    Args:
        records: Source records, oldest first
        weights: Weight per record (see record_weights)

    Returns:
        dict of VmdbMetric column -> aggregated value
    """
    values: Dict[str, Any] = {}

    for column in ADDITIVE_COLUMNS:
        present = [getattr(r, column) for r in records if getattr(r, column) is not None]
        values[column] = sum(present) if present else None

    for column in NUMERIC_GAUGE_COLUMNS:
        average = weighted_average([getattr(r, column) for r in records], weights)
        if average is not None and column in INTEGER_GAUGE_COLUMNS:
            average = int(average)
        values[column] = average

    for column in DATE_GAUGE_COLUMNS:
        present = [getattr(r, column) for r in records if getattr(r, column) is not None]
        values[column] = max(present) if present else None

    return values


class MetricRollup:
    """
    Rollup driver.

    Usage:
        rollup = MetricRollup(db)
        metric = rollup.rollup(table, "daily", datetime(2012, 8, 14))
    """

    def __init__(self, db: Session):
        self.db = db
        self.metrics = MetricsRepository(db)

    def rollup(self, resource, interval_name: str, window_start: datetime) -> Optional[VmdbMetric]:
        """
        Build (or rebuild) the interval_name record for the window containing window_start.

        Args:
            resource: VmdbTable or VmdbIndex
            interval_name: Target interval ("daily" or "weekly")
            window_start: Window start; normalised to the interval boundary

        Returns:
            The upserted VmdbMetric, or None if the window has no source records

        Raises:
            UnknownIntervalError: If interval_name has no source interval
        """
        source_name = source_interval(interval_name)
        start = window_start_for(interval_name, window_start)
        end = start + interval_duration(interval_name)

        try:
            records = self.metrics.metrics_in_range(resource, source_name, start, end)
            if not records:
                logger.info(
                    "rollup_window_empty",
                    resource_type=resource.resource_type,
                    resource=resource.name,
                    interval=interval_name,
                    window_start=str(start)
                )
                return None

            nominal = interval_duration(source_name)
            previous = self.metrics.previous_metric(resource, source_name, start, since=start - nominal)
            weights = record_weights(
                [r.timestamp for r in records],
                previous.timestamp if previous else None,
                nominal
            )
            values = aggregate_records(records, weights)

            metric = self.metrics.upsert_metric(resource, interval_name, start, values)
            self.db.commit()

        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "rollup_completed",
            resource_type=resource.resource_type,
            resource=resource.name,
            interval=interval_name,
            window_start=str(start),
            source_records=len(records)
        )
        return metric


__all__ = [
    "record_weights",
    "weighted_average",
    "aggregate_records",
    "MetricRollup",
]
