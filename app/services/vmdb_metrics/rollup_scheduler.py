"""
Rollup Scheduler

Decides which window to roll up for each configured interval and delegates
the aggregation to MetricRollup for every monitored resource.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
import structlog

from app.config import settings
from app.services.vmdb_metrics.intervals import rollup_depth, source_interval, window_start_for
from app.services.vmdb_metrics.rollup import MetricRollup

logger = structlog.get_logger(__name__)


class RollupScheduler:
    """
    Periodic rollup driver for one monitored database.

    run(now) is safe to repeat for the same instant: each window is upserted.
    """

    def __init__(
        self,
        db: Session,
        database,
        intervals: Optional[List[str]] = None,
        rollup: Optional[MetricRollup] = None
    ):
        """
        Initialize RollupScheduler.

        Args:
            db: Database session
            database: VmdbDatabase whose resources are rolled up
            intervals: Rollup intervals (default: settings.rollup_intervals)
            rollup: MetricRollup to delegate to (default: new instance on db)
        """
        self.db = db
        self.database = database
        self.intervals = list(intervals if intervals is not None else settings.rollup_intervals)
        self.rollup = rollup or MetricRollup(db)

        for interval_name in self.intervals:
            source_interval(interval_name)  # fail fast on misconfiguration

        # Each interval is built from the records of the one before it
        self.intervals.sort(key=rollup_depth)

    def resources(self) -> List[Any]:
        """Every evm table of the database, each followed by its sub-resources."""
        resources = []
        for table in self.database.evm_tables:
            resources.append(table)
            resources.extend(table.sub_resources)
        return resources

    def run(self, now: datetime) -> Dict[str, Any]:
        """
        Roll up the window containing now, for each interval and resource.

        Failures are logged per resource and returned; they are retried on
        the next run.

        Args:
            now: Reference instant

        Returns:
            dict: {'windows': {interval: iso start}, 'rolled_up': N, 'empty': N, 'failed': [...]}
        """
        resources = self.resources()
        windows = {}
        rolled_up = 0
        empty = 0
        failed = []

        for interval_name in self.intervals:
            window_start = window_start_for(interval_name, now)
            windows[interval_name] = window_start.isoformat()

            for resource in resources:
                try:
                    if self.rollup.rollup(resource, interval_name, window_start) is None:
                        empty += 1
                    else:
                        rolled_up += 1
                except Exception as e:
                    failed.append({
                        "resource_type": resource.resource_type,
                        "resource": resource.name,
                        "interval": interval_name,
                        "error": str(e),
                    })
                    logger.error(
                        "rollup_failed",
                        resource_type=resource.resource_type,
                        resource=resource.name,
                        interval=interval_name,
                        window_start=windows[interval_name],
                        error=str(e),
                        exc_info=True
                    )

        summary = {
            "windows": windows,
            "rolled_up": rolled_up,
            "empty": empty,
            "failed": failed,
        }
        logger.info(
            "rollup_run_completed",
            database=self.database.name,
            windows=windows,
            rolled_up=rolled_up,
            empty=empty,
            failed=len(failed)
        )
        return summary


__all__ = ["RollupScheduler"]
