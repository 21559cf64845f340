"""
APScheduler Background Jobs

Scheduled jobs for metrics capture (hourly) and metrics rollup (hourly refresh
of the current daily/weekly windows).
Jobs run via BackgroundScheduler in the FastAPI process.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from app.config import settings
from app.models import VmdbDatabase
from app.services.vmdb_metrics import (
    MetricCapture,
    PostgresStatisticsSource,
    RollupScheduler,
    seed_self,
    seed_tables,
)
from app.services.vmdb_metrics.intervals import beginning_of_day

logger = structlog.get_logger(__name__)

# A rollup run this soon after midnight also finalizes the previous day
ROLLUP_FINALIZE_LAG = timedelta(hours=1)


def capture_monitored_database(db: Session, source) -> Dict[str, Any]:
    """
    Seed the monitored database and its resources, then capture all tables.

    Args:
        db: Database session
        source: StatisticsSource for the monitored database

    Returns:
        dict: capture_all() summary plus the database name
    """
    vmdb_database = seed_self(db, source)
    seed_tables(db, vmdb_database, source)
    result = MetricCapture(db, source).capture_all(vmdb_database)
    return {"database": vmdb_database.name, **result}


def rollup_all_databases(db: Session, now: datetime) -> List[Dict[str, Any]]:
    """
    Run the RollupScheduler for every known database.

    If now falls within ROLLUP_FINALIZE_LAG of midnight, the previous day's
    windows are rolled up first.

    Args:
        db: Database session
        now: Reference instant

    Returns:
        One RollupScheduler.run() summary per run, tagged with the database name
    """
    results = []
    for vmdb_database in db.query(VmdbDatabase).order_by(VmdbDatabase.name).all():
        scheduler = RollupScheduler(db, vmdb_database)

        finalize_at = now - ROLLUP_FINALIZE_LAG
        if beginning_of_day(finalize_at) != beginning_of_day(now):
            results.append({"database": vmdb_database.name, **scheduler.run(finalize_at)})

        results.append({"database": vmdb_database.name, **scheduler.run(now)})
    return results


def run_scheduled_capture():
    """
    Wrapper function for the hourly capture job.

    Seeds the monitored database and its tables, then captures metrics for
    every evm table (cascading to text tables and indexes).
    """
    try:
        from app import database

        if database.SessionLocal is None:
            logger.warning("capture_skipped", reason="database_not_configured")
            return

        source = PostgresStatisticsSource(database.stats_engine)
        db = database.SessionLocal()
        try:
            result = capture_monitored_database(db, source)
            logger.info("scheduled_capture_completed", **result)
        finally:
            db.close()

    except Exception as e:
        logger.error("capture_crashed", error=str(e), exc_info=True)


def run_scheduled_rollup(now: Optional[datetime] = None):
    """
    Wrapper function for the hourly rollup job.

    Rolls up the windows containing now. During the first hour of a day the
    previous day is rolled up again so its last hourly record is included.
    """
    try:
        from app import database

        if database.SessionLocal is None:
            logger.warning("rollup_skipped", reason="database_not_configured")
            return

        db = database.SessionLocal()
        try:
            for result in rollup_all_databases(db, now or datetime.utcnow()):
                logger.info("scheduled_rollup_completed", **result)
        finally:
            db.close()

    except Exception as e:
        logger.error("rollup_crashed", error=str(e), exc_info=True)


def start_scheduler(environment: str = "production") -> BackgroundScheduler:
    """
    Start background scheduler with all jobs.

    Args:
        environment: Current environment (skip scheduler in testing)

    Returns:
        BackgroundScheduler instance
    """
    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if environment == "testing":
        logger.info("scheduler_skipped", reason="testing_environment")
        return scheduler

    # Job 1: Hourly capture
    scheduler.add_job(
        run_scheduled_capture,
        trigger=CronTrigger(minute=settings.capture_minute),
        id="vmdb_metrics_capture",
        name="Hourly VMDB Metrics Capture",
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )
    logger.info("job_registered", job="vmdb_metrics_capture", schedule=f"hourly_at_{settings.capture_minute:02d}")

    # Job 2: Hourly rollup refresh
    scheduler.add_job(
        run_scheduled_rollup,
        trigger=CronTrigger(minute=settings.rollup_minute),
        id="vmdb_metrics_rollup",
        name="VMDB Metrics Rollup",
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )
    logger.info("job_registered", job="vmdb_metrics_rollup", schedule=f"hourly_at_{settings.rollup_minute:02d}")

    scheduler.start()
    logger.info("scheduler_started", jobs=["vmdb_metrics_capture", "vmdb_metrics_rollup"])

    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler):
    """
    Stop background scheduler gracefully.

    Args:
        scheduler: BackgroundScheduler instance to stop
    """
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


__all__ = [
    "start_scheduler",
    "stop_scheduler",
    "run_scheduled_capture",
    "run_scheduled_rollup",
    "capture_monitored_database",
    "rollup_all_databases",
]
