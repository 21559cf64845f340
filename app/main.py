"""
VMDB Table Metrics - Main Application
FastAPI Entry Point with APScheduler for Capture and Rollup
"""

from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
import structlog

from app.config import settings
from app.database import init_db
from app.routers.metrics import router as metrics_router
from app.scheduler import start_scheduler, stop_scheduler
from app.services.monitoring import setup_logging

# Structured Logging Setup
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer()
    ]
)
logger = structlog.get_logger()

# FastAPI App
app = FastAPI(
    title="VMDB Table Metrics",
    description="Capture and rollup of table and index statistics for the VMDB",
    version="0.1.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

# APScheduler instance, created on startup
scheduler = None

# Register routers
app.include_router(metrics_router)


@app.on_event("startup")
async def startup_event():
    """Application Startup"""
    global scheduler

    setup_logging()
    logger.info("startup", environment=settings.environment)

    # Initialize database connection
    init_db()
    logger.info("database_initialized")

    # Start capture/rollup scheduler (skipped in testing)
    scheduler = start_scheduler(settings.environment)


@app.on_event("shutdown")
async def shutdown_event():
    """Application Shutdown"""
    logger.info("shutdown")
    stop_scheduler(scheduler)


@app.get("/")
async def root():
    """Root Endpoint"""
    return {
        "message": "VMDB Table Metrics API",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """
    Health Check Endpoint
    """
    health_status = {
        "status": "healthy",
        "environment": settings.environment,
        "services": {
            "api": "running",
            "scheduler": "running" if scheduler is not None and scheduler.running else "stopped"
        }
    }

    if settings.database_url:
        health_status["services"]["database"] = "configured"

    if settings.monitored_database_url:
        health_status["services"]["monitored_database"] = "configured"

    return JSONResponse(
        content=health_status,
        status_code=200
    )


@app.post("/api/v1/admin/capture/trigger")
async def trigger_capture():
    """
    Manually trigger a capture run.

    Runs seeding and capture immediately instead of waiting for the hourly schedule.

    Returns:
        dict: Capture summary with counts and failed tables
    """
    try:
        from app import database
        from app.scheduler import capture_monitored_database
        from app.services.vmdb_metrics import PostgresStatisticsSource

        if database.SessionLocal is None:
            return {
                "status": "error",
                "message": "Database not configured"
            }

        db = database.SessionLocal()
        try:
            result = capture_monitored_database(db, PostgresStatisticsSource(database.stats_engine))
        finally:
            db.close()

        return {
            "status": "completed",
            "result": result
        }

    except Exception as e:
        logger.error("manual_capture_error", error=str(e), exc_info=True)
        return {
            "status": "error",
            "message": str(e)
        }


@app.post("/api/v1/admin/rollup/trigger")
async def trigger_rollup(
    at: Optional[datetime] = Query(None, description="Reference instant (default: now, UTC)")
):
    """
    Manually trigger a rollup run for the windows containing the given instant.

    Returns:
        dict: Rollup summaries, one per database run
    """
    try:
        from app import database
        from app.scheduler import rollup_all_databases

        if database.SessionLocal is None:
            return {
                "status": "error",
                "message": "Database not configured"
            }

        db = database.SessionLocal()
        try:
            results = rollup_all_databases(db, at or datetime.utcnow())
        finally:
            db.close()

        return {
            "status": "completed",
            "results": results
        }

    except Exception as e:
        logger.error("manual_rollup_error", error=str(e), exc_info=True)
        return {
            "status": "error",
            "message": str(e)
        }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development"
    )
