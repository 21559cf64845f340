"""
Metrics API Router
Read-only REST endpoints for monitored tables, indexes and their metrics
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
import structlog

from app.database import get_db
from app.models import VmdbTable, VmdbIndex
from app.services.vmdb_metrics import MetricsRepository
from app.services.vmdb_metrics.intervals import INTERVAL_DURATIONS

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["metrics"])


def _require_db(db: Optional[Session]) -> Session:
    if db is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return db


def _check_interval(interval: Optional[str]) -> None:
    if interval is not None and interval not in INTERVAL_DURATIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown interval '{interval}'. Must be one of: {', '.join(INTERVAL_DURATIONS)}"
        )


@router.get("/tables")
async def list_tables(
    db: Session = Depends(get_db)
):
    """
    List monitored evm tables with their sub-resource counts

    Returns:
        dict with total count and table list
    """
    db = _require_db(db)

    tables = db.query(VmdbTable).filter(VmdbTable.kind == "evm").order_by(VmdbTable.name).all()

    table_list = [
        {
            "id": table.id,
            "name": table.name,
            "vmdb_database_id": table.vmdb_database_id,
            "text_tables": len(table.text_tables),
            "indexes": len(table.vmdb_indexes),
        }
        for table in tables
    ]

    logger.info("tables_listed", total=len(table_list))

    return {
        "total": len(table_list),
        "tables": table_list
    }


@router.get("/tables/{table_id}")
async def get_table_detail(
    table_id: int,
    db: Session = Depends(get_db)
):
    """
    Get a table with its text tables and indexes

    Raises:
        404: Table not found
    """
    db = _require_db(db)

    table = db.query(VmdbTable).filter(VmdbTable.id == table_id).first()
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")

    return {
        "id": table.id,
        "name": table.name,
        "kind": table.kind,
        "vmdb_database_id": table.vmdb_database_id,
        "text_tables": [{"id": t.id, "name": t.name} for t in table.text_tables],
        "indexes": [{"id": i.id, "name": i.name} for i in table.vmdb_indexes],
        "created_at": table.created_at.isoformat() if table.created_at else None,
    }


@router.get("/tables/{table_id}/metrics")
async def get_table_metrics(
    table_id: int,
    interval: Optional[str] = Query(None, description="Filter by capture_interval_name (hourly, daily, weekly)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    db: Session = Depends(get_db)
):
    """
    Newest-first metric records of a table

    Raises:
        400: Unknown interval
        404: Table not found
    """
    db = _require_db(db)
    _check_interval(interval)

    table = db.query(VmdbTable).filter(VmdbTable.id == table_id).first()
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")

    metrics = MetricsRepository(db).recent_metrics(table, interval, limit)
    return {
        "resource": {"type": table.resource_type, "id": table.id, "name": table.name},
        "total": len(metrics),
        "metrics": [m.to_dict() for m in metrics]
    }


@router.get("/indexes/{index_id}/metrics")
async def get_index_metrics(
    index_id: int,
    interval: Optional[str] = Query(None, description="Filter by capture_interval_name (hourly, daily, weekly)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    db: Session = Depends(get_db)
):
    """
    Newest-first metric records of an index

    Raises:
        400: Unknown interval
        404: Index not found
    """
    db = _require_db(db)
    _check_interval(interval)

    index = db.query(VmdbIndex).filter(VmdbIndex.id == index_id).first()
    if not index:
        raise HTTPException(status_code=404, detail="Index not found")

    metrics = MetricsRepository(db).recent_metrics(index, interval, limit)
    return {
        "resource": {"type": index.resource_type, "id": index.id, "name": index.name},
        "total": len(metrics),
        "metrics": [m.to_dict() for m in metrics]
    }
