"""
Statistics Source

Reads raw per-table and per-index statistics and catalog metadata from the
monitored PostgreSQL database (pg_stat_all_tables, pg_stat_all_indexes,
pg_class, pg_stats). All queries go through the statistics_source circuit
breaker.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

import pybreaker
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import structlog

from app.services.monitoring.circuit_breakers import get_stats_source_breaker
from app.services.vmdb_metrics.errors import StatisticsUnavailableError
from app.services.vmdb_metrics.intervals import to_utc_naive
from app.services.vmdb_metrics.schema import sql_indexes
from app.services.vmdb_metrics.snapshot_store import RawSnapshot

logger = structlog.get_logger(__name__)

# Per-tuple overhead used by the bloat estimate (heap tuple header + item pointer)
TABLE_TUPLE_OVERHEAD = 28
INDEX_TUPLE_OVERHEAD = 16
PAGE_OVERHEAD = 24


class StatisticsSource:
    """
    Interface consumed by capture and seeding.

    Implementations raise StatisticsUnavailableError when statistics cannot be read.
    """

    def database_info(self) -> Dict[str, Any]:
        """{'name': ..., 'vendor': ..., 'version': ...} of the monitored database"""
        raise NotImplementedError

    def list_monitored_objects(self) -> Set[str]:
        """Names of the application (evm) tables"""
        raise NotImplementedError

    def text_tables(self, table_name: str) -> List[str]:
        """Names of the TOAST tables owned by table_name"""
        raise NotImplementedError

    def index_names(self, table_name: str) -> List[str]:
        """Names of the indexes of table_name"""
        raise NotImplementedError

    def fetch_raw_stats(self, resource) -> RawSnapshot:
        """Current cumulative statistics for a VmdbTable or VmdbIndex"""
        raise NotImplementedError


TABLE_STATS_SQL = text("""
    SELECT
        s.seq_scan AS table_scans,
        s.seq_tup_read AS sequential_rows_read,
        s.idx_scan AS index_scans,
        s.idx_tup_fetch AS index_rows_fetched,
        s.n_tup_ins AS rows_inserted,
        s.n_tup_upd AS rows_updated,
        s.n_tup_del AS rows_deleted,
        s.n_tup_hot_upd AS rows_hot_updated,
        s.n_live_tup AS rows_live,
        s.n_dead_tup AS rows_dead,
        s.last_vacuum AS last_vacuum_date,
        s.last_autovacuum AS last_autovacuum_date,
        s.last_analyze AS last_analyze_date,
        s.last_autoanalyze AS last_autoanalyze_date,
        pg_total_relation_size(c.oid) AS size,
        -- reltuples is -1 until the first VACUUM or ANALYZE (PostgreSQL 14+)
        GREATEST(c.reltuples, 0)::bigint AS rows,
        c.relpages::bigint AS pages,
        (SELECT COALESCE(SUM(st.avg_width), 0)
           FROM pg_stats st
          WHERE st.schemaname = s.schemaname AND st.tablename = s.relname) AS row_width
    FROM pg_stat_all_tables s
    JOIN pg_class c ON c.oid = s.relid
    WHERE s.relname = :name
    ORDER BY (s.schemaname = 'public') DESC
    LIMIT 1
""")

INDEX_STATS_SQL = text("""
    SELECT
        s.idx_scan AS index_scans,
        s.idx_tup_read AS sequential_rows_read,
        s.idx_tup_fetch AS index_rows_fetched,
        pg_relation_size(c.oid) AS size,
        GREATEST(c.reltuples, 0)::bigint AS rows,
        c.relpages::bigint AS pages,
        (SELECT COALESCE(SUM(st.avg_width), 0)
           FROM pg_index i
           JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
           JOIN pg_stats st ON st.schemaname = s.schemaname
                           AND st.tablename = s.relname
                           AND st.attname = a.attname
          WHERE i.indexrelid = s.indexrelid) AS row_width
    FROM pg_stat_all_indexes s
    JOIN pg_class c ON c.oid = s.indexrelid
    WHERE s.indexrelname = :name
    ORDER BY (s.schemaname = 'public') DESC
    LIMIT 1
""")

MONITORED_TABLES_SQL = text("""
    SELECT relname FROM pg_stat_user_tables WHERE schemaname = 'public'
""")

TEXT_TABLES_SQL = text("""
    SELECT t.relname
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_class t ON t.oid = c.reltoastrelid
    WHERE c.relname = :name AND n.nspname = 'public' AND c.relkind = 'r'
    ORDER BY t.relname
""")


def estimate_bloat(pages: Optional[int], rows: Optional[int], row_width: Optional[float],
                   block_size: int, tuple_overhead: int) -> Dict[str, Any]:
    """
    Estimate bloat from page count versus the pages the live rows need.

    Args:
        pages: Actual pages (relpages)
        rows: Estimated rows (reltuples)
        row_width: Average data width per row in bytes
        block_size: Page size in bytes
        tuple_overhead: Per-row header/pointer bytes

    Returns:
        dict with otta, wasted_bytes, percent_bloat
    """
    if pages is None or rows is None:
        return {"otta": None, "wasted_bytes": None, "percent_bloat": None}

    rows = max(rows, 0)
    per_row = tuple_overhead + float(row_width or 0)
    otta = int(math.ceil(rows * per_row / float(block_size - PAGE_OVERHEAD))) if rows else 0
    wasted_pages = max(pages - otta, 0)

    return {
        "otta": otta,
        "wasted_bytes": float(wasted_pages * block_size),
        "percent_bloat": round(100.0 * wasted_pages / pages, 2) if pages else 0.0,
    }


class PostgresStatisticsSource(StatisticsSource):
    """
    StatisticsSource backed by the PostgreSQL statistics views.

    Usage:
        source = PostgresStatisticsSource(stats_engine)
        snapshot = source.fetch_raw_stats(table)
    """

    def __init__(self, engine, breaker: Optional[pybreaker.CircuitBreaker] = None, clock=None):
        """
        Initialize PostgresStatisticsSource.

        Args:
            engine: SQLAlchemy engine connected to the monitored database
            breaker: Circuit breaker (default: statistics_source breaker)
            clock: Callable returning the capture instant (default: datetime.utcnow)
        """
        self.engine = engine
        self.breaker = breaker or get_stats_source_breaker()
        self.clock = clock or datetime.utcnow
        self._block_size: Optional[int] = None

    def _call(self, operation: str, func, *args, resource_name: Optional[str] = None):
        try:
            return self.breaker.call(func, *args)
        except pybreaker.CircuitBreakerError as e:
            raise StatisticsUnavailableError(operation, resource_name) from e
        except SQLAlchemyError as e:
            logger.error("statistics_query_failed", operation=operation, resource=resource_name, error=str(e))
            raise StatisticsUnavailableError(operation, resource_name) from e

    def _scalar_rows(self, statement, **params) -> List[Any]:
        with self.engine.connect() as conn:
            return [row[0] for row in conn.execute(statement, params)]

    def _first_row(self, statement, **params) -> Optional[Dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(statement, params).mappings().first()
            return dict(row) if row else None

    def block_size(self) -> int:
        if self._block_size is None:
            rows = self._call("block_size", self._scalar_rows, text("SELECT current_setting('block_size')::int"))
            self._block_size = int(rows[0])
        return self._block_size

    def database_info(self) -> Dict[str, Any]:
        def query():
            with self.engine.connect() as conn:
                name = conn.execute(text("SELECT current_database()")).scalar()
                version = conn.execute(text("SHOW server_version")).scalar()
                return {"name": name, "vendor": "postgresql", "version": version}
        return self._call("database_info", query)

    def list_monitored_objects(self) -> Set[str]:
        return set(self._call("list_monitored_objects", self._scalar_rows, MONITORED_TABLES_SQL))

    def text_tables(self, table_name: str) -> List[str]:
        def query():
            return self._scalar_rows(TEXT_TABLES_SQL, name=table_name)
        return self._call("text_tables", query, resource_name=table_name)

    def index_names(self, table_name: str) -> List[str]:
        def query():
            return [index.name for index in sql_indexes(self.engine, table_name)]
        return self._call("index_names", query, resource_name=table_name)

    def fetch_raw_stats(self, resource) -> RawSnapshot:
        """
        Read the current statistics for a resource.

        Raises:
            StatisticsUnavailableError: If the query fails, the circuit is open,
                or the object no longer exists
        """
        if resource.resource_type == "VmdbIndex":
            statement, overhead = INDEX_STATS_SQL, INDEX_TUPLE_OVERHEAD
        else:
            statement, overhead = TABLE_STATS_SQL, TABLE_TUPLE_OVERHEAD

        def query():
            return self._first_row(statement, name=resource.name)

        row = self._call("fetch_raw_stats", query, resource_name=resource.name)
        if row is None:
            raise StatisticsUnavailableError(
                "fetch_raw_stats", resource.name,
                message=f"No statistics found for {resource.resource_type} {resource.name}"
            )

        row_width = row.pop("row_width", None)
        row.update(estimate_bloat(row.get("pages"), row.get("rows"), row_width, self.block_size(), overhead))
        for key, value in row.items():
            if isinstance(value, datetime):
                row[key] = to_utc_naive(value)

        return RawSnapshot(captured_at=self.clock(), counters=row)


__all__ = [
    "StatisticsSource",
    "PostgresStatisticsSource",
    "estimate_bloat",
]
