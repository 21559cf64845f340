"""
Shared fixtures: in-memory SQLite metrics store and a scripted statistics source.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import VmdbDatabase, VmdbTable, VmdbIndex
from app.services.monitoring.circuit_breakers import reset_breakers
from app.services.vmdb_metrics import RawSnapshot, StatisticsSource, StatisticsUnavailableError


class FakeStatisticsSource(StatisticsSource):
    """
    StatisticsSource returning whatever the test put in.

    samples maps resource name -> RawSnapshot returned by the next fetch.
    Names in failing raise StatisticsUnavailableError.
    """

    def __init__(self, name="vmdb_production", tables=None, texts=None, indexes=None):
        self.name = name
        self.tables = set(tables or [])
        self.texts = dict(texts or {})
        self.indexes = dict(indexes or {})
        self.samples = {}
        self.failing = set()
        self.fetched = []

    def set_sample(self, resource_name, captured_at, **counters):
        self.samples[resource_name] = RawSnapshot(captured_at=captured_at, counters=counters)

    def database_info(self):
        return {"name": self.name, "vendor": "postgresql", "version": "13.4"}

    def list_monitored_objects(self):
        return set(self.tables)

    def text_tables(self, table_name):
        return list(self.texts.get(table_name, []))

    def index_names(self, table_name):
        return list(self.indexes.get(table_name, []))

    def fetch_raw_stats(self, resource):
        self.fetched.append(resource.name)
        if resource.name in self.failing:
            raise StatisticsUnavailableError("fetch_raw_stats", resource.name)
        return self.samples[resource.name]


@pytest.fixture
def engine():
    """Fresh in-memory metrics store per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session bound to the in-memory store."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def fresh_breakers():
    reset_breakers()
    yield
    reset_breakers()


@pytest.fixture
def source():
    return FakeStatisticsSource()


@pytest.fixture
def vmdb_database(db):
    database = VmdbDatabase(name="vmdb_production", vendor="postgresql", version="13.4")
    db.add(database)
    db.commit()
    return database


@pytest.fixture
def evm_table(db, vmdb_database):
    table = VmdbTable(name="accounts", kind="evm", vmdb_database=vmdb_database)
    db.add(table)
    db.commit()
    return table


@pytest.fixture
def text_table(db, evm_table):
    text_table = VmdbTable(
        name="pg_toast_16384",
        kind="text",
        vmdb_database_id=evm_table.vmdb_database_id,
        evm_table=evm_table,
    )
    db.add(text_table)
    db.commit()
    return text_table


@pytest.fixture
def vmdb_index(db, evm_table):
    index = VmdbIndex(name="accounts_pkey", vmdb_table=evm_table)
    db.add(index)
    db.commit()
    return index


def _table_counters(**overrides):
    counters = {
        "table_scans": 10,
        "sequential_rows_read": 1000,
        "index_scans": 50,
        "index_rows_fetched": 500,
        "rows_inserted": 100,
        "rows_updated": 20,
        "rows_deleted": 5,
        "rows_hot_updated": 10,
        "size": 81920,
        "rows": 95,
        "pages": 10,
        "otta": 8,
        "rows_live": 95,
        "rows_dead": 5,
        "percent_bloat": 20.0,
        "wasted_bytes": 16384.0,
        "last_vacuum_date": None,
        "last_autovacuum_date": datetime(2012, 8, 14, 3, 0, 0),
        "last_analyze_date": None,
        "last_autoanalyze_date": datetime(2012, 8, 14, 3, 0, 5),
    }
    counters.update(overrides)
    return counters


@pytest.fixture
def table_counters():
    """Builds a complete table sample; keyword overrides replace individual values."""
    return _table_counters
