"""
Resource Seeding

Mirrors the statistics source's object list into vmdb_tables / vmdb_indexes:
new names are added, vanished names removed, existing rows kept (with their
metric history).
"""

from dataclasses import dataclass, field
from typing import Iterable, Set

from sqlalchemy.orm import Session
import structlog

from app.models import VmdbDatabase, VmdbTable, VmdbIndex
from app.services.vmdb_metrics.snapshot_store import RawSnapshotStore

logger = structlog.get_logger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of comparing stored names with observed names."""
    to_add: Set[str] = field(default_factory=set)
    to_remove: Set[str] = field(default_factory=set)
    unchanged: Set[str] = field(default_factory=set)

    @property
    def changed(self) -> bool:
        return bool(self.to_add or self.to_remove)


def reconcile(existing: Iterable[str], observed: Iterable[str]) -> ReconcileResult:
    """
    Compare stored and observed names.

    Args:
        existing: Names currently stored
        observed: Names currently reported by the statistics source

    Returns:
        ReconcileResult with names to add, to remove and to keep
    """
    existing = set(existing)
    observed = set(observed)
    return ReconcileResult(
        to_add=observed - existing,
        to_remove=existing - observed,
        unchanged=existing & observed,
    )


def forget_resource(db: Session, resource) -> None:
    """
    Drop the stored snapshots of a resource and its sub-resources.

    Must run before the resource rows are deleted, while their ids are known.
    """
    for sub_resource in resource.sub_resources:
        forget_resource(db, sub_resource)
    RawSnapshotStore(db).delete(resource)


def seed_self(db: Session, source) -> VmdbDatabase:
    """
    Find or create the VmdbDatabase row for the monitored database.

    Args:
        db: Database session
        source: StatisticsSource

    Returns:
        VmdbDatabase (committed)
    """
    info = source.database_info()

    database = db.query(VmdbDatabase).filter(VmdbDatabase.name == info["name"]).first()
    if database is None:
        database = VmdbDatabase(name=info["name"])
        db.add(database)
        logger.info("database_seeded", database=info["name"])

    database.vendor = info.get("vendor")
    database.version = info.get("version")
    db.commit()
    return database


def seed_texts(db: Session, table: VmdbTable, source) -> ReconcileResult:
    """Sync the text (TOAST) tables owned by an evm table."""
    current = {t.name: t for t in table.text_tables}
    result = reconcile(current.keys(), source.text_tables(table.name))

    for name in sorted(result.to_add):
        table.text_tables.append(VmdbTable(
            name=name,
            kind="text",
            vmdb_database_id=table.vmdb_database_id,
        ))
    for name in result.to_remove:
        forget_resource(db, current[name])
        db.delete(current[name])

    db.commit()
    if result.changed:
        logger.info(
            "text_tables_seeded",
            table=table.name,
            added=sorted(result.to_add),
            removed=sorted(result.to_remove)
        )
    return result


def seed_indexes(db: Session, table: VmdbTable, source) -> ReconcileResult:
    """Sync the indexes of a table."""
    current = {i.name: i for i in table.vmdb_indexes}
    result = reconcile(current.keys(), source.index_names(table.name))

    for name in sorted(result.to_add):
        table.vmdb_indexes.append(VmdbIndex(name=name))
    for name in result.to_remove:
        forget_resource(db, current[name])
        table.vmdb_indexes.remove(current[name])

    db.commit()
    if result.changed:
        logger.info(
            "indexes_seeded",
            table=table.name,
            added=sorted(result.to_add),
            removed=sorted(result.to_remove)
        )
    return result


def seed(db: Session, table: VmdbTable, source) -> None:
    """Sync the sub-resources (text tables, indexes) of an evm table."""
    seed_texts(db, table, source)
    seed_indexes(db, table, source)


def seed_tables(db: Session, database: VmdbDatabase, source) -> ReconcileResult:
    """
    Sync the evm tables of a database, then seed each of them.

    Args:
        db: Database session
        database: VmdbDatabase from seed_self()
        source: StatisticsSource

    Returns:
        ReconcileResult for the evm tables
    """
    current = {t.name: t for t in database.evm_tables}
    result = reconcile(current.keys(), source.list_monitored_objects())

    for name in sorted(result.to_add):
        database.vmdb_tables.append(VmdbTable(name=name, kind="evm"))
    for name in result.to_remove:
        forget_resource(db, current[name])
        db.delete(current[name])
    db.commit()

    logger.info(
        "tables_seeded",
        database=database.name,
        added=len(result.to_add),
        removed=len(result.to_remove),
        unchanged=len(result.unchanged)
    )

    for table in database.evm_tables:
        seed(db, table, source)

    return result


__all__ = [
    "ReconcileResult",
    "reconcile",
    "forget_resource",
    "seed_self",
    "seed_texts",
    "seed_indexes",
    "seed",
    "seed_tables",
]
