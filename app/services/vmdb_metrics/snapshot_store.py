"""
RawSnapshotStore

Single-slot storage of the latest cumulative statistics sample per resource.
Does NOT commit - caller controls transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.raw_snapshot import VmdbRawSnapshot
from app.models.vmdb_metric import DATE_GAUGE_COLUMNS


@dataclass
class RawSnapshot:
    """
    Cumulative counters and gauges for one resource at one instant.

    Keys of counters are VmdbMetric column names. A missing key means the
    statistics source does not report that value for the resource.
    """
    captured_at: datetime
    counters: Dict[str, Any] = field(default_factory=dict)

    def get(self, column: str) -> Any:
        return self.counters.get(column)


def _serialize(counters: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in counters.items()
    }


def _deserialize(counters: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(counters)
    for key in DATE_GAUGE_COLUMNS:
        if isinstance(data.get(key), str):
            data[key] = datetime.fromisoformat(data[key])
    return data


class RawSnapshotStore:
    """Prior-snapshot cache backed by vmdb_raw_snapshots."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, resource, for_update: bool = False) -> Optional[VmdbRawSnapshot]:
        query = self.db.query(VmdbRawSnapshot).filter(
            VmdbRawSnapshot.resource_type == resource.resource_type,
            VmdbRawSnapshot.resource_id == resource.id,
        )
        if for_update:
            # Serializes concurrent captures of the same resource on PostgreSQL
            query = query.with_for_update()
        return query.first()

    def get(self, resource, for_update: bool = False) -> Optional[RawSnapshot]:
        """
        Load the prior snapshot for a resource.

        Args:
            resource: VmdbTable or VmdbIndex
            for_update: Lock the slot until the caller's transaction ends

        Returns:
            RawSnapshot, or None before the first capture
        """
        row = self._row(resource, for_update=for_update)
        if row is None:
            return None
        return RawSnapshot(captured_at=row.captured_at, counters=_deserialize(row.counters))

    def put(self, resource, snapshot: RawSnapshot) -> None:
        """Overwrite the slot for a resource with snapshot."""
        row = self._row(resource)
        if row is None:
            row = VmdbRawSnapshot(
                resource_type=resource.resource_type,
                resource_id=resource.id,
            )
            self.db.add(row)
        row.captured_at = snapshot.captured_at
        row.counters = _serialize(snapshot.counters)

    def delete(self, resource) -> None:
        """Drop the slot of a resource that is no longer monitored."""
        self.db.query(VmdbRawSnapshot).filter(
            VmdbRawSnapshot.resource_type == resource.resource_type,
            VmdbRawSnapshot.resource_id == resource.id,
        ).delete(synchronize_session=False)
