"""
Database Models
"""

from app.models.vmdb_database import VmdbDatabase
from app.models.vmdb_table import VmdbTable, VmdbIndex
from app.models.vmdb_metric import VmdbMetric
from app.models.raw_snapshot import VmdbRawSnapshot

__all__ = [
    "VmdbDatabase",
    "VmdbTable",
    "VmdbIndex",
    "VmdbMetric",
    "VmdbRawSnapshot",
]
