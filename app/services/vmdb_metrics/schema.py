"""
Schema introspection for monitored tables.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import inspect


@dataclass
class SqlIndex:
    """One index of a table as reported by the database catalog."""
    table: str
    name: str
    unique: bool
    columns: List[str] = field(default_factory=list)


def sql_indexes(bind, table_name: str, schema: Optional[str] = None) -> List[SqlIndex]:
    """
    List the indexes of a table, primary key included.

    The primary key is reported under its constraint name, or
    "<table>_pkey" when the backend does not name it (SQLite).

    Args:
        bind: SQLAlchemy Engine or Connection
        table_name: Table to inspect
        schema: Optional schema name

    Returns:
        List of SqlIndex, primary key first
    """
    inspector = inspect(bind)
    indexes: List[SqlIndex] = []

    pk = inspector.get_pk_constraint(table_name, schema=schema)
    pk_name = None
    if pk and pk.get("constrained_columns"):
        pk_name = pk.get("name") or f"{table_name}_pkey"
        indexes.append(SqlIndex(
            table=table_name,
            name=pk_name,
            unique=True,
            columns=list(pk["constrained_columns"]),
        ))

    for index in inspector.get_indexes(table_name, schema=schema):
        if index["name"] == pk_name:
            continue
        indexes.append(SqlIndex(
            table=table_name,
            name=index["name"],
            unique=bool(index.get("unique")),
            columns=[c for c in index.get("column_names", []) if c is not None],
        ))

    return indexes


__all__ = ["SqlIndex", "sql_indexes"]
