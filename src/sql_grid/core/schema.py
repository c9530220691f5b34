"""PostgreSQL schema lookups used for editing and foreign-key navigation.

Framework-agnostic: everything goes through a Connection, and table
names are the ones reported in result metadata (regclass text form, so
schema-qualified only when off the search path).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from sql_grid.core.edits import resolve_primary_key
from sql_grid.core.exceptions import NoPrimaryKey
from sql_grid.core.models import ForeignKeyRef

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sql_grid.core.connection import Connection, SchemaLookup

_PRIMARY_KEY_SQL = """
SELECT a.attname
FROM pg_catalog.pg_index i
JOIN pg_catalog.pg_attribute a
  ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
WHERE i.indrelid = {table}::regclass
  AND i.indisprimary
ORDER BY array_position(i.indkey, a.attnum)
"""

_FOREIGN_KEYS_SQL = """
SELECT a.attname, c.confrelid::regclass::text, fa.attname
FROM pg_catalog.pg_constraint c
JOIN LATERAL unnest(c.conkey, c.confkey) AS k(attnum, fattnum) ON true
JOIN pg_catalog.pg_attribute a
  ON a.attrelid = c.conrelid AND a.attnum = k.attnum
JOIN pg_catalog.pg_attribute fa
  ON fa.attrelid = c.confrelid AND fa.attnum = k.fattnum
WHERE c.conrelid = {table}::regclass
  AND c.contype = 'f'
  AND array_length(c.conkey, 1) = 1
ORDER BY a.attnum
"""


class PgSchemaLookup:
    """SchemaLookup backed by pg_catalog queries."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    def primary_key_columns(self, table: str) -> list[str]:
        sql = _PRIMARY_KEY_SQL.format(table=self.connection.escape_literal(table))
        result = self.connection.execute(sql)
        return [row[0] for row in result.rows]

    def foreign_keys(self, table: str) -> list[tuple[str, str, str]]:
        """Single-column foreign keys of a table."""
        sql = _FOREIGN_KEYS_SQL.format(table=self.connection.escape_literal(table))
        result = self.connection.execute(sql)
        return [(row[0], row[1], row[2]) for row in result.rows]


def lookup_primary_key(
    schema: SchemaLookup, table: str | None, names: Sequence[str]
) -> list[int] | None:
    """Primary key column indices within the result, or None when unavailable.

    Lookup failures are logged and swallowed: display must not depend on
    editing being possible.
    """
    if not table:
        return None
    log = structlog.get_logger()
    try:
        pk_columns = schema.primary_key_columns(table)
    except Exception as e:
        log.warning("primary key lookup failed", table=table, error=str(e))
        return None
    try:
        return resolve_primary_key(names, pk_columns)
    except NoPrimaryKey as e:
        log.debug("no usable primary key", table=table, reason=e.message)
        return None


def lookup_foreign_keys(
    schema: SchemaLookup, tables: Sequence[str | None], names: Sequence[str]
) -> dict[int, ForeignKeyRef]:
    """Foreign-key map for a result: column index -> referenced table/column.

    Each column is matched against the foreign keys of its own source
    table, so joined results get references too. Failures are swallowed.
    """
    log = structlog.get_logger()
    by_table: dict[str, dict[str, ForeignKeyRef]] = {}
    for table in {t for t in tables if t}:
        try:
            refs = schema.foreign_keys(table)
        except Exception as e:
            log.warning("foreign key lookup failed", table=table, error=str(e))
            continue
        by_table[table] = {
            column.lower(): ForeignKeyRef(table=ref_table, column=ref_column)
            for column, ref_table, ref_column in refs
        }

    fk_map: dict[int, ForeignKeyRef] = {}
    for idx, (table, name) in enumerate(zip(tables, names, strict=True)):
        ref = by_table.get(table or "", {}).get(name.lower())
        if ref is not None:
            fk_map[idx] = ref
    return fk_map
