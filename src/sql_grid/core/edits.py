"""Pending cell edits and UPDATE statement synthesis.

Edits are an overlay keyed by (row, column) on top of the stored rows.
Committing turns them into one UPDATE per edited row, constrained on the
row's original primary key values.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import sentry_sdk
import structlog

from sql_grid.core.connection import qualified_name, quote_identifier, quote_literal
from sql_grid.core.exceptions import (
    CommitError,
    NoPrimaryKey,
    NoTableDetected,
    QueryError,
)
from sql_grid.core.values import to_literal, values_equal

if TYPE_CHECKING:
    from sql_grid.core.connection import Connection

CellKey = tuple[int, int]


@dataclass(frozen=True)
class CommitStatement:
    """One UPDATE for one edited row."""

    row: int
    sql: str


class EditTracker:
    """Cell-level pending edits. None is the explicit NULL marker."""

    def __init__(self) -> None:
        self._edits: dict[CellKey, Any] = {}

    def __len__(self) -> int:
        return len(self._edits)

    def __contains__(self, key: object) -> bool:
        return key in self._edits

    @property
    def edits(self) -> dict[CellKey, Any]:
        return dict(self._edits)

    def apply(self, row: int, column: int, value: Any, stored: Any) -> bool:
        """Record an edit, or drop it when value equals the stored value.

        Returns True when a pending edit exists for the cell afterwards.
        """
        key = (row, column)
        if values_equal(value, stored):
            self._edits.pop(key, None)
            return False
        self._edits[key] = value
        return True

    def get(self, row: int, column: int, default: Any = None) -> Any:
        return self._edits.get((row, column), default)

    def rows(self) -> list[int]:
        """Edited row indices, ascending."""
        return sorted({row for row, _ in self._edits})

    def discard_rows(self, rows: set[int]) -> None:
        self._edits = {k: v for k, v in self._edits.items() if k[0] not in rows}

    def clear(self) -> None:
        self._edits.clear()


def resolve_primary_key(names: Sequence[str], pk_columns: Sequence[str]) -> list[int]:
    """Map primary key column names to result indices (case-insensitive).

    Raises NoPrimaryKey when the key is empty or a key column is missing
    from the result.
    """
    if not pk_columns:
        raise NoPrimaryKey("No primary key found; editing is disabled")
    lowered = [name.lower() for name in names]
    indices: list[int] = []
    for pk in pk_columns:
        try:
            indices.append(lowered.index(pk.lower()))
        except ValueError:
            msg = f"Primary key column '{pk}' is not part of the result; editing is disabled"
            raise NoPrimaryKey(msg) from None
    return indices


def build_commit_statements(
    table: str | None,
    rows: Sequence[Sequence[Any]],
    edits: dict[CellKey, Any],
    names: Sequence[str],
    pk_indices: Sequence[int],
    escape_identifier: Callable[[str], str] = quote_identifier,
    escape_literal: Callable[[str], str] = quote_literal,
) -> list[CommitStatement]:
    """Build one UPDATE per edited row, in ascending row order.

    SET lists the row's edited columns in column order; WHERE matches every
    primary key column's original value, with IS NULL for NULL keys.
    """
    if not table:
        raise NoTableDetected(
            "Cannot determine a single source table; editing is disabled"
        )
    if not pk_indices:
        raise NoPrimaryKey(f"No primary key found for '{table}'; editing is disabled")

    by_row: dict[int, dict[int, Any]] = {}
    for (row, col), value in edits.items():
        by_row.setdefault(row, {})[col] = value

    statements: list[CommitStatement] = []
    for row in sorted(by_row):
        changes = by_row[row]
        original = rows[row]
        set_parts = [
            f"{escape_identifier(names[col])} = {to_literal(changes[col], escape_literal)}"
            for col in sorted(changes)
        ]
        where_parts = []
        for pk in pk_indices:
            key_value = original[pk]
            if key_value is None:
                where_parts.append(f"{escape_identifier(names[pk])} IS NULL")
            else:
                where_parts.append(
                    f"{escape_identifier(names[pk])} = {to_literal(key_value, escape_literal)}"
                )
        sql = (
            f"UPDATE {qualified_name(table, escape_identifier)} SET {', '.join(set_parts)} "
            f"WHERE {' AND '.join(where_parts)}"
        )
        statements.append(CommitStatement(row=row, sql=sql))
    return statements


def commit_edits(
    connection: Connection, statements: Sequence[CommitStatement]
) -> list[int]:
    """Execute statements in order and stop at the first failure.

    Returns the rows that were written. On failure raises CommitError naming
    the failing row; statements already executed stay applied.
    """
    log = structlog.get_logger()
    written: list[int] = []
    with sentry_sdk.start_span(op="db.commit", description="grid commit") as span:
        start_time = time.monotonic()
        for stmt in statements:
            try:
                connection.execute(stmt.sql)
            except QueryError as e:
                span.set_status("aborted")
                log.error("commit failed", row=stmt.row, applied=len(written), error=e.message)
                raise CommitError(stmt.row, e.message, applied=len(written)) from e
            written.append(stmt.row)
        duration_ms = (time.monotonic() - start_time) * 1000
        span.set_data("statements", len(written))
        log.debug("commit complete", statements=len(written), duration_ms=f"{duration_ms:.1f}")
    return written
