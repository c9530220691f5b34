"""In-memory sorting and textual query rewriting for filters.

Dates and times sort by their canonical text form. That is right for
ordinary values but not calendar-correct for every edge case (negative
intervals, for instance).
"""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Sequence
from typing import Any

from sql_grid.core.connection import qualified_name, quote_identifier, quote_literal
from sql_grid.core.models import ForeignKeyRef
from sql_grid.core.values import format_value, is_number, to_literal


class _NullKey:
    """Sort key for NULL. sort_rows always places it after every other key."""

    def __repr__(self) -> str:
        return "NULL_KEY"


NULL_KEY = _NullKey()

_WHERE_RE = re.compile(r"\bWHERE\b", re.IGNORECASE)
_TAIL_CLAUSE_RE = re.compile(r"\b(ORDER\s+BY|GROUP\s+BY|HAVING|LIMIT)\b", re.IGNORECASE)


def compare_key(value: Any) -> Any:
    """Comparison key for a raw value: NULL sentinel, number, str or text form."""
    if value is None:
        return NULL_KEY
    if is_number(value) or isinstance(value, str):
        return value
    return format_value(value)


def _compare_keys(a: Any, b: Any) -> int:
    if is_number(a) and is_number(b):
        return (a > b) - (a < b)
    ta = a if isinstance(a, str) else format_value(a)
    tb = b if isinstance(b, str) else format_value(b)
    return (ta > tb) - (ta < tb)


def sort_rows(
    rows: Sequence[tuple[Any, ...]], column: int, descending: bool = False
) -> list[tuple[Any, ...]]:
    """Stable sort on one column. NULLs end up last in both directions."""

    def compare(ra: tuple[Any, ...], rb: tuple[Any, ...]) -> int:
        a, b = compare_key(ra[column]), compare_key(rb[column])
        if a is NULL_KEY or b is NULL_KEY:
            return (a is NULL_KEY) - (b is NULL_KEY)
        result = _compare_keys(a, b)
        return -result if descending else result

    return sorted(rows, key=functools.cmp_to_key(compare))


def strip_terminator(sql: str) -> str:
    """Drop one trailing statement terminator and surrounding whitespace."""
    sql = sql.rstrip()
    if sql.endswith(";"):
        sql = sql[:-1].rstrip()
    return sql


def inject_where(base_sql: str, predicate: str) -> str:
    """Add a predicate to a query's WHERE clause.

    An existing WHERE gets " AND (predicate)" appended to its condition,
    ahead of any trailing ORDER BY, GROUP BY, HAVING or LIMIT. Otherwise
    "WHERE predicate" goes before the first of those clauses, or at the
    end. An empty predicate leaves the query unchanged.
    """
    sql = strip_terminator(base_sql)
    predicate = predicate.strip()
    if not predicate:
        return sql

    where = _WHERE_RE.search(sql)
    if where:
        tail = _TAIL_CLAUSE_RE.search(sql, where.end())
        if tail:
            head = sql[: tail.start()].rstrip()
            return f"{head} AND ({predicate}) {sql[tail.start():]}"
        return f"{sql} AND ({predicate})"

    tail = _TAIL_CLAUSE_RE.search(sql)
    if tail:
        head = sql[: tail.start()].rstrip()
        return f"{head} WHERE {predicate} {sql[tail.start():]}"
    return f"{sql} WHERE {predicate}"


def wrap_order_by(
    base_sql: str,
    column: str,
    descending: bool = False,
    escape_identifier: Callable[[str], str] = quote_identifier,
) -> str:
    """Re-query form of a sort: order the base query's rows server-side."""
    direction = "DESC" if descending else "ASC"
    return (
        f"SELECT * FROM ({strip_terminator(base_sql)}) AS sorted_result "
        f"ORDER BY {escape_identifier(column)} {direction} NULLS LAST"
    )


def foreign_key_query(
    ref: ForeignKeyRef,
    value: Any,
    escape_identifier: Callable[[str], str] = quote_identifier,
    escape_literal: Callable[[str], str] = quote_literal,
) -> str:
    """SELECT the referenced row(s) for a foreign key value."""
    column = escape_identifier(ref.column)
    if value is None:
        predicate = f"{column} IS NULL"
    else:
        predicate = f"{column} = {to_literal(value, escape_literal)}"
    return f"SELECT * FROM {qualified_name(ref.table, escape_identifier)} WHERE {predicate}"
