"""Copy rows as INSERT statements for the result's source table."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from sql_grid.core.connection import qualified_name, quote_identifier, quote_literal
from sql_grid.core.exceptions import NoTableDetected
from sql_grid.core.values import to_literal
from sql_grid.formatters.base import registry, render_lines

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sql_grid.core.models import QueryResult


class InsertFormatter:
    def __init__(
        self,
        table: str | None = None,
        escape_identifier: Callable[[str], str] = quote_identifier,
        escape_literal: Callable[[str], str] = quote_literal,
    ) -> None:
        self.table = table
        self.escape_identifier = escape_identifier
        self.escape_literal = escape_literal

    def format(self, result: QueryResult) -> Iterator[str]:
        table = self.table or _single_table(result)
        if not table:
            raise NoTableDetected("Cannot copy as INSERT: no single source table")
        target = qualified_name(table, self.escape_identifier)
        columns = ", ".join(self.escape_identifier(col.name) for col in result.columns)
        for row in result.rows:
            values = ", ".join(to_literal(v, self.escape_literal) for v in row)
            yield f"INSERT INTO {target} ({columns}) VALUES ({values});"

    def render(self, result: QueryResult) -> str:
        return render_lines(self, result)


def _single_table(result: QueryResult) -> str | None:
    tables = {col.table for col in result.columns}
    return tables.pop() if len(tables) == 1 else None


registry.register("insert", InsertFormatter)
