"""One open grid bound to one connection.

GridSession runs queries, loads their results into its ResultModel and
turns grid commands (filter, sort, follow foreign key, commit) into
statements. Connection use is serialized with a busy flag; a failed
statement leaves the current result untouched.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from sql_grid.core.edits import CommitStatement, commit_edits
from sql_grid.core.exceptions import CommitError, EmptyResult, InputError, SessionBusy
from sql_grid.core.result_model import ModelState, ResultModel
from sql_grid.core.schema import PgSchemaLookup, lookup_foreign_keys, lookup_primary_key
from sql_grid.core.sort_filter import foreign_key_query, inject_where, wrap_order_by
from sql_grid.formatters.csv import CSVFormatter
from sql_grid.formatters.insert import InsertFormatter

if TYPE_CHECKING:
    from sql_grid.core.config import GridSettings
    from sql_grid.core.connection import Connection, SchemaLookup
    from sql_grid.core.models import QueryResult


class GridSession:
    def __init__(
        self,
        connection: Connection,
        schema: SchemaLookup | None = None,
        settings: GridSettings | None = None,
        viewport_width: int | None = None,
    ) -> None:
        self.connection = connection
        self.schema = schema if schema is not None else PgSchemaLookup(connection)
        self.model = ResultModel(settings, viewport_width)
        self.base_sql: str | None = None
        self.current_sql: str | None = None
        self.filter_predicate: str | None = None
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._busy:
            raise SessionBusy("A statement is already running on this connection")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _execute_and_load(self, sql: str, *, filtered: bool = False) -> QueryResult:
        """Run a query and replace the model with its result.

        The schema lookups happen before the model is touched, so any
        failure leaves the previous result in place.
        """
        log = structlog.get_logger()
        with self._exclusive():
            result = self.connection.execute(sql)
            if not result.columns:
                return result
            names = result.column_names
            tables = [col.table for col in result.columns]
            table = tables[0] if len(set(tables)) == 1 else None
            primary_key = lookup_primary_key(self.schema, table, names)
            foreign_keys = lookup_foreign_keys(self.schema, tables, names)
        self.model.load(
            result.columns,
            result.rows,
            foreign_keys=foreign_keys,
            primary_key=primary_key,
            filtered=filtered,
        )
        self.current_sql = sql
        log.info(
            "result replaced",
            rows=result.row_count,
            editable=self.model.editable,
            foreign_keys=len(foreign_keys),
        )
        return result

    # -- Queries --

    def run(self, sql: str) -> QueryResult:
        """Run a new base query. Statements without a result set leave the grid alone."""
        result = self._execute_and_load(sql)
        if result.columns:
            self.base_sql = sql
            self.filter_predicate = None
        return result

    def refresh(self) -> QueryResult:
        if self.current_sql is None:
            raise InputError("No query has been run yet")
        return self._execute_and_load(
            self.current_sql, filtered=self.filter_predicate is not None
        )

    def apply_filter(self, predicate: str) -> QueryResult:
        """Re-run the base query with an extra predicate; empty clears the filter."""
        if self.base_sql is None:
            raise InputError("No query to filter")
        predicate = predicate.strip()
        if not predicate:
            result = self._execute_and_load(self.base_sql)
            self.filter_predicate = None
            return result
        result = self._execute_and_load(
            inject_where(self.base_sql, predicate), filtered=True
        )
        self.filter_predicate = predicate
        return result

    def sort(self, column: str, descending: bool = False, *, requery: bool = False) -> None:
        """Sort by column name, in memory or by re-running the query ordered."""
        idx = self.model.column_index(column)
        if not requery:
            self.model.sort(idx, descending)
            return
        if self.current_sql is None:
            raise InputError("No query to sort")
        name = self.model.columns[idx].name
        self._execute_and_load(
            wrap_order_by(
                self.current_sql, name, descending, self.connection.escape_identifier
            ),
            filtered=self.filter_predicate is not None,
        )
        self.model.sort_column = idx
        self.model.sort_descending = descending
        self.model.state = ModelState.SORTED

    def follow_foreign_key(self, row: int, column: int) -> QueryResult:
        """Replace the grid with the row(s) a foreign key cell points at."""
        ref = self.model.foreign_key(column)
        value = self.model.stored_value(row, column)
        sql = foreign_key_query(
            ref,
            value,
            self.connection.escape_identifier,
            self.connection.escape_literal,
        )
        return self.run(sql)

    def load_more(self) -> range:
        """Advance the row window. Raises EmptyResult when all rows are shown."""
        return self.model.next_rows()

    # -- Editing --

    def apply_edit(self, row: int, column: int, value: Any) -> bool:
        return self.model.apply_edit(row, column, value)

    def pending_statements(self) -> list[CommitStatement]:
        return self.model.commit_statements(
            self.connection.escape_identifier, self.connection.escape_literal
        )

    def commit(self) -> list[CommitStatement]:
        """Write pending edits, one UPDATE per row, then reload the result.

        Rows written before a failure keep their changes in the database and
        lose their pending edits; the failing and later rows stay pending.
        """
        if not self.model.pending_edit_count:
            raise EmptyResult("No pending edits to commit")
        statements = self.pending_statements()
        try:
            with self._exclusive():
                written = commit_edits(self.connection, statements)
        except CommitError as e:
            self.model.mark_committed([stmt.row for stmt in statements[: e.applied]])
            raise
        self.model.mark_committed(written)
        structlog.get_logger().info("edits committed", rows=len(written))
        self.refresh()
        return statements

    # -- Export --

    def export_csv(self, rows: Sequence[int] | None = None) -> str:
        return CSVFormatter().render(self.model.snapshot(rows))

    def copy_as_insert(self, rows: Sequence[int] | None = None) -> str:
        formatter = InsertFormatter(
            self.model.detected_table(),
            escape_identifier=self.connection.escape_identifier,
            escape_literal=self.connection.escape_literal,
        )
        return formatter.render(self.model.snapshot(rows))
