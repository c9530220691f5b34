"""Presentation state for one query result.

A ResultModel owns the fetched columns and rows plus everything derived
from them: column widths and pages, the pinned set, the row window,
pending edits and the foreign-key map. Loading a new result replaces all
of it at once.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import StrEnum
from typing import Any

import structlog

from sql_grid.core.config import GridSettings
from sql_grid.core.connection import quote_identifier, quote_literal
from sql_grid.core.edits import CommitStatement, EditTracker, build_commit_statements
from sql_grid.core.exceptions import (
    ColumnNotFound,
    EmptyResult,
    NoCellAtPosition,
    NoForeignKey,
    NoRowAtPosition,
)
from sql_grid.core.layout import ColumnLayout, compute_widths
from sql_grid.core.models import LARGE_KINDS, ColumnMeta, ForeignKeyRef, QueryResult
from sql_grid.core.sort_filter import sort_rows
from sql_grid.core.values import format_value, truncate_for_cell


class ModelState(StrEnum):
    EMPTY = "empty"
    LOADED = "loaded"
    SORTED = "sorted"
    FILTERED = "filtered"
    PAGED = "paged"


class ResultModel:
    """One open grid: base data plus mutable presentation state."""

    def __init__(
        self,
        settings: GridSettings | None = None,
        viewport_width: int | None = None,
    ) -> None:
        self.settings = settings or GridSettings()
        self.viewport_width = viewport_width or self.settings.effective_viewport()
        self.state = ModelState.EMPTY
        self.columns: list[ColumnMeta] = []
        self.rows: list[tuple[Any, ...]] = []
        self.layout = ColumnLayout([], self.viewport_width, padding=self.settings.padding)
        self.edits = EditTracker()
        self.foreign_keys: dict[int, ForeignKeyRef] = {}
        self.primary_key: list[int] | None = None
        self.row_offset = 0
        self.sort_column: int | None = None
        self.sort_descending = False

    # -- Loading --

    def load(
        self,
        columns: Sequence[ColumnMeta],
        rows: Sequence[Sequence[Any]],
        foreign_keys: dict[int, ForeignKeyRef] | None = None,
        primary_key: list[int] | None = None,
        *,
        filtered: bool = False,
    ) -> None:
        """Replace the current result. Edits, pins, paging and schema facts go with it."""
        new_rows = [tuple(row) for row in rows]
        names = [col.name for col in columns]
        widths = compute_widths(
            names,
            new_rows,
            columns,
            sample_size=self.settings.sample_size,
            min_width=self.settings.min_column_width,
            max_width=self.settings.max_column_width,
        )
        self.columns = list(columns)
        self.rows = new_rows
        self.layout = ColumnLayout(
            widths,
            self.viewport_width,
            padding=self.settings.padding,
            min_width=self.settings.min_column_width,
            width_step=self.settings.width_step,
        )
        self.edits = EditTracker()
        self.foreign_keys = dict(foreign_keys or {})
        self.primary_key = list(primary_key) if primary_key else None
        self.row_offset = 0
        self.sort_column = None
        self.sort_descending = False
        self.state = ModelState.FILTERED if filtered else ModelState.LOADED
        structlog.get_logger().debug(
            "result loaded",
            columns=len(self.columns),
            rows=len(self.rows),
            pages=self.layout.page_count,
            table=self.detected_table(),
        )

    # -- Accessors --

    @property
    def names(self) -> list[str]:
        return [col.name for col in self.columns]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def current_page(self) -> int:
        return self.layout.current_page

    @property
    def page_count(self) -> int:
        return self.layout.page_count

    @property
    def pending_edit_count(self) -> int:
        return len(self.edits)

    @property
    def widths(self) -> list[int]:
        return self.layout.widths

    @property
    def editable(self) -> bool:
        return self.detected_table() is not None and bool(self.primary_key)

    def visible_columns(self) -> list[int]:
        return self.layout.visible_columns()

    def visible_rows(self) -> range:
        end = min(self.row_offset + self.settings.rows_per_page, self.row_count)
        return range(self.row_offset, end)

    def column_index(self, name: str) -> int:
        """Index of a column by name; exact match first, then case-insensitive."""
        names = self.names
        if name in names:
            return names.index(name)
        lowered = [n.lower() for n in names]
        if name.lower() in lowered:
            return lowered.index(name.lower())
        raise ColumnNotFound(f"Column not found: '{name}'")

    def _check_column(self, column: int) -> None:
        if not 0 <= column < self.column_count:
            raise ColumnNotFound(f"Column index {column} out of range")

    def _check_cell(self, row: int, column: int) -> None:
        if not 0 <= row < self.row_count or not 0 <= column < self.column_count:
            raise NoCellAtPosition(f"No cell at row {row}, column {column}")

    def stored_value(self, row: int, column: int) -> Any:
        self._check_cell(row, column)
        return self.rows[row][column]

    def value_at(self, row: int, column: int) -> Any:
        """Pending edit if there is one, else the stored value."""
        self._check_cell(row, column)
        if (row, column) in self.edits:
            return self.edits.get(row, column)
        return self.rows[row][column]

    def is_edited(self, row: int, column: int) -> bool:
        return (row, column) in self.edits

    def detected_table(self) -> str | None:
        """The one source table shared by all columns, else None."""
        tables = {col.table for col in self.columns}
        if len(tables) != 1:
            return None
        table = tables.pop()
        return table or None

    def foreign_key(self, column: int) -> ForeignKeyRef:
        self._check_column(column)
        ref = self.foreign_keys.get(column)
        if ref is None:
            raise NoForeignKey(f"Column '{self.columns[column].name}' has no foreign key")
        return ref

    # -- Rendering support --

    def cell_text(self, row: int, column: int) -> str:
        """Display text of a cell, fitted to its column width."""
        col = self.columns[column]
        value = self.value_at(row, column)
        if value is not None and col.kind in LARGE_KINDS:
            text = f"<{col.kind.value}>"
        else:
            text = format_value(value)
        return truncate_for_cell(text, self.layout.widths[column])

    def render_row(self, row: int) -> list[str]:
        """Cell texts of one row for the visible columns, in display order."""
        if not 0 <= row < self.row_count:
            raise NoRowAtPosition(f"No row {row}")
        return [self.cell_text(row, col) for col in self.visible_columns()]

    def snapshot(self, rows: Sequence[int] | None = None) -> QueryResult:
        """Stored data (without pending edits) for export or copy."""
        indices = range(self.row_count) if rows is None else rows
        selected = []
        for idx in indices:
            if not 0 <= idx < self.row_count:
                raise NoRowAtPosition(f"No row {idx}")
            selected.append(self.rows[idx])
        return QueryResult(
            columns=self.columns,
            rows=selected,
            row_count=len(selected),
            status_message=f"SELECT {len(selected)}",
        )

    # -- Column layout --

    def next_page(self) -> None:
        if not self.layout.next_page():
            raise EmptyResult("Already on the last column page")
        self.state = ModelState.PAGED

    def prev_page(self) -> None:
        if not self.layout.prev_page():
            raise EmptyResult("Already on the first column page")
        self.state = ModelState.PAGED

    def goto_column(self, column: int) -> None:
        self._check_column(column)
        self.layout.show_column(column)

    def widen(self, column: int) -> int:
        self._check_column(column)
        return self.layout.widen(column)

    def narrow(self, column: int) -> int:
        self._check_column(column)
        return self.layout.narrow(column)

    def pin(self, column: int) -> None:
        self._check_column(column)
        self.layout.pin(column)

    def unpin(self, column: int) -> None:
        self._check_column(column)
        self.layout.unpin(column)

    def set_viewport(self, viewport_width: int) -> None:
        self.viewport_width = viewport_width
        self.layout.set_viewport(viewport_width)

    # -- Row window --

    def next_rows(self) -> range:
        new_offset = self.row_offset + self.settings.rows_per_page
        if new_offset >= self.row_count:
            raise EmptyResult("No more rows")
        self.row_offset = new_offset
        return self.visible_rows()

    def prev_rows(self) -> range:
        if self.row_offset == 0:
            raise EmptyResult("Already at the first row")
        self.row_offset = max(0, self.row_offset - self.settings.rows_per_page)
        return self.visible_rows()

    # -- Sorting and editing --

    def sort(self, column: int, descending: bool = False) -> None:
        """Reorder rows in place. Row indices now refer to the new order."""
        self._check_column(column)
        if self.edits:
            structlog.get_logger().warning(
                "pending edits discarded by sort", count=len(self.edits)
            )
        self.rows = sort_rows(self.rows, column, descending)
        self.edits.clear()
        self.row_offset = 0
        self.sort_column = column
        self.sort_descending = descending
        self.state = ModelState.SORTED

    def apply_edit(self, row: int, column: int, value: Any) -> bool:
        """Set a pending edit; returns False when it matched the stored value."""
        stored = self.stored_value(row, column)
        return self.edits.apply(row, column, value, stored)

    def discard_edits(self) -> int:
        count = len(self.edits)
        self.edits.clear()
        return count

    def commit_statements(
        self,
        escape_identifier: Callable[[str], str] = quote_identifier,
        escape_literal: Callable[[str], str] = quote_literal,
    ) -> list[CommitStatement]:
        if not self.edits:
            return []
        return build_commit_statements(
            self.detected_table(),
            self.rows,
            self.edits.edits,
            self.names,
            self.primary_key or [],
            escape_identifier,
            escape_literal,
        )

    def mark_committed(self, rows: Sequence[int]) -> None:
        self.edits.discard_rows(set(rows))
