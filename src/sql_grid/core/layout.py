"""Column widths and column pagination.

Widths are measured once per result from the header and a sample of the
first rows. Non-pinned columns are then split into pages that fit the
viewport after the pinned columns have taken their share.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from sql_grid.core.models import LARGE_KINDS, ColumnMeta
from sql_grid.core.values import display_width, format_value

LARGE_COLUMN_WIDTH = 10
MIN_PAGE_BUDGET = 10
DEFAULT_SAMPLE_SIZE = 50
DEFAULT_MIN_WIDTH = 5
DEFAULT_MAX_WIDTH = 40


def compute_widths(
    names: Sequence[str],
    rows: Sequence[Sequence[Any]],
    columns: Sequence[ColumnMeta],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    min_width: int = DEFAULT_MIN_WIDTH,
    max_width: int = DEFAULT_MAX_WIDTH,
) -> list[int]:
    """Return one display width per column.

    Large fields (json, blob, text) are never measured and get a fixed
    placeholder width. Values past the first sample_size rows are not
    looked at; wider ones get truncated when rendered.
    """
    sample = rows[:sample_size]
    widths: list[int] = []
    for idx, name in enumerate(names):
        if idx < len(columns) and columns[idx].kind in LARGE_KINDS:
            widths.append(LARGE_COLUMN_WIDTH)
            continue
        widest = display_width(name)
        for row in sample:
            if idx < len(row):
                widest = max(widest, display_width(format_value(row[idx])))
        widths.append(max(min_width, min(widest, max_width)))
    return widths


def cell_width(width: int, padding: int) -> int:
    """Screen cells taken by one column: content, padding both sides, separator."""
    return width + 2 * padding + 1


def compute_pages(
    widths: Sequence[int],
    pinned: set[int] | frozenset[int],
    viewport_width: int,
    padding: int = 1,
) -> list[tuple[int, ...]]:
    """Split non-pinned columns into pages that fit the viewport.

    Columns keep ascending index order within and across pages. A column
    wider than the whole budget gets a page to itself. With no
    non-pinned columns the result is a single empty page.
    """
    reserved = 1 + sum(cell_width(widths[idx], padding) for idx in sorted(pinned))
    budget = max(MIN_PAGE_BUDGET, viewport_width - reserved)

    pages: list[tuple[int, ...]] = []
    current: list[int] = []
    used = 0
    for idx, width in enumerate(widths):
        if idx in pinned:
            continue
        needed = cell_width(width, padding)
        if current and used + needed > budget:
            pages.append(tuple(current))
            current = []
            used = 0
        current.append(idx)
        used += needed

    if current or not pages:
        pages.append(tuple(current))
    return pages


class ColumnLayout:
    """Mutable layout state for one result: widths, pins, pages, current page."""

    def __init__(
        self,
        widths: Sequence[int],
        viewport_width: int,
        *,
        padding: int = 1,
        min_width: int = DEFAULT_MIN_WIDTH,
        width_step: int = 5,
    ) -> None:
        self.widths = list(widths)
        self.viewport_width = viewport_width
        self.padding = padding
        self.min_width = min_width
        self.width_step = width_step
        self.pinned: set[int] = set()
        self.current_page = 0
        self.pages: list[tuple[int, ...]] = []
        self._repaginate()

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def visible_columns(self) -> list[int]:
        """Pinned columns (ascending) followed by the current page."""
        return sorted(self.pinned) + list(self.pages[self.current_page])

    def page_of(self, column: int) -> int | None:
        for page_no, page in enumerate(self.pages):
            if column in page:
                return page_no
        return None

    def _check(self, column: int) -> None:
        if not 0 <= column < len(self.widths):
            msg = f"Column index {column} out of range (0-{len(self.widths) - 1})"
            raise IndexError(msg)

    def _repaginate(self) -> None:
        self.pages = compute_pages(
            self.widths, self.pinned, self.viewport_width, self.padding
        )
        self.current_page = min(self.current_page, len(self.pages) - 1)
        structlog.get_logger().debug(
            "layout recomputed",
            pages=len(self.pages),
            pinned=sorted(self.pinned),
            viewport=self.viewport_width,
        )

    def set_viewport(self, viewport_width: int) -> None:
        self.viewport_width = viewport_width
        self._repaginate()

    def pin(self, column: int) -> None:
        self._check(column)
        self.pinned.add(column)
        self._repaginate()

    def unpin(self, column: int) -> None:
        self._check(column)
        self.pinned.discard(column)
        self._repaginate()

    def widen(self, column: int) -> int:
        """Grow a column by one step. Manual widening has no ceiling."""
        self._check(column)
        self.widths[column] += self.width_step
        self._repaginate()
        return self.widths[column]

    def narrow(self, column: int) -> int:
        self._check(column)
        self.widths[column] = max(self.min_width, self.widths[column] - self.width_step)
        self._repaginate()
        return self.widths[column]

    def next_page(self) -> bool:
        """Advance to the next page. Returns False when already on the last."""
        if self.current_page + 1 >= len(self.pages):
            return False
        self.current_page += 1
        return True

    def prev_page(self) -> bool:
        if self.current_page == 0:
            return False
        self.current_page -= 1
        return True

    def goto_page(self, page: int) -> None:
        self.current_page = max(0, min(page, len(self.pages) - 1))

    def show_column(self, column: int) -> None:
        """Switch to the page holding a column; pinned columns are always shown."""
        self._check(column)
        page = self.page_of(column)
        if page is not None:
            self.current_page = page
