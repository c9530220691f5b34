"""Mapping between screen positions and logical cells.

The renderer records, for every cell it draws, where it drew it and which
(row, column, stored value) it came from. After a re-layout the cursor is
put back with locate(), which falls back to the same row and then to the
first cell when the exact cell is no longer on screen.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict

from sql_grid.core.exceptions import NoCellAtPosition, NoRowAtPosition


class CellAddress(BaseModel):
    """Logical identity of a rendered cell."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    row: int
    column: int
    value: Any = None


class RenderPosition(BaseModel):
    """Where a cell was drawn: output line and character offset of its content."""

    model_config = ConfigDict(frozen=True)

    line: int
    offset: int


class CellIndex:
    """Cells of one rendering, in render order."""

    def __init__(self) -> None:
        self._cells: list[tuple[RenderPosition, CellAddress]] = []
        self._widths: list[int] = []

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[tuple[RenderPosition, CellAddress]]:
        return iter(self._cells)

    def add(self, position: RenderPosition, address: CellAddress, width: int) -> None:
        """Record a drawn cell whose content covers width characters from its offset."""
        self._cells.append((position, address))
        self._widths.append(width)

    def locate(self, row: int, column: int) -> RenderPosition:
        """Find a cell: exact match, else same row, else the first cell."""
        if not self._cells:
            raise NoCellAtPosition("Nothing is rendered")
        same_row: RenderPosition | None = None
        for position, address in self._cells:
            if address.row == row:
                if address.column == column:
                    return position
                if same_row is None:
                    same_row = position
        if same_row is not None:
            return same_row
        return self._cells[0][0]

    def cell_at(self, position: RenderPosition) -> CellAddress:
        """Cell whose content span covers the position on its line."""
        for (pos, address), width in zip(self._cells, self._widths, strict=True):
            if pos.line == position.line and pos.offset <= position.offset < pos.offset + width:
                return address
        msg = f"No cell at line {position.line}, offset {position.offset}"
        raise NoCellAtPosition(msg)

    def row_at(self, line: int) -> int:
        for pos, address in self._cells:
            if pos.line == line:
                return address.row
        raise NoRowAtPosition(f"No row at line {line}")
