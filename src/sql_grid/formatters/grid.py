"""Plain-text grid rendering of a ResultModel.

Draws the pinned columns plus the current column page for the current row
window, and records a CellAddress for every drawn cell so the caller can
map a cursor position back to (row, column).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sql_grid.core.addressing import CellAddress, CellIndex, RenderPosition
from sql_grid.core.values import display_width, truncate_for_cell

if TYPE_CHECKING:
    from sql_grid.core.result_model import ResultModel

SEPARATOR = "|"
PIN_SEPARATOR = "‖"
EDIT_MARK = "*"


@dataclass
class RenderedGrid:
    lines: list[str] = field(default_factory=list)
    cells: CellIndex = field(default_factory=CellIndex)
    header_lines: int = 2

    def text(self) -> str:
        return "\n".join(self.lines)


def _pad(text: str, width: int) -> str:
    return text + " " * max(0, width - display_width(text))


class GridRenderer:
    """Renders the visible part of a ResultModel as text lines."""

    def __init__(self, show_status: bool = True) -> None:
        self.show_status = show_status

    def _separator_after(self, model: ResultModel, position: int, visible: list[int]) -> str:
        # The last pinned column is closed with a double bar when pages follow.
        pinned = len(model.layout.pinned)
        if pinned and position == pinned - 1 and position < len(visible) - 1:
            return PIN_SEPARATOR
        return SEPARATOR

    def render(self, model: ResultModel) -> RenderedGrid:
        grid = RenderedGrid()
        visible = model.visible_columns()
        pad = " " * model.settings.padding

        header = SEPARATOR
        rule = SEPARATOR
        for pos, col in enumerate(visible):
            width = model.widths[col]
            name = truncate_for_cell(model.columns[col].name, width)
            sep = self._separator_after(model, pos, visible)
            header += f"{pad}{_pad(name, width)}{pad}{sep}"
            rule += "-" * (width + 2 * model.settings.padding) + sep
        grid.lines.extend([header, rule])

        for row in model.visible_rows():
            line = SEPARATOR
            for pos, col in enumerate(visible):
                width = model.widths[col]
                offset = len(line) + len(pad)
                text = model.cell_text(row, col)
                edited = model.is_edited(row, col)
                if edited and display_width(text) < width:
                    text += EDIT_MARK
                sep = self._separator_after(model, pos, visible)
                content = _pad(text, width)
                line += f"{pad}{content}{pad}{sep}"
                grid.cells.add(
                    RenderPosition(line=len(grid.lines), offset=offset),
                    CellAddress(row=row, column=col, value=model.stored_value(row, col)),
                    len(content),
                )
            grid.lines.append(line)

        if self.show_status:
            grid.lines.append(status_line(model))
        return grid


def status_line(model: ResultModel) -> str:
    rows = model.visible_rows()
    if rows:
        row_part = f"rows {rows.start + 1}-{rows.stop} of {model.row_count}"
    else:
        row_part = f"rows 0 of {model.row_count}"
    parts = [f"page {model.current_page + 1}/{model.page_count}", row_part]
    if model.pending_edit_count:
        parts.append(f"{model.pending_edit_count} pending edit(s)")
    table = model.detected_table()
    if table:
        parts.append(f"table {table}" + ("" if model.editable else " (read-only)"))
    return " · ".join(parts)
