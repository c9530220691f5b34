"""CSV export of result rows.

Values go through format_value, so NULL exports as the text NULL. Fields
are quoted only when they contain a comma, a quote or a line break.
"""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING

from sql_grid.core.values import format_value
from sql_grid.formatters.base import registry, render_lines

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sql_grid.core.models import QueryResult


def _write_row(values: list[str]) -> str:
    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(values)
    return buf.getvalue()[:-1]


class CSVFormatter:
    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header

    def format(self, result: QueryResult) -> Iterator[str]:
        if not self.no_header:
            yield _write_row([col.name for col in result.columns])

        for row in result.rows:
            yield _write_row([format_value(v) for v in row])

    def render(self, result: QueryResult) -> str:
        return render_lines(self, result)


registry.register("csv", CSVFormatter)
