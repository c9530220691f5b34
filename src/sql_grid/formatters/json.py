"""JSON export of result rows."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from sql_grid.core.values import format_value
from sql_grid.formatters.base import registry, render_lines

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sql_grid.core.models import QueryResult


def _serialize_value(val: Any) -> Any:
    if isinstance(val, (int, float, str, bool, type(None), dict, list)):
        return val
    return format_value(val)


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, result: QueryResult) -> Iterator[str]:
        rows_as_dicts = [
            {
                col.name: _serialize_value(val)
                for col, val in zip(result.columns, row, strict=True)
            }
            for row in result.rows
        ]

        if self.compact:
            yield json.dumps(rows_as_dicts, default=str)
        else:
            yield json.dumps(rows_as_dicts, indent=2, default=str)

    def render(self, result: QueryResult) -> str:
        return render_lines(self, result)


registry.register("json", JSONFormatter)
