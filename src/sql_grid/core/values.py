"""Value formatting for grid cells and SQL literals.

Raw driver values are grouped into a closed set of kinds; every display
string, CSV field, sort key and SQL literal is derived from format_value()
so the same value always reads the same way everywhere.
"""

from __future__ import annotations

import datetime as dt
import json
import math
from collections.abc import Callable
from decimal import Decimal
from enum import StrEnum
from typing import Any

from rich.cells import cell_len, get_character_cell_size

from sql_grid.core.connection import quote_literal

NULL_TEXT = "NULL"
ELLIPSIS = "…"
NEWLINE_GLYPH = "↵"
SEPARATOR_GLYPH = "¦"

_CELL_REPLACEMENTS = str.maketrans(
    {"\n": NEWLINE_GLYPH, "\r": NEWLINE_GLYPH, "|": SEPARATOR_GLYPH, "\t": " "}
)


class ValueKind(StrEnum):
    NULL = "null"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    INTERVAL = "interval"
    BLOB = "blob"
    OTHER = "other"


def classify(value: Any) -> ValueKind:
    """Return the kind of a raw driver value."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, (bool, int, float, Decimal)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    # datetime is a date subclass, so it has to be tested first.
    if isinstance(value, dt.datetime):
        return ValueKind.DATETIME
    if isinstance(value, dt.date):
        return ValueKind.DATE
    if isinstance(value, dt.time):
        return ValueKind.TIME
    if isinstance(value, dt.timedelta):
        return ValueKind.INTERVAL
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BLOB
    return ValueKind.OTHER


def is_number(value: Any) -> bool:
    """True for numeric values; booleans do not count as numbers here."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _format_number(value: bool | int | float | Decimal) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _is_finite(value: int | float | Decimal) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def _format_interval(value: dt.timedelta) -> str:
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_value(value: Any) -> str:
    """Canonical display text for a raw value.

    NULL becomes "NULL", dates "YYYY-MM-DD", times "HH:MM:SS", datetimes
    "YYYY-MM-DD HH:MM:SS" and intervals "[-]HH:MM:SS".
    """
    kind = classify(value)
    if kind is ValueKind.NULL:
        return NULL_TEXT
    if kind is ValueKind.NUMBER:
        return _format_number(value)
    if kind is ValueKind.TEXT:
        return value
    if kind is ValueKind.DATETIME:
        return (
            f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
            f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
        )
    if kind is ValueKind.DATE:
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    if kind is ValueKind.TIME:
        return f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    if kind is ValueKind.INTERVAL:
        return _format_interval(value)
    if kind is ValueKind.BLOB:
        return "\\x" + bytes(value).hex()
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def to_literal(
    value: Any, escape_literal: Callable[[str], str] = quote_literal
) -> str:
    """Render a value as a SQL literal using the backend's string escaping."""
    kind = classify(value)
    if kind is ValueKind.NULL:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if kind is ValueKind.NUMBER:
        text = _format_number(value)
        # nan/inf have no bare numeric literal form.
        if _is_finite(value):
            return text
        return escape_literal(text)
    if kind is ValueKind.TEXT:
        return escape_literal(value)
    return escape_literal(format_value(value))


def values_equal(a: Any, b: Any) -> bool:
    """Value equality used to detect reverted edits.

    NULL equals only NULL; numbers compare numerically across int, float
    and Decimal. Typed text against a date, time, interval, uuid or other
    non-numeric value compares with the value's text form. Anything else
    uses ==.
    """
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, str) != isinstance(b, str):
        text, other = (a, b) if isinstance(a, str) else (b, a)
        if not isinstance(other, (bool, int, float, Decimal)):
            return text in (format_value(other), str(other))
    if is_number(a) and is_number(b):
        if isinstance(a, Decimal) or isinstance(b, Decimal):
            return Decimal(str(a)) == Decimal(str(b))
        return a == b
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return bool(a == b)


def display_width(text: str) -> int:
    return cell_len(text)


def truncate_for_cell(text: str, max_width: int) -> str:
    """Make text safe for a single grid line and fit it into max_width cells.

    Newlines and pipes are swapped for visible glyphs first; over-wide text
    keeps max_width - 1 cells and ends with an ellipsis.
    """
    if max_width < 1:
        return ""
    text = text.replace("\r\n", NEWLINE_GLYPH).translate(_CELL_REPLACEMENTS)
    if cell_len(text) <= max_width:
        return text

    budget = max_width - 1
    used = 0
    kept: list[str] = []
    for char in text:
        size = get_character_cell_size(char)
        if used + size > budget:
            break
        kept.append(char)
        used += size
    return "".join(kept) + ELLIPSIS


def parse_input(text: str, kind: str) -> Any:
    """Turn text typed into a cell back into a value of the column's kind.

    Numeric and boolean columns get numbers and booleans when the text
    parses as one; everything else stays text and is cast by the server.
    """
    if kind == "numeric":
        stripped = text.strip()
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            number = Decimal(stripped)
        except ArithmeticError:
            return text
        return number if number.is_finite() else text
    if kind == "boolean":
        lowered = text.strip().lower()
        if lowered in ("true", "t", "yes", "1"):
            return True
        if lowered in ("false", "f", "no", "0"):
            return False
    return text
