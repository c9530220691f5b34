"""Output format selection and TTY auto-detection."""

from __future__ import annotations

import sys
from enum import StrEnum


class OutputFormat(StrEnum):
    GRID = "grid"
    CSV = "csv"
    JSON = "json"
    INSERT = "insert"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None) -> str:
    """Determine the output format.

    Explicit --format overrides TTY detection.
    Default: grid for TTY, csv for pipes.
    """
    if format_flag is not None:
        return format_flag
    return "grid" if detect_tty() else "csv"


def write_output(text: str) -> None:
    """Write already formatted text to stdout, newline-terminated."""
    if text and not text.endswith("\n"):
        text += "\n"
    sys.stdout.write(text)
