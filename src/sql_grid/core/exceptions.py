"""Exception hierarchy for SQL Grid.

All exceptions carry an exit_code for CLI return value mapping.
Every error is recoverable: raising one never leaves a ResultModel
half-updated.
"""

from __future__ import annotations

from sql_grid.core.exit_codes import ExitCode


class SqlGridError(Exception):
    """Base exception for all SQL Grid errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class QueryError(SqlGridError):
    """The connection rejected a statement. Message is shown verbatim."""

    exit_code: int = ExitCode.QUERY_ERROR


class NetworkError(QueryError):
    """Connection failures, unreachable host."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Query timeout, connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class CommitError(QueryError):
    """An UPDATE statement failed part way through a commit batch."""

    exit_code: int = ExitCode.EDIT_ERROR

    def __init__(self, row: int, message: str, applied: int) -> None:
        self.row = row
        self.applied = applied
        super().__init__(f"Row {row + 1}: {message}")


class NoTableDetected(SqlGridError):
    """Result columns do not come from exactly one table."""

    exit_code: int = ExitCode.EDIT_ERROR


class NoPrimaryKey(SqlGridError):
    """No primary key could be resolved for the detected table."""

    exit_code: int = ExitCode.EDIT_ERROR


class ColumnNotFound(SqlGridError):
    """Sort, filter or goto-column named an unknown column."""

    exit_code: int = ExitCode.NAVIGATION_ERROR


class NoCellAtPosition(SqlGridError):
    """No rendered cell at the requested position."""

    exit_code: int = ExitCode.NAVIGATION_ERROR


class NoRowAtPosition(SqlGridError):
    """No rendered row at the requested position."""

    exit_code: int = ExitCode.NAVIGATION_ERROR


class NoForeignKey(SqlGridError):
    """The column does not reference another table."""

    exit_code: int = ExitCode.NAVIGATION_ERROR


class EmptyResult(SqlGridError):
    """Nothing left to show, e.g. paging past the last row."""

    exit_code: int = ExitCode.NAVIGATION_ERROR


class SessionBusy(SqlGridError):
    """A statement is already in flight on this session's connection."""


class InputError(SqlGridError):
    """File not found, invalid parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(SqlGridError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR
