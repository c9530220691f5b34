"""Shared CLI plumbing for command modules.

Client and session creation, cell reference parsing and result output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sql_grid.cli.output import resolve_format, write_output
from sql_grid.core.client import PgClient
from sql_grid.core.config import load_config, resolve_config
from sql_grid.core.exceptions import ColumnNotFound, InputError
from sql_grid.core.session import GridSession
from sql_grid.formatters.grid import GridRenderer
from sql_grid.formatters.json import JSONFormatter

if TYPE_CHECKING:
    import typer

    from sql_grid.core.config import ResolvedConfig
    from sql_grid.core.models import QueryResult
    from sql_grid.core.result_model import ResultModel


def get_resolved_config(ctx: typer.Context, timeout: float | None = None) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in ("host", "port", "database", "user", "password"):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    if timeout is not None:
        cli_overrides["timeout"] = timeout

    return resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )


def get_client(resolved: ResolvedConfig) -> PgClient:
    return PgClient(resolved)


def open_session(
    client: PgClient, resolved: ResolvedConfig, viewport: int | None = None
) -> GridSession:
    return GridSession(client, settings=resolved.grid, viewport_width=viewport)


def parse_cell_ref(ref: str, model: ResultModel) -> tuple[int, int]:
    """Parse ROW:COLUMN (1-based row, column name or 1-based number) to indices."""
    row_part, sep, col_part = ref.partition(":")
    if not sep or not row_part or not col_part:
        raise InputError(f"Invalid cell reference '{ref}'. Expected ROW:COLUMN")
    try:
        row = int(row_part) - 1
    except ValueError:
        raise InputError(f"Invalid row number in '{ref}'") from None
    if col_part.isdigit():
        column = int(col_part) - 1
        if not 0 <= column < model.column_count:
            raise ColumnNotFound(f"Column number out of range in '{ref}'")
    else:
        column = model.column_index(col_part)
    return row, column


def parse_assignment(assignment: str) -> tuple[str, str]:
    """Split ROW:COLUMN=VALUE into the cell reference and the raw value."""
    ref, sep, value = assignment.partition("=")
    if not sep:
        raise InputError(f"Invalid assignment '{assignment}'. Expected ROW:COLUMN=VALUE")
    return ref, value


def output_session(
    session: GridSession,
    format_flag: str | None,
    *,
    all_rows: bool = False,
    compact: bool = False,
) -> None:
    """Print the grid, or export the current row window (every row with all_rows)."""
    fmt = resolve_format(format_flag)
    rows = None if all_rows else list(session.model.visible_rows())
    if fmt == "grid":
        write_output(GridRenderer().render(session.model).text())
    elif fmt == "csv":
        write_output(session.export_csv(rows))
    elif fmt == "json":
        snapshot = session.model.snapshot(rows)
        write_output(JSONFormatter(compact=compact).render(snapshot))
    elif fmt == "insert":
        write_output(session.copy_as_insert(rows))
    else:
        raise InputError(f"Unknown format '{fmt}'")


def output_status(result: QueryResult) -> None:
    """Report a statement that returned no rows (DML/DDL)."""
    message = result.status_message or "OK"
    if result.affected_rows is not None:
        message = f"{message} ({result.affected_rows} row(s) affected)"
    write_output(message)
    for warning in result.warnings:
        write_output(f"WARNING: {warning}")
