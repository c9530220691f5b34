from __future__ import annotations

import sys
from typing import Annotated

import typer

from sql_grid.cli.commands._shared import (
    get_client,
    get_resolved_config,
    open_session,
    output_session,
    output_status,
)
from sql_grid.cli.output import OutputFormat  # noqa: TC001
from sql_grid.core.exceptions import InputError
from sql_grid.core.exit_codes import ExitCode
from sql_grid.core.query_source import resolve_query_source


def browse_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    where: Annotated[
        str | None,
        typer.Option("--where", "-w", help="Extra WHERE predicate injected into the query"),
    ] = None,
    sort: Annotated[
        str | None,
        typer.Option("--sort", help="Column name to sort by"),
    ] = None,
    desc: Annotated[
        bool,
        typer.Option("--desc", help="Sort descending (NULLs stay last)"),
    ] = False,
    requery: Annotated[
        bool,
        typer.Option("--requery", help="Sort on the server instead of in memory"),
    ] = False,
    pin: Annotated[
        list[str] | None,
        typer.Option("--pin", help="Pin a column to every page (repeatable)"),
    ] = None,
    page: Annotated[
        int,
        typer.Option("--page", help="Column page to show (1-based)"),
    ] = 1,
    rows_page: Annotated[
        int,
        typer.Option("--rows-page", help="Row window to show (1-based)"),
    ] = 1,
    viewport: Annotated[
        int | None,
        typer.Option("--viewport", help="Viewport width in characters"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: grid|csv|json|insert"),
    ] = None,
    all_rows: Annotated[
        bool,
        typer.Option("--all", help="Export every row, not just the row window"),
    ] = False,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds"),
    ] = None,
) -> None:
    """Run a query and show it as a paginated grid, or export it."""
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if execute is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        sql = resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    resolved = get_resolved_config(ctx, timeout=timeout)
    with get_client(resolved) as client:
        session = open_session(client, resolved, viewport)
        result = session.run(sql)
        if not result.columns:
            output_status(result)
            return
        if where:
            session.apply_filter(where)
        if sort:
            session.sort(sort, desc, requery=requery)
        for name in pin or []:
            session.model.pin(session.model.column_index(name))
        session.model.layout.goto_page(page - 1)
        for _ in range(rows_page - 1):
            session.load_more()
        output_session(
            session,
            format.value if format else None,
            all_rows=all_rows,
            compact=compact,
        )
