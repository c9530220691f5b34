from __future__ import annotations

from typing import Annotated

import typer

from sql_grid.cli.commands._shared import (
    get_client,
    get_resolved_config,
    open_session,
    parse_assignment,
    parse_cell_ref,
)
from sql_grid.cli.output import write_output
from sql_grid.core.exceptions import InputError
from sql_grid.core.query_source import resolve_query_source
from sql_grid.core.values import parse_input


def update_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file with the query whose rows are edited"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Inline SQL query whose rows are edited"),
    ] = None,
    assignments: Annotated[
        list[str] | None,
        typer.Option("--set", help="Edit a cell: ROW:COLUMN=VALUE (repeatable)"),
    ] = None,
    nulls: Annotated[
        list[str] | None,
        typer.Option("--set-null", help="Set a cell to NULL: ROW:COLUMN (repeatable)"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the UPDATE statements without running them"),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds"),
    ] = None,
) -> None:
    """Edit cells of a query result and write them back with UPDATE statements.

    Rows are numbered from 1 as shown in the grid; columns are given by
    name or 1-based number. Edits that match the stored value are dropped.
    """
    if not assignments and not nulls:
        raise InputError("Nothing to update. Use --set ROW:COLUMN=VALUE or --set-null ROW:COLUMN")

    sql = resolve_query_source(inline=execute, file_path=file)
    resolved = get_resolved_config(ctx, timeout=timeout)
    with get_client(resolved) as client:
        session = open_session(client, resolved)
        session.run(sql)
        model = session.model

        for assignment in assignments or []:
            ref, raw = parse_assignment(assignment)
            row, column = parse_cell_ref(ref, model)
            session.apply_edit(row, column, parse_input(raw, model.columns[column].kind))
        for ref in nulls or []:
            row, column = parse_cell_ref(ref, model)
            session.apply_edit(row, column, None)

        if not model.pending_edit_count:
            typer.echo("No changes: every value matches the stored one.")
            return

        if dry_run:
            for stmt in session.pending_statements():
                write_output(f"{stmt.sql};")
            return

        statements = session.commit()
        typer.echo(f"Updated {len(statements)} row(s) in {model.detected_table()}")
