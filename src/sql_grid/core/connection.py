"""Collaborator protocols consumed by the grid core.

The core never talks to a driver directly. It needs something that can
run a statement and quote names and strings for the target dialect
(Connection), and something that answers primary/foreign key questions
(SchemaLookup). PgClient and PgSchemaLookup are the PostgreSQL
implementations; quote_identifier and quote_literal cover offline use
such as exports.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sql_grid.core.models import QueryResult

_PLAIN_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_$]*$")

# One part of a relation name in regclass text form: "quoted" or bare.
_NAME_PART = re.compile(r'"((?:[^"]|"")*)"|([^."]+)')


def quote_literal(text: str) -> str:
    """Single-quote a string, doubling embedded quotes (SQL standard)."""
    return "'" + text.replace("'", "''") + "'"


def quote_identifier(name: str) -> str:
    """Double-quote one identifier unless it is a plain lower-case name."""
    if _PLAIN_IDENTIFIER.match(name):
        return name
    return '"' + name.replace('"', '""') + '"'


def split_qualified_name(name: str) -> list[str]:
    """Split a relation name such as public."Order Items" into its parts.

    Quoted parts keep their dots and lose the surrounding quotes.
    """
    parts = []
    for match in _NAME_PART.finditer(name):
        if match.group(2) is not None:
            parts.append(match.group(2))
        else:
            parts.append(match.group(1).replace('""', '"'))
    return parts or [name]


def qualified_name(
    name: str, escape_identifier: Callable[[str], str] = quote_identifier
) -> str:
    """Quote a possibly schema-qualified table name part by part.

    Column names never go through here: they are always one identifier.
    """
    return ".".join(escape_identifier(part) for part in split_qualified_name(name))


@runtime_checkable
class Connection(Protocol):
    """One logical connection. Callers keep at most one statement in flight."""

    def execute(self, sql: str) -> QueryResult:
        """Run a statement. Raises QueryError on failure."""
        ...

    def escape_identifier(self, name: str) -> str: ...

    def escape_literal(self, text: str) -> str: ...


@runtime_checkable
class SchemaLookup(Protocol):
    """Schema facts for a table named in result metadata."""

    def primary_key_columns(self, table: str) -> list[str]: ...

    def foreign_keys(self, table: str) -> list[tuple[str, str, str]]:
        """Return (column, referenced table, referenced column) triples."""
        ...
