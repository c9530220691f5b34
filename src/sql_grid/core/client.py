"""PostgreSQL client for SQL Grid.

Wraps psycopg v3 synchronous connections with query execution,
statement timeout, source-table detection and exception mapping to the
SqlGridError hierarchy. Implements the Connection protocol.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import psycopg
import psycopg.errors
import sentry_sdk
import structlog
from psycopg import sql as pgsql

from sql_grid.core.exceptions import NetworkError, QueryError, TimeoutError
from sql_grid.core.models import ColumnMeta, QueryResult

if TYPE_CHECKING:
    from sql_grid.core.config import ResolvedConfig

# Mapping from psycopg type OIDs to human-readable names.
# Covers the most common PostgreSQL types; unknown OIDs fall back to "unknown".
_TYPE_NAMES: dict[int, str] = {
    16: "bool",
    17: "bytea",
    19: "name",
    20: "int8",
    21: "int2",
    23: "int4",
    25: "text",
    26: "oid",
    114: "json",
    142: "xml",
    700: "float4",
    701: "float8",
    790: "money",
    1042: "bpchar",
    1043: "varchar",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamptz",
    1186: "interval",
    1266: "timetz",
    1700: "numeric",
    2950: "uuid",
    3802: "jsonb",
}

_TABLE_NAMES_SQL = (
    "SELECT c.oid, c.oid::regclass::text FROM pg_catalog.pg_class c WHERE c.oid = ANY(%s)"
)


class PgClient:
    """Synchronous PostgreSQL client using psycopg v3."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config
        self._connection: psycopg.Connection[Any] | None = None
        self._notices: list[str] = []

    def __enter__(self) -> PgClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _connect(self) -> psycopg.Connection[Any]:
        if self._connection is not None and not self._connection.closed:
            return self._connection

        try:
            self._connection = psycopg.connect(
                host=self.config.host,
                port=self.config.port,
                dbname=self.config.dbname,
                user=self.config.user,
                password=self.config.password,
                sslmode=self.config.sslmode,
                connect_timeout=self.config.connect_timeout,
                application_name=self.config.application_name,
                autocommit=True,
            )
        except psycopg.OperationalError as e:
            msg = (
                f"Connection failed to {self.config.host}:{self.config.port} "
                f"database '{self.config.dbname}': {e}"
            )
            raise NetworkError(msg) from e

        self._connection.add_notice_handler(self._on_notice)
        return self._connection

    def _on_notice(self, diag: psycopg.errors.Diagnostic) -> None:
        if diag.message_primary:
            self._notices.append(diag.message_primary)

    def _source_tables(
        self, conn: psycopg.Connection[Any], table_oids: list[int]
    ) -> dict[int, str]:
        wanted = sorted({oid for oid in table_oids if oid})
        if not wanted:
            return {}
        with conn.cursor() as cur:
            cur.execute(_TABLE_NAMES_SQL, (wanted,))
            return {oid: name for oid, name in cur.fetchall()}

    def execute(self, sql: str) -> QueryResult:
        """Execute SQL and return a QueryResult."""
        log = structlog.get_logger()
        conn = self._connect()
        timeout_ms = int(self.config.default_timeout * 1000)
        self._notices = []

        sql_normalized = " ".join(sql.split())
        span_description = sql_normalized[:100]
        log.debug("executing query", sql=sql_normalized)
        with sentry_sdk.start_span(op="db.query", description=span_description) as span:
            start_time = time.monotonic()
            try:
                with conn.cursor() as cur:
                    cur.execute(f"SET statement_timeout = {timeout_ms}")
                    cur.execute(sql)

                    columns: list[ColumnMeta] = []
                    rows: list[tuple[Any, ...]] = []
                    affected: int | None = None

                    if cur.description:
                        rows = cur.fetchall()
                        pgresult = cur.pgresult
                        table_oids = (
                            [pgresult.ftable(i) for i in range(len(cur.description))]
                            if pgresult is not None
                            else [0] * len(cur.description)
                        )
                        status = cur.statusmessage or ""
                        tables = self._source_tables(conn, table_oids)
                        for desc, table_oid in zip(cur.description, table_oids, strict=True):
                            columns.append(
                                ColumnMeta(
                                    name=desc.name,
                                    type_oid=desc.type_code,
                                    type_name=_TYPE_NAMES.get(desc.type_code, "unknown"),
                                    table=tables.get(table_oid),
                                )
                            )
                    else:
                        status = cur.statusmessage or ""
                        affected = cur.rowcount if cur.rowcount >= 0 else None

                    duration_ms = (time.monotonic() - start_time) * 1000
                    span.set_data("row_count", len(rows))
                    span.set_data("duration_ms", duration_ms)
                    log.debug(
                        "query complete",
                        duration_ms=f"{duration_ms:.1f}",
                        row_count=len(rows),
                    )

                    return QueryResult(
                        columns=columns,
                        rows=rows,
                        row_count=len(rows),
                        status_message=status,
                        affected_rows=affected,
                        warnings=list(self._notices),
                    )

            except psycopg.errors.QueryCanceled as e:
                duration_ms = (time.monotonic() - start_time) * 1000
                span.set_data("duration_ms", duration_ms)
                span.set_status("deadline_exceeded")
                log.error(
                    "query timeout",
                    sql=sql_normalized,
                    duration_ms=f"{duration_ms:.1f}",
                )
                msg = f"Query timed out after {self.config.default_timeout}s: {e}"
                raise TimeoutError(msg) from e
            except psycopg.OperationalError as e:
                span.set_status("unavailable")
                log.error("database error", sql=sql_normalized, error=str(e))
                raise NetworkError(f"Database error: {e}") from e
            except psycopg.Error as e:
                span.set_status("invalid_argument")
                log.error("query error", sql=sql_normalized, error=str(e))
                raise QueryError(f"SQL error: {e}") from e

    def escape_identifier(self, name: str) -> str:
        return pgsql.Identifier(name).as_string(self._connect())

    def escape_literal(self, text: str) -> str:
        return pgsql.Literal(text).as_string(self._connect())

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
