"""Tests for PgClient.

Unit tests run against a mocked psycopg connection; integration tests
need a real PostgreSQL reachable through the test_db profile.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psycopg
import psycopg.errors
import pytest

from sql_grid.core.client import PgClient
from sql_grid.core.config import ResolvedConfig, load_config, resolve_config
from sql_grid.core.connection import Connection
from sql_grid.core.exceptions import NetworkError, QueryError, TimeoutError
from sql_grid.core.models import ColumnKind, QueryResult
from tests.integration_config import TEST_PROFILE


def _mock_connection(cursor: MagicMock) -> MagicMock:
    conn = MagicMock()
    conn.closed = False
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn


def _select_cursor(rows, table_oid=0, table_rows=None) -> MagicMock:
    cur = MagicMock()
    cur.description = [SimpleNamespace(name="id", type_code=23)]
    cur.fetchall.side_effect = [rows, table_rows or []]
    cur.pgresult.ftable.return_value = table_oid
    cur.statusmessage = f"SELECT {len(rows)}"
    return cur


@pytest.mark.unit
class TestPgClientUnit:
    def test_implements_connection_protocol(self):
        assert isinstance(PgClient(ResolvedConfig()), Connection)

    def test_select(self):
        cur = _select_cursor([(1,), (2,)])
        client = PgClient(ResolvedConfig(default_timeout=5))
        client._connection = _mock_connection(cur)
        result = client.execute("SELECT id FROM generate_series(1, 2) AS id")
        assert result.rows == [(1,), (2,)]
        assert result.status_message == "SELECT 2"
        col = result.columns[0]
        assert (col.name, col.type_name, col.table) == ("id", "int4", None)
        assert col.kind == ColumnKind.NUMERIC
        assert cur.execute.call_args_list[0].args == ("SET statement_timeout = 5000",)

    def test_source_table_resolved(self):
        cur = _select_cursor([(1,)], table_oid=16384, table_rows=[(16384, "users")])
        client = PgClient(ResolvedConfig())
        client._connection = _mock_connection(cur)
        result = client.execute("SELECT id FROM users")
        assert result.columns[0].table == "users"

    def test_dml(self):
        cur = MagicMock()
        cur.description = None
        cur.rowcount = 3
        cur.statusmessage = "UPDATE 3"
        client = PgClient(ResolvedConfig())
        client._connection = _mock_connection(cur)
        result = client.execute("UPDATE users SET name = 'x'")
        assert result.columns == []
        assert result.affected_rows == 3
        assert result.status_message == "UPDATE 3"

    @pytest.mark.parametrize(
        ("error", "expected", "message"),
        [
            (psycopg.errors.QueryCanceled("canceling statement"), TimeoutError, "timed out"),
            (psycopg.OperationalError("server closed"), NetworkError, "Database error"),
            (psycopg.errors.SyntaxError("syntax error"), QueryError, "SQL error"),
        ],
    )
    def test_error_mapping(self, error, expected, message):
        cur = MagicMock()
        cur.execute.side_effect = [None, error]
        client = PgClient(ResolvedConfig())
        client._connection = _mock_connection(cur)
        with pytest.raises(expected, match=message):
            client.execute("SELECT 1")

    def test_connection_failure(self):
        with patch(
            "sql_grid.core.client.psycopg.connect",
            side_effect=psycopg.OperationalError("connection refused"),
        ):
            client = PgClient(ResolvedConfig(host="db.invalid", port=6543))
            with pytest.raises(NetworkError, match="Connection failed to db.invalid:6543"):
                client.execute("SELECT 1")

    def test_notices_become_warnings(self):
        cur = _select_cursor([(1,)])
        client = PgClient(ResolvedConfig())
        client._connection = _mock_connection(cur)

        def run(sql):
            if not sql.startswith("SET"):
                client._on_notice(SimpleNamespace(message_primary="table is being vacuumed"))

        cur.execute.side_effect = run
        result = client.execute("SELECT 1")
        assert result.warnings == ["table is being vacuumed"]

    def test_close(self):
        client = PgClient(ResolvedConfig())
        conn = _mock_connection(MagicMock())
        client._connection = conn
        client.close()
        conn.close.assert_called_once()
        assert client._connection is None
        client.close()


# -- Integration --


@pytest.fixture
def resolved_config():
    config = load_config()
    return resolve_config(config, profile_name=TEST_PROFILE)


@pytest.fixture
def client(resolved_config):
    with PgClient(resolved_config) as c:
        yield c


@pytest.mark.integration
def test_execute_returns_query_result(client):
    result = client.execute("SELECT 1 AS num")
    assert isinstance(result, QueryResult)
    assert result.rows == [(1,)]
    assert result.status_message == "SELECT 1"
    assert result.columns[0].type_name == "int4"


@pytest.mark.integration
def test_client_reuses_connection(client):
    client.execute("SELECT 1")
    first_conn = client._connection
    client.execute("SELECT 2")
    assert client._connection is first_conn


@pytest.mark.integration
def test_source_table_detected(client):
    client.execute("CREATE TEMP TABLE _grid_items (id int PRIMARY KEY, name text)")
    client.execute("INSERT INTO _grid_items VALUES (1, 'a')")
    result = client.execute("SELECT id, name, 1 AS one FROM _grid_items")
    assert result.columns[0].table is not None
    assert result.columns[0].table == result.columns[1].table
    assert result.columns[2].table is None


@pytest.mark.integration
def test_dml_affected_rows(client):
    client.execute("CREATE TEMP TABLE _grid_dml (id int)")
    result = client.execute("INSERT INTO _grid_dml SELECT generate_series(1, 3)")
    assert result.columns == []
    assert result.affected_rows == 3


@pytest.mark.integration
def test_escaping(client):
    assert client.escape_identifier("Mixed Case") == '"Mixed Case"'
    assert client.escape_identifier("price.usd") == '"price.usd"'
    assert client.escape_literal("it's") == "'it''s'"


@pytest.mark.integration
def test_syntax_error_raises_query_error(client):
    with pytest.raises(QueryError, match="SQL error"):
        client.execute("SELECTT 1")


@pytest.mark.integration
def test_timeout_raises_timeout_error(resolved_config):
    short_timeout = resolved_config.model_copy(update={"default_timeout": 0.1})
    with (
        PgClient(short_timeout) as c,
        pytest.raises(TimeoutError, match="Query timed out"),
    ):
        c.execute("SELECT pg_sleep(5)")
