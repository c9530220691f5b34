"""Shared test fixtures for SQL Grid."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from sql_grid.cli.main import app
from sql_grid.core.config import GridSettings
from tests.fakes import FakeConnection, FakeSchema


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings():
    """Grid settings with a fixed viewport so layouts are deterministic."""
    return GridSettings(viewport_width=80)


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def schema():
    return FakeSchema(
        primary_keys={"users": ["id"]},
        foreign_keys={"users": [("team_id", "teams", "id")]},
    )
