"""Configuration for integration tests.

Override these values via environment variables to match your local database setup.

Example:
    export SQL_GRID_TEST_PROFILE=my_local_db
"""

import os

# Profile name configured in ~/.config/sql-grid/config.toml
TEST_PROFILE = os.environ.get("SQL_GRID_TEST_PROFILE", "test_db")

# CLI profile arguments
PROFILE_ARGS = ["--profile", TEST_PROFILE]
