"""SQL Grid - paginated, editable browser for SQL query results."""

from sql_grid.__about__ import __version__

__all__ = ["__version__"]
