"""Export formatters and the grid renderer for SQL Grid."""

from sql_grid.formatters.base import Formatter, FormatterRegistry, registry
from sql_grid.formatters.csv import CSVFormatter
from sql_grid.formatters.grid import GridRenderer, RenderedGrid
from sql_grid.formatters.insert import InsertFormatter
from sql_grid.formatters.json import JSONFormatter

__all__ = [
    "CSVFormatter",
    "Formatter",
    "FormatterRegistry",
    "GridRenderer",
    "InsertFormatter",
    "JSONFormatter",
    "RenderedGrid",
    "registry",
]
