"""Query result models for SQL Grid.

Pydantic models for query results, column metadata and the schema facts
(foreign keys) attached to a loaded result.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ColumnKind(StrEnum):
    """Declared type tag of a result column."""

    NUMERIC = "numeric"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    INTERVAL = "interval"
    JSON = "json"
    BLOB = "blob"
    TEXT = "text"
    OTHER = "other"


# Kinds that are never measured; the grid shows a fixed-width placeholder.
LARGE_KINDS: frozenset[ColumnKind] = frozenset(
    {ColumnKind.JSON, ColumnKind.BLOB, ColumnKind.TEXT}
)

_KIND_BY_TYPE_NAME: dict[str, ColumnKind] = {
    "bool": ColumnKind.BOOLEAN,
    "int2": ColumnKind.NUMERIC,
    "int4": ColumnKind.NUMERIC,
    "int8": ColumnKind.NUMERIC,
    "oid": ColumnKind.NUMERIC,
    "float4": ColumnKind.NUMERIC,
    "float8": ColumnKind.NUMERIC,
    "numeric": ColumnKind.NUMERIC,
    "money": ColumnKind.NUMERIC,
    "bpchar": ColumnKind.STRING,
    "varchar": ColumnKind.STRING,
    "name": ColumnKind.STRING,
    "uuid": ColumnKind.STRING,
    "text": ColumnKind.TEXT,
    "xml": ColumnKind.TEXT,
    "json": ColumnKind.JSON,
    "jsonb": ColumnKind.JSON,
    "bytea": ColumnKind.BLOB,
    "date": ColumnKind.DATE,
    "time": ColumnKind.TIME,
    "timetz": ColumnKind.TIME,
    "timestamp": ColumnKind.DATETIME,
    "timestamptz": ColumnKind.DATETIME,
    "interval": ColumnKind.INTERVAL,
}


def kind_for_type_name(type_name: str) -> ColumnKind:
    """Map a backend type name to its ColumnKind, OTHER when unknown."""
    return _KIND_BY_TYPE_NAME.get(type_name.lower(), ColumnKind.OTHER)


class ColumnMeta(BaseModel):
    """Metadata for a single result column."""

    name: str
    type_oid: int = 0
    type_name: str = "unknown"
    kind: ColumnKind = ColumnKind.OTHER
    table: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        # Drivers may report non-string identifiers (e.g. positional ints).
        return v if isinstance(v, str) else str(v)

    @model_validator(mode="before")
    @classmethod
    def derive_kind(cls, data: Any) -> Any:
        if isinstance(data, dict) and "kind" not in data and data.get("type_name"):
            data = {**data, "kind": kind_for_type_name(data["type_name"])}
        return data


class ForeignKeyRef(BaseModel):
    """Target of a foreign-key column."""

    model_config = ConfigDict(frozen=True)

    table: str
    column: str


class QueryResult(BaseModel):
    """Result of a SQL statement execution.

    DML and DDL statements return no columns; affected_rows then carries
    the driver's row count.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[ColumnMeta]
    rows: list[tuple[Any, ...]]
    row_count: int
    status_message: str = ""
    affected_rows: int | None = None
    warnings: list[str] = []

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]
