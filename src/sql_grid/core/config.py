"""Configuration management for SQL Grid.

Handles the TOML config file (grid settings and named connection
profiles), environment variables and precedence resolution.

Connection precedence (highest to lowest):
1. CLI flags (--host, --port, etc.)
2. --dsn flag (parsed into components)
3. Environment variables (PGHOST, PGPORT, PGDATABASE, PGUSER, PGPASSWORD)
4. Named profile (--profile, SQL_GRID_PROFILE env var, or default_profile)
5. Built-in defaults
"""

from __future__ import annotations

import os
import shutil
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, field_validator, model_validator

from sql_grid.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "sql-grid" / "config.toml"
PROFILE_ENV_VAR = "SQL_GRID_PROFILE"

_PG_ENV_VARS: dict[str, str] = {
    "PGHOST": "host",
    "PGPORT": "port",
    "PGDATABASE": "dbname",
    "PGUSER": "user",
    "PGPASSWORD": "password",  # pragma: allowlist secret
}

_VALID_SSLMODES = {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Supports postgresql:// and postgres:// schemes with query params."""
    parsed = urlparse(dsn)
    if parsed.scheme not in ("postgresql", "postgres"):
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected 'postgresql' or 'postgres'"
        raise ConfigError(msg)

    result: dict[str, Any] = {}
    if parsed.hostname:
        result["host"] = parsed.hostname
    if parsed.port:
        result["port"] = parsed.port
    if parsed.path and parsed.path.strip("/"):
        result["dbname"] = parsed.path.strip("/")
    if parsed.username:
        result["user"] = parsed.username
    if parsed.password:
        result["password"] = parsed.password
    query_params = parse_qs(parsed.query)
    if "sslmode" in query_params:
        result["sslmode"] = query_params["sslmode"][0]
    if "connect_timeout" in query_params:
        result["connect_timeout"] = int(query_params["connect_timeout"][0])
    return result


class GridSettings(BaseModel):
    """Layout and paging settings for the result grid."""

    max_column_width: int = 40
    min_column_width: int = 5
    sample_size: int = 50
    padding: int = 1
    width_step: int = 5
    rows_per_page: int = 100
    viewport_width: int | None = None

    @field_validator("min_column_width", "sample_size", "width_step", "rows_per_page")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            msg = f"Must be at least 1, got {v}"
            raise ValueError(msg)
        return v

    @field_validator("padding")
    @classmethod
    def validate_padding(cls, v: int) -> int:
        if v < 0:
            msg = f"Padding cannot be negative, got {v}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_width_bounds(self) -> GridSettings:
        if self.max_column_width < self.min_column_width:
            msg = (
                f"max_column_width ({self.max_column_width}) is below "
                f"min_column_width ({self.min_column_width})"
            )
            raise ValueError(msg)
        return self

    def effective_viewport(self) -> int:
        """Configured viewport width, else the terminal width."""
        if self.viewport_width is not None:
            return self.viewport_width
        return shutil.get_terminal_size((120, 24)).columns


class PgProfile(BaseModel):
    dsn: str | None = None
    host: str = "localhost"
    port: int = 5432
    dbname: str = "postgres"
    user: str | None = None
    password: str | None = None
    sslmode: str = "prefer"
    connect_timeout: int = 10

    @model_validator(mode="before")
    @classmethod
    def parse_dsn_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            dsn_fields = parse_dsn(data["dsn"])
            for key, value in dsn_fields.items():
                if key not in data:
                    data[key] = value
        return data

    @field_validator("sslmode")
    @classmethod
    def validate_sslmode(cls, v: str) -> str:
        if v not in _VALID_SSLMODES:
            msg = f"Invalid sslmode: '{v}'. Must be one of: {', '.join(sorted(_VALID_SSLMODES))}"
            raise ValueError(msg)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            msg = f"Invalid port: {v}. Must be 1-65535"
            raise ValueError(msg)
        return v


class AppConfig(BaseModel):
    default_timeout: float = 30.0
    default_profile: str | None = None
    grid: GridSettings = GridSettings()
    profiles: dict[str, PgProfile] = {}


class ResolvedConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    dbname: str = "postgres"
    user: str | None = None
    password: str | None = None
    sslmode: str = "prefer"
    connect_timeout: int = 10
    application_name: str = "sql-grid"
    default_timeout: float = 30.0
    active_profile: str | None = None
    grid: GridSettings = GridSettings()
    sources: dict[str, str] = {}


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


_CONNECTION_FIELDS = ("host", "port", "dbname", "user", "password", "sslmode", "connect_timeout")


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve connection settings: CLI > DSN > env > profile > defaults."""
    defaults = ResolvedConfig()
    resolved: dict[str, Any] = {key: getattr(defaults, key) for key in _CONNECTION_FIELDS}
    sources: dict[str, str] = {key: "default" for key in resolved}

    resolved["default_timeout"] = config.default_timeout
    sources["default_timeout"] = "config" if config.default_timeout != 30.0 else "default"

    effective_profile = profile_name or os.environ.get(PROFILE_ENV_VAR) or config.default_profile
    if effective_profile:
        if effective_profile not in config.profiles:
            available = ", ".join(sorted(config.profiles)) if config.profiles else "none"
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key in resolved:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    for env_var, field_name in _PG_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if field_name == "port":
            try:
                resolved[field_name] = int(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                raise ConfigError(msg) from None
        else:
            resolved[field_name] = value
        sources[field_name] = f"env: {env_var}"

    if dsn:
        for key, value in parse_dsn(dsn).items():
            if key in resolved:
                resolved[key] = value
                sources[key] = "dsn"

    cli_to_field = {
        "host": "host",
        "port": "port",
        "database": "dbname",
        "user": "user",
        "password": "password",  # pragma: allowlist secret
        "timeout": "default_timeout",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name}"

    return ResolvedConfig(
        **resolved,
        active_profile=effective_profile,
        grid=config.grid,
        sources=sources,
    )