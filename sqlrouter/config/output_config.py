"""
Output configuration management.

Loads the database settings and the table list from YAML files and
enforces that exactly one default table is configured.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from sqlrouter.core.errors import ConfigError
from sqlrouter.core.models import TableSpec

SUPPORTED_ADAPTERS = ("postgresql", "postgres")
ENV_PREFIX = "SQLROUTER_DB_"


class OutputConfig(BaseModel):
    """
    Complete configuration of one SQL output.

    Attributes:
        host, port, adapter, database, username, password: Connection
            settings; unset values fall back to SQLROUTER_DB_* variables
        connect_timeout, connect_retries: Per-attempt timeout in seconds
            and number of attempts when opening the pool
        remove_tag_prefix: Literal prefix stripped from tags to build
            grouping keys
        include_tag_key, tag_key: Copy the event tag into each record
        include_time_key, time_key, time_format, utc: Copy the formatted
            event time into each record
        tables: Table specifications in declaration order
    """

    host: str = Field(default_factory=lambda: os.getenv(f"{ENV_PREFIX}HOST", "localhost"))
    port: int | None = None
    adapter: str = "postgresql"
    database: str | None = Field(default_factory=lambda: os.getenv(f"{ENV_PREFIX}NAME"))
    username: str | None = Field(default_factory=lambda: os.getenv(f"{ENV_PREFIX}USER"))
    password: str | None = Field(default_factory=lambda: os.getenv(f"{ENV_PREFIX}PASSWORD"))
    connect_timeout: float = Field(default=10.0, gt=0)
    connect_retries: int = Field(default=3, ge=1)

    remove_tag_prefix: str | None = None

    include_tag_key: bool = False
    tag_key: str = "tag"
    include_time_key: bool = False
    time_key: str = "time"
    time_format: str | None = None
    utc: bool = True

    tables: list[TableSpec] = Field(default_factory=list)

    @field_validator("adapter")
    @classmethod
    def check_adapter(cls, v: str) -> str:
        if v.lower() not in SUPPORTED_ADAPTERS:
            raise ValueError(f"Unsupported adapter '{v}'. Must be one of {SUPPORTED_ADAPTERS}")
        return v.lower()

    @field_validator("remove_tag_prefix")
    @classmethod
    def empty_prefix_is_none(cls, v: str | None) -> str | None:
        return v or None

    @property
    def default_table(self) -> TableSpec:
        return next(t for t in self.tables if t.is_default)

    @property
    def routed_tables(self) -> list[TableSpec]:
        """Non-default tables in declaration order."""
        return [t for t in self.tables if not t.is_default]


def load_config_dict(config: dict[str, Any] | None) -> OutputConfig:
    """
    Build an OutputConfig from already-parsed data.

    Args:
        config: Mapping as read from YAML

    Returns:
        Validated OutputConfig

    Raises:
        ConfigError: If the data is invalid or the default table is
            missing or duplicated
    """
    if not config:
        raise ConfigError("Configuration is empty")
    if not isinstance(config, dict):
        raise ConfigError("Configuration must be a mapping")
    if "tables" not in config or not config["tables"]:
        raise ConfigError("There is no default table. A 'tables' section is required in sql output")

    try:
        output = OutputConfig(**config)
    except ValidationError as e:
        raise ConfigError(f"Invalid sql output configuration: {e}") from e

    defaults = [t for t in output.tables if t.is_default]
    if not defaults:
        raise ConfigError("There is no default table. A table with pattern 'default' is required in sql output")
    if len(defaults) > 1:
        names = ", ".join(t.table for t in defaults)
        raise ConfigError(f"Detect duplicate default table definition: {names}")

    return output


class ConfigLoader:
    """
    Loads an output configuration from a YAML file.

    Expected YAML format:
    ```yaml
    host: localhost
    port: 5432
    adapter: postgresql
    database: events
    username: router
    remove_tag_prefix: "app."

    tables:
      - pattern: "access.**"
        table: access_log
        column_names: host,path,status
      - pattern: "payment.*"
        table: payments
        key_names: [id, amount_cents]
        column_names: [payment_id, amount]
      - pattern: default
        table: events
        column_names: [tag, time, message]
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

    def load(self) -> OutputConfig:
        """
        Load and validate the configuration.

        Returns:
            OutputConfig

        Raises:
            ConfigError: If YAML is invalid or the configuration is not
        """
        try:
            with open(self.config_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        return load_config_dict(config)
