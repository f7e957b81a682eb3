"""
Toolkit configuration.

A ToolkitConfig bundles what a deployment needs: client connection
settings, the default tenant, the schema (a SchemaHandle or a path to a
``.perm`` file), relationship seeding and logging settings. Loading the config file
itself is left to the caller.

Example:
    >>> config = define_config(
    ...     ToolkitConfig(
    ...         tenant="acme",
    ...         client=ClientOptions.from_env(),
    ...         schema=schema_file("./schema.perm"),
    ...     )
    ... )
    >>> validate_config(config)

Invariants:
    - validate_config() never contacts the server
    - Secrets in ClientOptions are never included in error messages
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum

from .builder import SchemaHandle
from .client import ClientOptions
from .errors import ConfigError

SCHEMA_FILE_SUFFIX = ".perm"
LOG_FORMATS = ("text", "json")


class SeedingMode(Enum):
    """How seeding treats existing relationships."""

    APPEND = "append"
    REPLACE = "replace"


@dataclass(frozen=True)
class RelationshipsConfig:
    """Relationship seeding settings.

    Attributes:
        seed_file: Path to a file of relationship tuples (parsed by the caller)
        mode: Append to or replace existing relationships
    """

    seed_file: str | None = None
    mode: SeedingMode | str = SeedingMode.APPEND


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings applied by setup_logging().

    Attributes:
        level: Root log level name
        format: "text" or "json"
    """

    level: str = "INFO"
    format: str = "text"


@dataclass(frozen=True)
class ToolkitConfig:
    """Complete toolkit configuration.

    Attributes:
        client: Connection settings
        schema: SchemaHandle or path to a .perm schema file
        tenant: Default tenant for all operations
        relationships: Seeding settings
        logging: Logging settings
    """

    client: ClientOptions
    schema: SchemaHandle | str
    tenant: str | None = None
    relationships: RelationshipsConfig | None = None
    logging: LoggingConfig | None = None


def schema_file(path: str) -> str:
    """Mark a schema file path in a config. Returns the path unchanged."""
    return path


def define_config(config: ToolkitConfig) -> ToolkitConfig:
    """Identity helper for config modules."""
    return config


def validate_config(config: ToolkitConfig) -> None:
    """Validate a configuration.

    Raises:
        ConfigError: On the first invalid setting
    """
    if not isinstance(config, ToolkitConfig):
        raise ConfigError("Configuration must be a ToolkitConfig")

    if not isinstance(config.client, ClientOptions) or not isinstance(config.client.endpoint, str):
        raise ConfigError("Client endpoint must be a string", setting="client.endpoint")

    if config.tenant is not None:
        if not isinstance(config.tenant, str) or not config.tenant.strip():
            raise ConfigError("Tenant must be a non-empty string", setting="tenant")

    if not config.schema:
        raise ConfigError("Schema must be provided", setting="schema")
    _validate_schema_setting(config.schema)

    if config.relationships is not None:
        seed_file = config.relationships.seed_file
        if seed_file is not None and not isinstance(seed_file, str):
            raise ConfigError("Relationships seed_file must be a string", setting="relationships.seed_file")
        try:
            SeedingMode(config.relationships.mode)
        except ValueError:
            valid = ", ".join(m.value for m in SeedingMode)
            raise ConfigError(
                f"Relationships mode must be one of: {valid}",
                setting="relationships.mode",
            ) from None

    if config.logging is not None:
        if not isinstance(logging.getLevelName(str(config.logging.level).upper()), int):
            raise ConfigError(f"Unknown log level: {config.logging.level}", setting="logging.level")
        if config.logging.format not in LOG_FORMATS:
            raise ConfigError(
                f"Log format must be one of: {', '.join(LOG_FORMATS)}",
                setting="logging.format",
            )


def _validate_schema_setting(schema: SchemaHandle | str) -> None:
    if isinstance(schema, SchemaHandle):
        return
    if not isinstance(schema, str):
        raise ConfigError("Schema must be a SchemaHandle or a schema file path", setting="schema")
    if not os.path.exists(schema):
        raise ConfigError(f"Schema file not found: {schema}", setting="schema")
    if not schema.endswith(SCHEMA_FILE_SUFFIX):
        raise ConfigError(f"Schema file must have a {SCHEMA_FILE_SUFFIX} extension: {schema}", setting="schema")
    if os.path.getsize(schema) == 0:
        raise ConfigError(f"Schema file cannot be empty: {schema}", setting="schema")
