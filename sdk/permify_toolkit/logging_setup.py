"""
Logging configuration for applications and scripts using the toolkit.

Level and format come from, in order: explicit arguments, a LoggingConfig
(usually ``ToolkitConfig.logging``), then ``<prefix>LOG_LEVEL`` and
``<prefix>LOG_FORMAT`` in the environment or a local ``.env`` file.

Example:
    >>> setup_logging(config=ToolkitConfig(...).logging)
    >>> setup_logging("debug", log_format="json")
"""

from __future__ import annotations

import logging

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .client import DEFAULT_ENV_PREFIX
from .config import LOG_FORMATS, LoggingConfig
from .errors import ConfigError

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Transport libraries log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "grpc")


class _LoggingEnvSettings(BaseSettings):
    """Environment-backed logging settings (prefix is set per load)."""

    log_level: str | None = Field(default=None, description="Root log level")
    log_format: str | None = Field(default=None, description="text or json")

    model_config = SettingsConfigDict(
        env_prefix=DEFAULT_ENV_PREFIX,
        env_file=".env",
        extra="ignore",
    )


def resolve_logging_config(
    level: str | None = None,
    log_format: str | None = None,
    *,
    config: LoggingConfig | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> LoggingConfig:
    """Merge arguments, config and environment into one LoggingConfig."""
    env = _LoggingEnvSettings(_env_prefix=env_prefix)
    defaults = LoggingConfig()
    return LoggingConfig(
        level=level or (config and config.level) or env.log_level or defaults.level,
        format=log_format or (config and config.format) or env.log_format or defaults.format,
    )


def setup_logging(
    level: str | None = None,
    log_format: str | None = None,
    *,
    config: LoggingConfig | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> LoggingConfig:
    """Configure the root logger.

    Args:
        level: Log level name; overrides config and environment
        log_format: "text" or "json"; overrides config and environment
        config: Logging section of a ToolkitConfig
        env_prefix: Environment namespace for LOG_LEVEL / LOG_FORMAT

    Returns:
        The effective LoggingConfig

    Raises:
        ConfigError: Unknown level or format
    """
    resolved = resolve_logging_config(level, log_format, config=config, env_prefix=env_prefix)

    log_level = logging.getLevelName(resolved.level.upper())
    if not isinstance(log_level, int):
        raise ConfigError(f"Unknown log level: {resolved.level}", setting="logging.level")
    if resolved.format not in LOG_FORMATS:
        raise ConfigError(
            f"Log format must be one of: {', '.join(LOG_FORMATS)}",
            setting="logging.format",
        )

    if resolved.format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return resolved
